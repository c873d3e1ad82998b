from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from .models import Business, BusinessStaff, BusinessStatus, BusinessType, StaffRole


class BusinessSerializer(serializers.ModelSerializer):
    """Main serializer for businesses."""

    owner = UserMinimalSerializer(read_only=True)
    can_accept_payments = serializers.BooleanField(read_only=True)

    class Meta:
        model = Business
        fields = [
            'id',
            'owner',
            'name',
            'business_type',
            'description',
            'email',
            'phone',
            'address',
            'status',
            'rejection_reason',
            'approved_at',
            'payment_account_id',
            'payment_onboarding_complete',
            'can_accept_payments',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BusinessCreateSerializer(serializers.ModelSerializer):

    class Meta:
        model = Business
        fields = ['name', 'business_type', 'description', 'email', 'phone', 'address']


class BusinessUpdateSerializer(serializers.ModelSerializer):

    class Meta:
        model = Business
        fields = ['name', 'business_type', 'description', 'email', 'phone', 'address']
        extra_kwargs = {field: {'required': False} for field in fields}


class BusinessMinimalSerializer(serializers.ModelSerializer):

    class Meta:
        model = Business
        fields = ['id', 'name', 'business_type']
        read_only_fields = fields


class RejectBusinessSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class BusinessStatusFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BusinessStatus.choices, required=False)


class StaffSerializer(serializers.ModelSerializer):
    """Staff member or pending invitation."""

    user = UserMinimalSerializer(read_only=True)
    is_pending = serializers.BooleanField(read_only=True)

    class Meta:
        model = BusinessStaff
        fields = ['id', 'email', 'role', 'user', 'invited_at', 'accepted_at', 'is_pending']
        read_only_fields = fields


class InvitationSerializer(serializers.ModelSerializer):
    """Pending invitation as seen by the invitee."""

    business = BusinessMinimalSerializer(read_only=True)
    invited_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = BusinessStaff
        fields = ['id', 'business', 'email', 'role', 'invited_by', 'invited_at']
        read_only_fields = fields


class InviteStaffSerializer(serializers.Serializer):
    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=StaffRole.choices, default=StaffRole.STAFF)


class OnboardingRequestSerializer(serializers.Serializer):
    return_url = serializers.CharField(max_length=500, required=False)
    refresh_url = serializers.CharField(max_length=500, required=False)


class OnboardingStatusSerializer(serializers.Serializer):
    account_id = serializers.CharField(allow_null=True)
    complete = serializers.BooleanField()
    onboarding_url = serializers.CharField(allow_null=True, required=False)


# =============================================================================
# Marketplace
# =============================================================================

class MarketplaceFilterSerializer(serializers.Serializer):
    business_type = serializers.ChoiceField(choices=BusinessType.choices, required=False)
    search = serializers.CharField(max_length=100, required=False)


class MarketplaceBusinessSerializer(serializers.ModelSerializer):
    """Business card in the customer marketplace."""

    active_product_count = serializers.IntegerField(read_only=True)
    lowest_price_pence = serializers.IntegerField(read_only=True)

    class Meta:
        model = Business
        fields = [
            'id',
            'name',
            'business_type',
            'description',
            'address',
            'active_product_count',
            'lowest_price_pence',
        ]
        read_only_fields = fields


class MarketplaceProductSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    description = serializers.CharField()
    item_type = serializers.CharField()
    quantity_per_period = serializers.IntegerField()
    period = serializers.CharField()
    price_pence = serializers.IntegerField()


class MarketplaceBusinessDetailSerializer(serializers.ModelSerializer):
    """Public business page with its active products, cheapest first."""

    products = serializers.SerializerMethodField()

    class Meta:
        model = Business
        fields = ['id', 'name', 'business_type', 'description', 'address', 'phone', 'email', 'products']
        read_only_fields = fields

    def get_products(self, obj):
        products = obj.products.filter(is_active=True).order_by('price_pence')
        return MarketplaceProductSerializer(products, many=True).data


# =============================================================================
# Administration
# =============================================================================

class AdminStatsSerializer(serializers.Serializer):
    total_businesses = serializers.IntegerField()
    pending_approvals = serializers.IntegerField()
    active_businesses = serializers.IntegerField()
    total_customers = serializers.IntegerField()
