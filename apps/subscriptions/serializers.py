from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from apps.businesses.serializers import BusinessMinimalSerializer
from .models import SubscriptionProduct, Subscription, Redemption, Period
from .services import remaining
from .services.blackouts import normalize_windows


class BlackoutWindowSerializer(serializers.Serializer):
    day = serializers.CharField(max_length=10)
    start_time = serializers.CharField(max_length=5)
    end_time = serializers.CharField(max_length=5)


class ProductSerializer(serializers.ModelSerializer):
    """Main serializer for subscription products."""

    business = BusinessMinimalSerializer(read_only=True)

    class Meta:
        model = SubscriptionProduct
        fields = [
            'id',
            'business',
            'name',
            'description',
            'item_type',
            'quantity_per_period',
            'period',
            'price_pence',
            'currency',
            'blackout_times',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ProductWriteSerializer(serializers.Serializer):
    """Input for creating a product; updates use it partially."""

    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    item_type = serializers.CharField(max_length=100)
    quantity_per_period = serializers.IntegerField(min_value=1)
    period = serializers.ChoiceField(choices=Period.choices)
    price_pence = serializers.IntegerField(min_value=1)
    blackout_times = BlackoutWindowSerializer(many=True, required=False, default=list)

    def validate_blackout_times(self, value):
        try:
            return normalize_windows(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))


class ProductUpdateSerializer(ProductWriteSerializer):
    """The billing period is fixed once a product exists."""

    period = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('partial', True)
        super().__init__(*args, **kwargs)


class ProductFilterSerializer(serializers.Serializer):
    business_id = serializers.UUIDField(required=False)


class SubscriptionSerializer(serializers.ModelSerializer):
    """Subscription with its allowance for the current period."""

    product = ProductSerializer(read_only=True)
    remaining = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = [
            'id',
            'product',
            'status',
            'current_period_start',
            'current_period_end',
            'redemptions_used',
            'remaining',
            'cancelled_at',
            'cancel_reason',
            'created_at',
        ]
        read_only_fields = fields

    def get_remaining(self, obj) -> int:
        return remaining(obj)


class BusinessSubscriptionSerializer(SubscriptionSerializer):
    """Subscription as seen by the selling business."""

    user = UserMinimalSerializer(read_only=True)

    class Meta(SubscriptionSerializer.Meta):
        fields = SubscriptionSerializer.Meta.fields + ['user']
        read_only_fields = fields


class SubscribeSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()


class SubscribeResponseSerializer(serializers.Serializer):
    subscription = SubscriptionSerializer()
    client_secret = serializers.CharField(allow_null=True)


class CancelSubscriptionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')


class RedeemSerializer(serializers.Serializer):
    item_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class RedemptionSerializer(serializers.ModelSerializer):

    redeemed_by = UserMinimalSerializer(read_only=True)
    undone_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Redemption
        fields = [
            'id',
            'subscription',
            'item_type',
            'redeemed_by',
            'redeemed_at',
            'undone_at',
            'undone_by',
        ]
        read_only_fields = fields
