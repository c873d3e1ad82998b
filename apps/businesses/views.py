from rest_framework import status, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.permissions import ActsAsBusinessOwner, ActsAsStaff, ActsAsAdmin
from apps.accounts.serializers import UserSerializer
from apps.payments.exceptions import ProviderError

from .serializers import (
    BusinessSerializer,
    BusinessCreateSerializer,
    BusinessUpdateSerializer,
    BusinessStatusFilterSerializer,
    RejectBusinessSerializer,
    StaffSerializer,
    InvitationSerializer,
    InviteStaffSerializer,
    OnboardingRequestSerializer,
    OnboardingStatusSerializer,
    MarketplaceFilterSerializer,
    MarketplaceBusinessSerializer,
    MarketplaceBusinessDetailSerializer,
    AdminStatsSerializer,
)
from .services import (
    create_business,
    get_business_for_owner,
    update_business,
    list_businesses,
    approve_business,
    reject_business,
    suspend_business,
    activate_business,
    list_marketplace_businesses,
    get_marketplace_business,
    admin_stats,
    list_customers,
    invite_staff,
    accept_invitation,
    decline_invitation,
    remove_staff,
    list_pending_invitations,
    list_staff,
    get_managed_business,
    ensure_account,
    refresh_onboarding,
    get_onboarding_status,
    # Exceptions
    BusinessesServiceError,
    NotFoundError,
    DuplicateError,
    InvalidStateError,
    InsufficientPermissionsError,
)


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    InsufficientPermissionsError: status.HTTP_403_FORBIDDEN,
    ProviderError: status.HTTP_502_BAD_GATEWAY,
}


def _error_response(exc):
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return Response({'error': str(exc)}, status=code)


def _own_business(request):
    return get_business_for_owner(owner=request.user)


# =============================================================================
# Business profile
# =============================================================================

@extend_schema(
    request=BusinessCreateSerializer,
    responses={201: BusinessSerializer, 409: ErrorResponseSerializer},
    description="Register the current owner's business. It starts pending approval.",
    tags=['businesses'],
)
@api_view(['POST'])
@permission_classes([ActsAsBusinessOwner])
def create(request):
    serializer = BusinessCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        business = create_business(owner=request.user, **serializer.validated_data)
    except DuplicateError as e:
        return _error_response(e)

    return Response(BusinessSerializer(business).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: BusinessSerializer, 404: ErrorResponseSerializer},
    description="Get the business owned by the current user.",
    tags=['businesses'],
)
@api_view(['GET'])
@permission_classes([ActsAsBusinessOwner])
def my_business(request):
    try:
        business = _own_business(request)
    except NotFoundError as e:
        return _error_response(e)
    return Response(BusinessSerializer(business).data)


@extend_schema(
    request=BusinessUpdateSerializer,
    responses={200: BusinessSerializer, 404: ErrorResponseSerializer},
    description="Update the current owner's business profile.",
    tags=['businesses'],
)
@api_view(['PATCH'])
@permission_classes([ActsAsBusinessOwner])
def update(request):
    serializer = BusinessUpdateSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)

    try:
        business = _own_business(request)
        business = update_business(
            business_id=business.id,
            user=request.user,
            **serializer.validated_data
        )
    except BusinessesServiceError as e:
        return _error_response(e)

    return Response(BusinessSerializer(business).data)


# =============================================================================
# Marketplace
# =============================================================================

@extend_schema(
    parameters=[
        OpenApiParameter('business_type', str, description='Filter by business type'),
        OpenApiParameter('search', str, description='Match name, description or address'),
    ],
    responses={200: MarketplaceBusinessSerializer(many=True)},
    description="Businesses currently selling subscriptions, with at least one active product.",
    tags=['marketplace'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def marketplace_list(request):
    filters = MarketplaceFilterSerializer(data=request.query_params)
    filters.is_valid(raise_exception=True)

    businesses = list_marketplace_businesses(**filters.validated_data)
    return Response(MarketplaceBusinessSerializer(businesses, many=True).data)


@extend_schema(
    responses={200: MarketplaceBusinessDetailSerializer, 404: ErrorResponseSerializer},
    tags=['marketplace'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def marketplace_detail(request, business_id):
    try:
        business = get_marketplace_business(business_id=business_id)
    except NotFoundError as e:
        return _error_response(e)
    return Response(MarketplaceBusinessDetailSerializer(business).data)


# =============================================================================
# Payment onboarding
# =============================================================================

@extend_schema(
    request=OnboardingRequestSerializer,
    responses={
        200: OnboardingStatusSerializer,
        404: ErrorResponseSerializer,
        502: ErrorResponseSerializer,
    },
    description="Create the business's connected payment account if needed and return an onboarding link.",
    tags=['businesses'],
)
@api_view(['POST'])
@permission_classes([ActsAsBusinessOwner])
def ensure_payment_account(request):
    serializer = OnboardingRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        business = _own_business(request)
        result = ensure_account(
            business_id=business.id,
            email=business.email,
            business_name=business.name,
            **serializer.validated_data
        )
    except (BusinessesServiceError, ProviderError) as e:
        return _error_response(e)

    return Response(OnboardingStatusSerializer(result).data)


@extend_schema(
    request=OnboardingRequestSerializer,
    responses={
        200: OnboardingStatusSerializer,
        400: ErrorResponseSerializer,
        502: ErrorResponseSerializer,
    },
    description="Re-check onboarding with the payment gateway; returns a fresh link while incomplete.",
    tags=['businesses'],
)
@api_view(['POST'])
@permission_classes([ActsAsBusinessOwner])
def refresh_payment_onboarding(request):
    serializer = OnboardingRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        business = _own_business(request)
        result = refresh_onboarding(business_id=business.id, **serializer.validated_data)
    except (BusinessesServiceError, ProviderError) as e:
        return _error_response(e)

    return Response(OnboardingStatusSerializer(result).data)


@extend_schema(
    responses={200: OnboardingStatusSerializer, 404: ErrorResponseSerializer},
    tags=['businesses'],
)
@api_view(['GET'])
@permission_classes([ActsAsBusinessOwner])
def onboarding_status(request):
    try:
        business = _own_business(request)
        result = get_onboarding_status(business_id=business.id)
    except BusinessesServiceError as e:
        return _error_response(e)

    return Response(OnboardingStatusSerializer(result).data)


# =============================================================================
# Staff
# =============================================================================

@extend_schema(
    responses={200: StaffSerializer(many=True)},
    description="List staff members and pending invitations of the business the current user owns or manages.",
    tags=['staff'],
)
@api_view(['GET'])
@permission_classes([ActsAsStaff])
def staff_list(request):
    try:
        business = get_managed_business(user=request.user)
    except NotFoundError as e:
        return _error_response(e)

    members = list_staff(business_id=business.id)
    return Response(StaffSerializer(members, many=True).data)


@extend_schema(
    request=InviteStaffSerializer,
    responses={
        201: StaffSerializer,
        403: ErrorResponseSerializer,
        409: ErrorResponseSerializer,
    },
    tags=['staff'],
)
@api_view(['POST'])
@permission_classes([ActsAsStaff])
def staff_invite(request):
    serializer = InviteStaffSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        business = get_managed_business(user=request.user)
        invitation = invite_staff(
            business_id=business.id,
            email=serializer.validated_data['email'],
            role=serializer.validated_data['role'],
            invited_by=request.user,
        )
    except BusinessesServiceError as e:
        return _error_response(e)

    return Response(StaffSerializer(invitation).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={204: None, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Remove a staff member or withdraw a pending invitation.",
    tags=['staff'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def staff_remove(request, staff_id):
    try:
        remove_staff(staff_id=staff_id, removed_by=request.user)
    except BusinessesServiceError as e:
        return _error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    responses={200: InvitationSerializer(many=True)},
    description="Invitations addressed to the current user's email that are still pending.",
    tags=['staff'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pending_invitations(request):
    invitations = list_pending_invitations(email=request.user.email)
    return Response(InvitationSerializer(invitations, many=True).data)


@extend_schema(
    request=None,
    responses={200: StaffSerializer, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    tags=['staff'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invitation_accept(request, invitation_id):
    try:
        membership = accept_invitation(invitation_id=invitation_id, user=request.user)
    except BusinessesServiceError as e:
        return _error_response(e)
    return Response(StaffSerializer(membership).data)


@extend_schema(
    request=None,
    responses={204: None, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    tags=['staff'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def invitation_decline(request, invitation_id):
    try:
        decline_invitation(invitation_id=invitation_id, user=request.user)
    except BusinessesServiceError as e:
        return _error_response(e)
    return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Administration
# =============================================================================

@extend_schema(
    parameters=[
        OpenApiParameter('status', str, description='Filter by business status'),
    ],
    responses={200: BusinessSerializer(many=True)},
    tags=['admin'],
)
@api_view(['GET'])
@permission_classes([ActsAsAdmin])
def admin_list(request):
    filters = BusinessStatusFilterSerializer(data=request.query_params)
    filters.is_valid(raise_exception=True)

    businesses = list_businesses(status=filters.validated_data.get('status'))
    return Response(BusinessSerializer(businesses, many=True).data)


def _admin_action(request, business_id, action, **kwargs):
    try:
        business = action(business_id=business_id, admin=request.user, **kwargs)
    except BusinessesServiceError as e:
        return _error_response(e)
    return Response(BusinessSerializer(business).data)


@extend_schema(request=None, responses={200: BusinessSerializer, 400: ErrorResponseSerializer}, tags=['admin'])
@api_view(['POST'])
@permission_classes([ActsAsAdmin])
def admin_approve(request, business_id):
    return _admin_action(request, business_id, approve_business)


@extend_schema(request=RejectBusinessSerializer, responses={200: BusinessSerializer, 400: ErrorResponseSerializer}, tags=['admin'])
@api_view(['POST'])
@permission_classes([ActsAsAdmin])
def admin_reject(request, business_id):
    serializer = RejectBusinessSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return _admin_action(request, business_id, reject_business, reason=serializer.validated_data['reason'])


@extend_schema(request=None, responses={200: BusinessSerializer, 400: ErrorResponseSerializer}, tags=['admin'])
@api_view(['POST'])
@permission_classes([ActsAsAdmin])
def admin_suspend(request, business_id):
    return _admin_action(request, business_id, suspend_business)


@extend_schema(request=None, responses={200: BusinessSerializer, 400: ErrorResponseSerializer}, tags=['admin'])
@api_view(['POST'])
@permission_classes([ActsAsAdmin])
def admin_activate(request, business_id):
    return _admin_action(request, business_id, activate_business)


@extend_schema(responses={200: AdminStatsSerializer}, tags=['admin'])
@api_view(['GET'])
@permission_classes([ActsAsAdmin])
def admin_dashboard(request):
    return Response(AdminStatsSerializer(admin_stats()).data)


@extend_schema(responses={200: UserSerializer(many=True)}, tags=['admin'])
@api_view(['GET'])
@permission_classes([ActsAsAdmin])
def admin_customers(request):
    return Response(UserSerializer(list_customers(), many=True).data)
