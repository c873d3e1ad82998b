from rest_framework import viewsets, status, serializers
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.permissions import ActsAsCustomer, ActsAsBusinessOwner, ActsAsStaff
from apps.businesses.models import Business
from apps.businesses.services import get_business_for_owner, is_business_staff
from apps.businesses.services import NotFoundError as BusinessNotFoundError
from apps.payments.exceptions import ProviderError

from .serializers import (
    ProductSerializer,
    ProductWriteSerializer,
    ProductUpdateSerializer,
    ProductFilterSerializer,
    SubscriptionSerializer,
    BusinessSubscriptionSerializer,
    SubscribeSerializer,
    SubscribeResponseSerializer,
    CancelSubscriptionSerializer,
    RedeemSerializer,
    RedemptionSerializer,
)
from .services import (
    create_product,
    update_product,
    deactivate_product,
    get_product,
    list_products,
    subscribe,
    cancel,
    list_subscriptions_for_user,
    list_subscriptions_for_business,
    get_subscription,
    redeem,
    undo,
    list_redemptions,
    # Exceptions
    SubscriptionsServiceError,
    NotFoundError,
    ConflictError,
    ExhaustedError,
    InvalidStateError,
    BlackoutError,
    InsufficientPermissionsError,
)


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    BusinessNotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ExhaustedError: status.HTTP_400_BAD_REQUEST,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    BlackoutError: status.HTTP_400_BAD_REQUEST,
    InsufficientPermissionsError: status.HTTP_403_FORBIDDEN,
    ProviderError: status.HTTP_502_BAD_GATEWAY,
}


def _error_response(exc):
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return Response({'error': str(exc)}, status=code)


UUID_REGEX = '[0-9a-f-]{36}'


class SubscriptionPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


# =============================================================================
# Products
# =============================================================================

class ProductViewSet(viewsets.ModelViewSet):
    """
    ViewSet for subscription products.

    All business logic is handled by services.

    list: Active products, optionally filtered by ?business_id=
    create: Create a product for the owner's business
    retrieve: Get a product
    partial_update: Edit a product (owner only)
    destroy: Deactivate a product (owner only)
    """

    serializer_class = ProductSerializer
    pagination_class = SubscriptionPagination
    lookup_value_regex = UUID_REGEX
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        filters = ProductFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return list_products(business_id=filters.validated_data.get('business_id'))

    def get_permissions(self):
        if self.action in ['create', 'partial_update', 'destroy']:
            return [ActsAsBusinessOwner()]
        return [IsAuthenticated()]

    @extend_schema(
        parameters=[OpenApiParameter('business_id', str, description='Only products of this business')],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def retrieve(self, request, *args, **kwargs):
        try:
            product = get_product(product_id=self.kwargs['pk'])
        except NotFoundError as e:
            return _error_response(e)
        return Response(ProductSerializer(product).data)

    @extend_schema(request=ProductWriteSerializer, responses={201: ProductSerializer, 403: ErrorResponseSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            business = get_business_for_owner(owner=request.user)
            product = create_product(
                business_id=business.id,
                user=request.user,
                **serializer.validated_data
            )
        except (SubscriptionsServiceError, BusinessNotFoundError, ProviderError) as e:
            return _error_response(e)

        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ProductUpdateSerializer, responses={200: ProductSerializer, 403: ErrorResponseSerializer})
    def partial_update(self, request, *args, **kwargs):
        serializer = ProductUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            product = update_product(
                product_id=self.kwargs['pk'],
                user=request.user,
                **serializer.validated_data
            )
        except (SubscriptionsServiceError, ProviderError) as e:
            return _error_response(e)

        return Response(ProductSerializer(product).data)

    def destroy(self, request, *args, **kwargs):
        try:
            deactivate_product(product_id=self.kwargs['pk'], user=request.user)
        except SubscriptionsServiceError as e:
            return _error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Subscriptions
# =============================================================================

class SubscriptionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The current user's subscriptions.

    list: Own subscriptions, optionally filtered by ?status=
    retrieve: A subscription visible to the user
    subscribe: Subscribe to a product
    cancel: Cancel a subscription
    redeem: Redeem one item (business staff)
    redemptions: Redemption history
    """

    serializer_class = SubscriptionSerializer
    pagination_class = SubscriptionPagination
    lookup_value_regex = UUID_REGEX
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return list_subscriptions_for_user(
            user=self.request.user,
            status=self.request.query_params.get('status') or None,
        )

    def retrieve(self, request, *args, **kwargs):
        try:
            subscription = get_subscription(subscription_id=self.kwargs['pk'], user=request.user)
        except NotFoundError as e:
            return _error_response(e)
        return Response(SubscriptionSerializer(subscription).data)

    @extend_schema(
        request=SubscribeSerializer,
        responses={
            201: SubscribeResponseSerializer,
            404: ErrorResponseSerializer,
            409: ErrorResponseSerializer,
            502: ErrorResponseSerializer,
        },
    )
    @action(detail=False, methods=['post'], permission_classes=[ActsAsCustomer])
    def subscribe(self, request):
        """Subscribe to a product; returns the payment client secret."""
        serializer = SubscribeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = subscribe(user=request.user, product_id=serializer.validated_data['product_id'])
        except (SubscriptionsServiceError, ProviderError) as e:
            return _error_response(e)

        return Response({
            'subscription': SubscriptionSerializer(result.subscription).data,
            'client_secret': result.client_secret,
        }, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=CancelSubscriptionSerializer,
        responses={200: SubscriptionSerializer, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    )
    @action(detail=True, methods=['post'], permission_classes=[ActsAsCustomer])
    def cancel(self, request, pk=None):
        serializer = CancelSubscriptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            subscription = cancel(
                subscription_id=pk,
                user=request.user,
                reason=serializer.validated_data['reason'],
            )
        except (SubscriptionsServiceError, ProviderError) as e:
            return _error_response(e)

        return Response(SubscriptionSerializer(subscription).data)

    @extend_schema(
        request=RedeemSerializer,
        responses={
            201: RedemptionSerializer,
            400: ErrorResponseSerializer,
            403: ErrorResponseSerializer,
            404: ErrorResponseSerializer,
        },
    )
    @action(detail=True, methods=['post'], permission_classes=[ActsAsStaff])
    def redeem(self, request, pk=None):
        """Record a redemption served by the current staff member."""
        serializer = RedeemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            redemption = redeem(
                subscription_id=pk,
                item_type=serializer.validated_data['item_type'],
                staff=request.user,
            )
        except SubscriptionsServiceError as e:
            return _error_response(e)

        return Response(RedemptionSerializer(redemption).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        parameters=[OpenApiParameter('include_undone', bool)],
        responses={200: RedemptionSerializer(many=True), 404: ErrorResponseSerializer},
    )
    @action(detail=True, methods=['get'])
    def redemptions(self, request, pk=None):
        try:
            subscription = get_subscription(subscription_id=pk, user=request.user)
        except NotFoundError as e:
            return _error_response(e)

        include_undone = request.query_params.get('include_undone', '').lower() in ('1', 'true', 'yes')
        redemptions = list_redemptions(subscription_id=subscription.id, include_undone=include_undone)
        return Response(RedemptionSerializer(redemptions, many=True).data)


@extend_schema(
    request=None,
    responses={200: RedemptionSerializer, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Undo a redemption. The record is kept and marked undone.",
    tags=['subscriptions'],
)
@api_view(['POST'])
@permission_classes([ActsAsStaff])
def undo_redemption(request, redemption_id):
    try:
        redemption = undo(redemption_id=redemption_id, staff=request.user)
    except SubscriptionsServiceError as e:
        return _error_response(e)
    return Response(RedemptionSerializer(redemption).data)


@extend_schema(
    parameters=[OpenApiParameter('status', str, description='Filter by subscription status')],
    responses={200: BusinessSubscriptionSerializer(many=True), 403: ErrorResponseSerializer},
    description="Subscriptions sold by a business the current user owns or works for.",
    tags=['subscriptions'],
)
@api_view(['GET'])
@permission_classes([ActsAsStaff])
def business_subscriptions(request, business_id):
    try:
        business = Business.objects.get(id=business_id)
    except Business.DoesNotExist:
        return Response({'error': 'Business not found'}, status=status.HTTP_404_NOT_FOUND)

    if not is_business_staff(business, request.user):
        return Response(
            {'error': 'You do not work for this business'},
            status=status.HTTP_403_FORBIDDEN
        )

    subscriptions = list_subscriptions_for_business(
        business_id=business.id,
        status=request.query_params.get('status') or None,
    )
    return Response(BusinessSubscriptionSerializer(subscriptions, many=True).data)
