from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'subscriptions'

router = SimpleRouter()
router.register(r'products', views.ProductViewSet, basename='product')
router.register(r'', views.SubscriptionViewSet, basename='subscription')

urlpatterns = [
    # Product ViewSet routes
    # GET    /api/subscriptions/products/            - List active products
    # POST   /api/subscriptions/products/            - Create product (owner)
    # GET    /api/subscriptions/products/{id}/       - Get product
    # PATCH  /api/subscriptions/products/{id}/       - Edit product (owner)
    # DELETE /api/subscriptions/products/{id}/       - Deactivate product (owner)

    # Subscription ViewSet routes
    # GET    /api/subscriptions/                     - List own subscriptions
    # GET    /api/subscriptions/{id}/                - Get subscription
    # POST   /api/subscriptions/subscribe/           - Subscribe to a product
    # POST   /api/subscriptions/{id}/cancel/         - Cancel
    # POST   /api/subscriptions/{id}/redeem/         - Redeem one item (staff)
    # GET    /api/subscriptions/{id}/redemptions/    - Redemption history

    path('redemptions/<uuid:redemption_id>/undo/', views.undo_redemption, name='redemption-undo'),
    path('business/<uuid:business_id>/', views.business_subscriptions, name='business-subscriptions'),

    path('', include(router.urls)),
]
