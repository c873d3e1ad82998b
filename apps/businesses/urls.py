from django.urls import path
from . import views

app_name = 'businesses'

urlpatterns = [
    # Business profile (owner)
    path('', views.create, name='create'),
    path('mine/', views.my_business, name='mine'),
    path('mine/update/', views.update, name='update'),

    # Marketplace (customers)
    path('marketplace/', views.marketplace_list, name='marketplace-list'),
    path('marketplace/<uuid:business_id>/', views.marketplace_detail, name='marketplace-detail'),

    # Payment onboarding (owner)
    path('mine/ensure-account/', views.ensure_payment_account, name='ensure-account'),
    path('mine/refresh-onboarding/', views.refresh_payment_onboarding, name='refresh-onboarding'),
    path('mine/onboarding-status/', views.onboarding_status, name='onboarding-status'),

    # Staff (owner or manager)
    path('mine/staff/', views.staff_list, name='staff-list'),
    path('mine/staff/invite/', views.staff_invite, name='staff-invite'),
    path('staff/<uuid:staff_id>/', views.staff_remove, name='staff-remove'),

    # Invitations (invitee)
    path('invitations/pending/', views.pending_invitations, name='invitations-pending'),
    path('invitations/<uuid:invitation_id>/accept/', views.invitation_accept, name='invitation-accept'),
    path('invitations/<uuid:invitation_id>/decline/', views.invitation_decline, name='invitation-decline'),

    # Administration
    path('admin/', views.admin_list, name='admin-list'),
    path('admin/stats/', views.admin_dashboard, name='admin-stats'),
    path('admin/customers/', views.admin_customers, name='admin-customers'),
    path('admin/<uuid:business_id>/approve/', views.admin_approve, name='admin-approve'),
    path('admin/<uuid:business_id>/reject/', views.admin_reject, name='admin-reject'),
    path('admin/<uuid:business_id>/suspend/', views.admin_suspend, name='admin-suspend'),
    path('admin/<uuid:business_id>/activate/', views.admin_activate, name='admin-activate'),
]
