from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'claims'

router = DefaultRouter()
router.register(r'claims', views.ClaimViewSet, basename='claim')

urlpatterns = [
    # Deposit confirmation
    # POST   /api/webhooks/deposit-confirmed/   - Processor webhook (HMAC signed)
    # POST   /api/claims/confirm-sent/          - Customer self-report (manual tier)
    # POST   /api/vendor/confirm-payment/       - Vendor confirms manual payment
    # GET    /api/vendor/pending-payments/      - Manual payments awaiting confirmation
    path('webhooks/deposit-confirmed/', views.deposit_webhook, name='deposit-webhook'),
    path('claims/confirm-sent/', views.confirm_sent, name='confirm-sent'),
    path('vendor/confirm-payment/', views.vendor_confirm_payment, name='vendor-confirm-payment'),
    path('vendor/pending-payments/', views.vendor_pending_payments, name='vendor-pending-payments'),

    # Redemption
    # GET    /api/redeem/{credential}/          - Status preview
    # POST   /api/redeem/{credential}/          - Redeem
    path('redeem/<str:credential>/', views.RedeemView.as_view(), name='redeem'),

    # Claim ViewSet routes (must come after claims/confirm-sent/)
    # GET    /api/claims/                       - List own claims
    # GET    /api/claims/{id}/                  - Claim details
    # GET    /api/claims/{id}/qr_code/          - QR image (PNG)
    path('', include(router.urls)),
]
