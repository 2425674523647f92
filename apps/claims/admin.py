from django.contrib import admin
from django.utils.html import format_html

from .models import Claim, ClaimStatus, Redemption


STATUS_COLORS = {
    ClaimStatus.PENDING: '#6c757d',
    ClaimStatus.CONFIRMED: '#28a745',
    ClaimStatus.REDEEMED: '#007bff',
    ClaimStatus.EXPIRED: '#dc3545',
}


@admin.register(Claim)
class ClaimAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'customer',
        'deal',
        'payment_tier',
        'status_badge',
        'deposit_confirmed_at',
        'redeemed_at',
        'expires_at',
    ]
    list_filter = ['payment_tier', 'deposit_confirmed', 'redeemed']
    search_fields = ['session_token', 'qr_code', 'redemption_code', 'customer__email']
    raw_id_fields = ['customer', 'deal']
    # Lifecycle fields are written by the services only
    readonly_fields = [
        'deposit_confirmed',
        'deposit_confirmed_at',
        'deposit_amount_paid',
        'qr_code',
        'redemption_code',
        'redeemed',
        'redeemed_at',
        'created_at',
        'updated_at',
    ]

    @admin.display(description='Status')
    def status_badge(self, obj):
        status = obj.get_status()
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 10px; '
            'border-radius: 3px;">{}</span>',
            STATUS_COLORS.get(status, '#6c757d'),
            ClaimStatus(status).label
        )


@admin.register(Redemption)
class RedemptionAdmin(admin.ModelAdmin):
    list_display = ['claim', 'vendor', 'customer', 'scanned_by', 'scanned_at', 'collection_completed']
    list_filter = ['vendor', 'collection_completed']
    raw_id_fields = ['claim', 'deal', 'vendor', 'customer', 'scanned_by']
    readonly_fields = ['scanned_at']
