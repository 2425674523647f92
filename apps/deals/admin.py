from django.contrib import admin

from .models import Vendor, Deal


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'owner', 'email', 'has_webhook_secret', 'created_at']
    search_fields = ['business_name', 'email', 'owner__email']
    filter_horizontal = ['staff']
    raw_id_fields = ['owner']

    @admin.display(boolean=True, description='Webhook secret')
    def has_webhook_secret(self, obj):
        return obj.has_webhook_secret


@admin.register(Deal)
class DealAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'vendor',
        'deal_price',
        'deposit_amount',
        'claims_count',
        'max_claims',
        'expires_at',
    ]
    list_filter = ['vendor']
    search_fields = ['title', 'vendor__business_name']
    date_hierarchy = 'expires_at'
    # Maintained by the counter service only
    readonly_fields = ['claims_count', 'created_at', 'updated_at']
