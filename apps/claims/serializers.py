from rest_framework import serializers

from apps.accounts.models import User
from apps.deals.models import Deal
from .models import Claim, ClaimStatus, Redemption
from .services.credentials import get_redemption_url


# =============================================================================
# Input Serializers
# =============================================================================

class SelfReportConfirmInputSerializer(serializers.Serializer):
    """
    Validate a customer's "I sent the payment" confirmation.

    Fields:
        session_token (str): Token minted when the claim was created
    """

    session_token = serializers.CharField(max_length=64, trim_whitespace=True)


class VendorConfirmPaymentInputSerializer(serializers.Serializer):
    """
    Validate a vendor's confirmation of a received manual payment.

    Fields:
        claim_id (UUID): Claim the payment was for
    """

    claim_id = serializers.UUIDField()


class ClaimFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for the customer's claim list.

    Query Parameters:
        status (str): Derived claim status
    """

    status = serializers.ChoiceField(
        choices=ClaimStatus.choices,
        required=False
    )


# =============================================================================
# Output Serializers
# =============================================================================

class DealSummarySerializer(serializers.ModelSerializer):
    """Deal terms shown next to a claim."""

    vendor_name = serializers.CharField(source='vendor.business_name', read_only=True)
    remaining_balance = serializers.SerializerMethodField()
    requires_deposit = serializers.BooleanField(read_only=True)
    is_sold_out = serializers.BooleanField(read_only=True)

    class Meta:
        model = Deal
        fields = [
            'id',
            'title',
            'vendor',
            'vendor_name',
            'deal_price',
            'original_price',
            'deposit_amount',
            'requires_deposit',
            'remaining_balance',
            'is_sold_out',
            'expires_at',
        ]
        read_only_fields = fields

    def get_remaining_balance(self, obj):
        return str(obj.get_remaining_balance())


class ClaimSerializer(serializers.ModelSerializer):
    """A customer's own claim, including its credential once issued."""

    deal = DealSummarySerializer(read_only=True)
    status = serializers.SerializerMethodField()
    qr_code_url = serializers.SerializerMethodField()

    class Meta:
        model = Claim
        fields = [
            'id',
            'deal',
            'status',
            'session_token',
            'payment_tier',
            'payment_method_type',
            'deposit_confirmed',
            'deposit_confirmed_at',
            'deposit_amount_paid',
            'qr_code',
            'qr_code_url',
            'redemption_code',
            'redeemed',
            'redeemed_at',
            'expires_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_status(self, obj):
        return obj.get_status()

    def get_qr_code_url(self, obj):
        return get_redemption_url(obj.qr_code) if obj.qr_code else None


class CredentialClaimSerializer(serializers.ModelSerializer):
    """
    Claim as seen by whoever holds its QR credential.

    Omits customer identity and the 6-digit fallback code.
    """

    deal = DealSummarySerializer(read_only=True)
    remaining_balance = serializers.SerializerMethodField()

    class Meta:
        model = Claim
        fields = [
            'id',
            'redeemed',
            'redeemed_at',
            'expires_at',
            'deal',
            'remaining_balance',
        ]
        read_only_fields = fields

    def get_remaining_balance(self, obj):
        return str(obj.deal.get_remaining_balance())


class CustomerMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class RedemptionSerializer(serializers.ModelSerializer):
    """Result of a successful scan."""

    customer = CustomerMinimalSerializer(read_only=True)
    scanned_by = CustomerMinimalSerializer(read_only=True)
    deal = DealSummarySerializer(read_only=True)
    remaining_balance = serializers.SerializerMethodField()

    class Meta:
        model = Redemption
        fields = [
            'id',
            'claim',
            'deal',
            'vendor',
            'customer',
            'scanned_by',
            'scanned_at',
            'deposit_amount',
            'remaining_balance',
            'amount_collected',
            'collection_completed',
        ]
        read_only_fields = fields

    def get_remaining_balance(self, obj):
        return str(obj.deal.get_remaining_balance())


class PendingPaymentSerializer(serializers.ModelSerializer):
    """Manual payment a vendor has yet to confirm."""

    deal = DealSummarySerializer(read_only=True)
    customer = CustomerMinimalSerializer(read_only=True)

    class Meta:
        model = Claim
        fields = [
            'id',
            'deal',
            'customer',
            'payment_method_type',
            'payment_reference',
            'created_at',
            'expires_at',
        ]
        read_only_fields = fields
