from django.db import models
from django.db.models import Q
from django.utils import timezone
import uuid


class PaymentTier(models.TextChoices):
    """How a claim's payment gets verified."""
    MANUAL = 'manual', 'Manual (self-reported)'
    LINK = 'link', 'Payment link'
    INTEGRATED = 'integrated', 'Integrated processor'


class ClaimStatus(models.TextChoices):
    PENDING = 'pending', 'Pending deposit'
    CONFIRMED = 'confirmed', 'Deposit confirmed'
    REDEEMED = 'redeemed', 'Redeemed'
    EXPIRED = 'expired', 'Expired'


def compute_claim_status(*, redeemed, deposit_confirmed, expires_at, now=None):
    """
    Derive the displayed claim status from stored fields.

    Expiry is never written to the database; a claim is expired when it
    has not been redeemed and its redemption deadline has passed.
    """
    now = now or timezone.now()
    if redeemed:
        return ClaimStatus.REDEEMED
    if expires_at < now:
        return ClaimStatus.EXPIRED
    if deposit_confirmed:
        return ClaimStatus.CONFIRMED
    return ClaimStatus.PENDING


class Claim(models.Model):
    """
    A customer's reservation of a deal.

    Created elsewhere in the pending state. The claims services move it
    through exactly two writes: deposit confirmed (credential issued)
    and redeemed (credential consumed).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='claims'
    )
    deal = models.ForeignKey(
        'deals.Deal',
        on_delete=models.CASCADE,
        related_name='claims'
    )

    # Correlation key handed to payment processors instead of the claim id
    session_token = models.CharField(max_length=64, unique=True)

    # Payment verification
    payment_tier = models.CharField(
        max_length=20,
        choices=PaymentTier.choices,
        default=PaymentTier.MANUAL
    )
    payment_method_type = models.CharField(max_length=30, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)

    # Deposit confirmation
    deposit_confirmed = models.BooleanField(default=False)
    deposit_confirmed_at = models.DateTimeField(null=True, blank=True)
    deposit_amount_paid = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    # Redemption credential (bearer secret + 6-digit staff fallback)
    qr_code = models.CharField(max_length=64, unique=True, null=True, blank=True)
    redemption_code = models.CharField(max_length=6, null=True, blank=True, db_index=True)

    # Redemption
    redeemed = models.BooleanField(default=False)
    redeemed_at = models.DateTimeField(null=True, blank=True)

    # Redemption deadline, fixed at claim creation
    expires_at = models.DateTimeField()

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'claims'
        indexes = [
            models.Index(fields=['customer', 'created_at'], name='claims_customer_created_idx'),
            models.Index(fields=['deal', 'deposit_confirmed'], name='claims_deal_confirmed_idx'),
            models.Index(fields=['expires_at'], name='claims_expires_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(qr_code__isnull=True, redemption_code__isnull=True) |
                    Q(qr_code__isnull=False, redemption_code__isnull=False)
                ),
                name='claims_codes_set_together',
            ),
            models.CheckConstraint(
                condition=(
                    Q(deposit_confirmed=True, qr_code__isnull=False) |
                    Q(deposit_confirmed=False, qr_code__isnull=True)
                ),
                name='claims_codes_iff_confirmed',
            ),
            models.CheckConstraint(
                condition=Q(redeemed=False) | Q(deposit_confirmed=True),
                name='claims_redeemed_requires_deposit',
            ),
            models.CheckConstraint(
                condition=(
                    Q(redeemed=True, redeemed_at__isnull=False) |
                    Q(redeemed=False, redeemed_at__isnull=True)
                ),
                name='claims_redeemed_at_iff_redeemed',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Claim {self.id} on {self.deal_id} ({self.get_status()})"

    def get_status(self, now=None):
        return compute_claim_status(
            redeemed=self.redeemed,
            deposit_confirmed=self.deposit_confirmed,
            expires_at=self.expires_at,
            now=now,
        )

    def is_expired(self, now=None):
        """True once the redemption deadline has passed (redeemed or not)."""
        return self.expires_at < (now or timezone.now())


class Redemption(models.Model):
    """
    The in-person consumption of a claim's credential.

    Written once, at the claim's terminal transition. The settlement
    fields belong to the in-store collection workflow for deals with a
    remaining balance.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    claim = models.OneToOneField(
        Claim,
        on_delete=models.CASCADE,
        related_name='redemption'
    )
    deal = models.ForeignKey(
        'deals.Deal',
        on_delete=models.CASCADE,
        related_name='redemptions'
    )
    vendor = models.ForeignKey(
        'deals.Vendor',
        on_delete=models.CASCADE,
        related_name='redemptions'
    )
    customer = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='redemptions'
    )
    scanned_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='scanned_redemptions'
    )
    scanned_at = models.DateTimeField()

    # Settlement (hybrid deposit + pay remainder in store)
    deposit_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )
    amount_collected = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )
    collection_completed = models.BooleanField(default=False)
    collection_completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'redemptions'
        indexes = [
            models.Index(fields=['vendor', 'scanned_at'], name='redemptions_vendor_scanned_idx'),
        ]
        ordering = ['-scanned_at']

    def __str__(self):
        return f"Redemption of {self.claim_id} at {self.scanned_at:%Y-%m-%d %H:%M}"
