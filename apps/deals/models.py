from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Vendor(models.Model):
    """A business that publishes deals and redeems them in person."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='owned_vendors'
    )
    # Staff allowed to scan codes and confirm payments besides the owner
    staff = models.ManyToManyField(
        'accounts.User',
        blank=True,
        related_name='vendor_memberships'
    )

    business_name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)

    # HMAC key for deposit webhooks; blank means signatures are not checked
    deposit_webhook_secret = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vendors'
        ordering = ['business_name']

    def __str__(self):
        return self.business_name

    def has_staff(self, user):
        """Check if user may act on behalf of this vendor."""
        if not user or not user.is_authenticated:
            return False
        if self.owner_id == user.id:
            return True
        return self.staff.filter(id=user.id).exists()

    @property
    def has_webhook_secret(self):
        return bool(self.deposit_webhook_secret)


class Deal(models.Model):
    """
    A time-boxed discount offer.

    Read-only from the claims core's perspective except for
    ``claims_count``, which only the counter service mutates.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.CASCADE,
        related_name='deals'
    )
    title = models.CharField(max_length=200)

    # Pricing
    deal_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )
    # Null or zero means the claim is free
    deposit_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    # Capacity (null = unbounded)
    max_claims = models.PositiveIntegerField(null=True, blank=True)
    claims_count = models.PositiveIntegerField(default=0)

    expires_at = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'deals'
        indexes = [
            models.Index(fields=['vendor', 'expires_at'], name='deals_vendor_expires_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} ({self.vendor.business_name})"

    @property
    def requires_deposit(self):
        return bool(self.deposit_amount)

    def get_remaining_balance(self):
        """Amount still due in store after the deposit."""
        deposit = self.deposit_amount or Decimal('0.00')
        return max(Decimal('0.00'), self.deal_price - deposit)

    @property
    def is_sold_out(self):
        return self.max_claims is not None and self.claims_count >= self.max_claims
