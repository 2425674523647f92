"""
Claim store.

Authoritative reads and guarded writes for claims. Every state change is
a single conditional ``UPDATE`` that only matches while the claim is
still in the expected prior state; the returned row count tells the
caller whether it won. No row locks are held across I/O.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.db.models import BooleanField, ExpressionWrapper, Q, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.claims.models import Claim, ClaimStatus, PaymentTier


def _claims() -> QuerySet:
    return Claim.objects.select_related('deal', 'deal__vendor', 'customer')


def get_by_session_token(session_token: str) -> Optional[Claim]:
    """Claim carrying this processor correlation token, if any."""
    return _claims().filter(session_token=session_token).first()


def get_for_customer(*, session_token: str, customer: User) -> Optional[Claim]:
    """Claim with this token owned by the customer, if any."""
    return _claims().filter(session_token=session_token, customer=customer).first()


def get_by_id(claim_id: UUID) -> Optional[Claim]:
    return _claims().filter(id=claim_id).first()


def get_by_qr_code(qr_code: str) -> Optional[Claim]:
    return _claims().filter(qr_code=qr_code).first()


def get_by_redemption_code(*, redemption_code: str, vendor_user: User) -> Optional[Claim]:
    """
    Resolve a 6-digit fallback code within the scanning user's vendors.

    The short code is not globally unique. When several of the vendor's
    claims share it, an unredeemed claim wins over redeemed ones, then an
    unexpired one over expired ones, then the most recently confirmed.
    """
    return (
        _claims()
        .filter(redemption_code=redemption_code)
        .filter(
            Q(deal__vendor__owner=vendor_user) |
            Q(deal__vendor__staff=vendor_user)
        )
        .distinct()
        .annotate(is_live=ExpressionWrapper(
            Q(expires_at__gte=timezone.now()),
            output_field=BooleanField()
        ))
        .order_by('redeemed', '-is_live', '-deposit_confirmed_at')
        .first()
    )


def confirm_deposit(
    *,
    claim_id: UUID,
    qr_code: str,
    redemption_code: str,
    amount_paid: Optional[Decimal],
    now: datetime
) -> bool:
    """
    Mark a claim's deposit as confirmed and attach its credential.

    Guarded by ``deposit_confirmed=False`` and an unexpired deadline:
    of two racing confirmations exactly one matches a row.

    Returns:
        True if this call performed the transition

    Raises:
        IntegrityError: If ``qr_code`` collides with an existing claim
    """
    updated = Claim.objects.filter(
        id=claim_id,
        deposit_confirmed=False,
        expires_at__gte=now,
    ).update(
        deposit_confirmed=True,
        deposit_confirmed_at=now,
        qr_code=qr_code,
        redemption_code=redemption_code,
        deposit_amount_paid=amount_paid,
        updated_at=now,
    )
    return updated == 1


def mark_redeemed(*, claim_id: UUID, now: datetime) -> bool:
    """
    Consume a claim's credential.

    Guarded by ``redeemed=False``, ``deposit_confirmed=True`` and an
    unexpired deadline; two staff scanning the same claim cannot both
    match.

    Returns:
        True if this call performed the transition
    """
    updated = Claim.objects.filter(
        id=claim_id,
        redeemed=False,
        deposit_confirmed=True,
        expires_at__gte=now,
    ).update(
        redeemed=True,
        redeemed_at=now,
        updated_at=now,
    )
    return updated == 1


def status_filter(status: str, now: Optional[datetime] = None) -> Q:
    """
    Query equivalent of ``compute_claim_status`` for one status.

    Raises:
        ValueError: If status is not a ClaimStatus value
    """
    now = now or timezone.now()
    if status == ClaimStatus.REDEEMED:
        return Q(redeemed=True)
    if status == ClaimStatus.EXPIRED:
        return Q(redeemed=False, expires_at__lt=now)
    if status == ClaimStatus.CONFIRMED:
        return Q(redeemed=False, expires_at__gte=now, deposit_confirmed=True)
    if status == ClaimStatus.PENDING:
        return Q(redeemed=False, expires_at__gte=now, deposit_confirmed=False)
    raise ValueError(f"Unknown claim status: {status}")


def get_customer_claims(*, customer: User, status: Optional[str] = None) -> QuerySet:
    """Customer's claims, newest first, optionally narrowed to one derived status."""
    queryset = _claims().filter(customer=customer)
    if status:
        queryset = queryset.filter(status_filter(status))
    return queryset.order_by('-created_at')


def get_vendor_pending_claims(*, vendor_user: User) -> QuerySet:
    """
    Manual-tier claims awaiting the vendor's payment confirmation.

    Covers every vendor the user owns or staffs; expired claims are left
    out since they can no longer be confirmed.
    """
    return (
        _claims()
        .filter(
            Q(deal__vendor__owner=vendor_user) |
            Q(deal__vendor__staff=vendor_user)
        )
        .filter(
            payment_tier=PaymentTier.MANUAL,
            deposit_confirmed=False,
            expires_at__gte=timezone.now(),
        )
        .distinct()
        .order_by('-created_at')
    )
