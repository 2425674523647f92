"""
Redemption service.

Point-of-sale side of the claim lifecycle: resolve a presented
credential, report its status, and consume it exactly once.
"""

import logging
from typing import Optional, Tuple

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.claims.models import Claim, ClaimStatus, Redemption

from . import claim_store
from .credentials import is_redemption_code
from .exceptions import (
    AlreadyRedeemedError,
    ClaimExpiredError,
    ClaimNotFoundError,
    DepositNotConfirmedError,
    WrongVendorError,
)

logger = logging.getLogger(__name__)


# Status names shown to whoever holds a credential
VALID = 'valid'
REDEEMED = 'redeemed'
EXPIRED = 'expired'

_CREDENTIAL_STATUS = {
    ClaimStatus.CONFIRMED: VALID,
    ClaimStatus.REDEEMED: REDEEMED,
    ClaimStatus.EXPIRED: EXPIRED,
}


def lookup_status(*, qr_code: str) -> Tuple[str, Claim]:
    """
    Read-only status of the claim behind an opaque credential.

    Used for the staff preview before committing and for the customer's
    own view of their code.

    Returns:
        Tuple of ('valid' | 'redeemed' | 'expired', claim)

    Raises:
        ClaimNotFoundError: If no claim carries this credential
    """
    claim = claim_store.get_by_qr_code(qr_code.strip())
    if claim is None:
        raise ClaimNotFoundError("Invalid code")

    # A credential only exists on confirmed claims, so PENDING can't occur
    return _CREDENTIAL_STATUS[claim.get_status()], claim


def resolve_claim(*, credential: str, scanned_by: User) -> Claim:
    """
    Find the claim a presented credential refers to.

    6-digit codes are looked up among the scanning user's own vendors;
    anything else is treated as the opaque QR credential.

    Raises:
        ClaimNotFoundError: If nothing matches
    """
    credential = credential.strip()
    if is_redemption_code(credential):
        claim = claim_store.get_by_redemption_code(
            redemption_code=credential,
            vendor_user=scanned_by,
        )
        if claim is None:
            raise ClaimNotFoundError("Invalid redemption code")
        return claim

    claim = claim_store.get_by_qr_code(credential)
    if claim is None:
        raise ClaimNotFoundError("Invalid QR code")
    return claim


def redeem(*, credential: str, scanned_by: User) -> Redemption:
    """
    Consume a credential at the point of sale.

    The conditional ``mark_redeemed`` update decides the winner when two
    staff scan the same code; the Redemption row is written in the same
    transaction so at most one ever exists per claim.

    Args:
        credential: QR credential or 6-digit redemption code
        scanned_by: Vendor user performing the scan

    Returns:
        Created Redemption

    Raises:
        ClaimNotFoundError: If the credential matches no claim
        WrongVendorError: If the claim belongs to another vendor's deal
        AlreadyRedeemedError: If the claim was already redeemed
        ClaimExpiredError: If the redemption deadline has passed
        DepositNotConfirmedError: If the deposit was never confirmed
    """
    claim = resolve_claim(credential=credential, scanned_by=scanned_by)
    vendor = claim.deal.vendor

    if not vendor.has_staff(scanned_by):
        logger.warning(
            "Redemption refused, wrong vendor: claim=%s vendor=%s scanned_by=%s",
            claim.id, vendor.id, scanned_by.id
        )
        raise WrongVendorError("This code is not for your deal")

    now = timezone.now()
    with transaction.atomic():
        if claim_store.mark_redeemed(claim_id=claim.id, now=now):
            redemption = Redemption.objects.create(
                claim=claim,
                deal=claim.deal,
                vendor=vendor,
                customer=claim.customer,
                scanned_by=scanned_by,
                scanned_at=now,
                deposit_amount=claim.deal.deposit_amount,
            )
            claim.redeemed = True
            claim.redeemed_at = now
            logger.info("Claim redeemed: claim=%s vendor=%s scanned_by=%s", claim.id, vendor.id, scanned_by.id)
            return redemption

    _raise_guard_failure(claim, now=now)


def _raise_guard_failure(claim: Claim, *, now) -> None:
    """Explain why ``mark_redeemed`` matched no row."""
    claim.refresh_from_db()

    if claim.redeemed:
        previous: Optional[Redemption] = (
            Redemption.objects
            .select_related('scanned_by')
            .filter(claim=claim)
            .first()
        )
        raise AlreadyRedeemedError(
            redeemed_at=claim.redeemed_at,
            scanned_by=previous.scanned_by if previous else None,
        )

    if claim.is_expired(now):
        raise ClaimExpiredError("This code has expired", expires_at=claim.expires_at)

    if not claim.deposit_confirmed:
        raise DepositNotConfirmedError("Deposit has not been confirmed for this claim")

    # Unreachable while the guard has only these three conditions
    raise ClaimNotFoundError("Claim could not be redeemed")
