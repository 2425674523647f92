"""
Deposit confirmation service.

Three entry points converge on one guarded transition:

- ``confirm_deposit_from_webhook``: untrusted caller (a vendor's payment
  processor). Authenticated by HMAC when the vendor has a secret.
- ``confirm_deposit_self_reported``: the claim's customer says they sent
  a manual payment (Venmo, Zelle, ...). Only legal on manual-tier claims.
- ``confirm_deposit_by_vendor``: vendor staff confirm they received a
  manual payment.

Repeated confirmations are successes that return the credential issued
the first time, never a second one.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.accounts.models import User
from apps.claims.models import Claim, PaymentTier
from apps.deals.services import increment_claims_count

from . import claim_store
from .credentials import generate_credential, get_redemption_url
from .exceptions import (
    ClaimNotFoundError,
    ClaimExpiredError,
    CredentialGenerationError,
    WebhookSignatureError,
    WrongPaymentTierError,
)
from .notifications import dispatch_payment_notification
from .signatures import verify_signature
from .webhook_payloads import parse_payload, extract_session_token

logger = logging.getLogger(__name__)


@dataclass
class DepositConfirmation:
    """Outcome of a confirmation attempt that did not fail."""
    claim: Claim
    already_confirmed: bool = False

    @property
    def qr_code(self) -> str:
        return self.claim.qr_code

    @property
    def redemption_code(self) -> str:
        return self.claim.redemption_code

    @property
    def qr_code_url(self) -> str:
        return get_redemption_url(self.claim.qr_code)


def confirm_deposit_from_webhook(
    *,
    raw_body: bytes,
    signature: Optional[str] = None,
    vendor_id: Optional[str] = None
) -> DepositConfirmation:
    """
    Confirm a deposit reported by a payment processor webhook.

    Args:
        raw_body: Request body exactly as received (signed bytes)
        signature: ``sha256=<hex>`` header value, if sent
        vendor_id: ``X-Vendor-Id`` header value, if sent; narrows the
            lookup to that vendor's claims

    Returns:
        DepositConfirmation; ``already_confirmed`` is True for replays

    Raises:
        InvalidPayloadError: If the body is not JSON or has no session token
        ClaimNotFoundError: If no claim matches (or it belongs to another vendor)
        WebhookSignatureError: If the vendor has a secret and the signature
            is missing or wrong
        WrongPaymentTierError: If the claim is manual tier
        ClaimExpiredError: If the claim is unconfirmed and past its deadline
    """
    payload = parse_payload(raw_body)
    session_token, shape = extract_session_token(payload)

    claim = claim_store.get_by_session_token(session_token)
    if claim is None or (vendor_id and str(claim.deal.vendor_id) != str(vendor_id).strip()):
        logger.info(
            "Deposit webhook matched no claim: shape=%s header_vendor=%s",
            shape, vendor_id
        )
        raise ClaimNotFoundError("No pending claim found for this session")

    vendor = claim.deal.vendor
    if vendor.has_webhook_secret:
        if not verify_signature(raw_body, signature or '', vendor.deposit_webhook_secret):
            logger.warning(
                "Deposit webhook signature rejected: vendor=%s header_vendor=%s claim=%s signature_present=%s",
                vendor.id, vendor_id, claim.id, bool(signature)
            )
            raise WebhookSignatureError("Invalid signature")
        logger.info("Deposit webhook signature_verified: vendor=%s claim=%s", vendor.id, claim.id)
    else:
        logger.warning(
            "Deposit webhook signature_skipped (no secret configured): vendor=%s claim=%s",
            vendor.id, claim.id
        )

    # Manual payments are never seen by a processor
    if claim.payment_tier == PaymentTier.MANUAL:
        logger.warning(
            "Deposit webhook refused for manual-tier claim=%s vendor=%s",
            claim.id, vendor.id
        )
        raise WrongPaymentTierError("Manual payments cannot be confirmed by webhook")

    return _confirm(claim, source='webhook', notify=True)


def confirm_deposit_self_reported(*, session_token: str, customer: User) -> DepositConfirmation:
    """
    Confirm a manual payment on the customer's own word.

    Self-report carries no independent proof, so it is refused for claims
    a processor could have verified.

    Raises:
        ClaimNotFoundError: If the customer has no claim with this token
        WrongPaymentTierError: If the claim is not manual tier
        ClaimExpiredError: If the claim is unconfirmed and past its deadline
    """
    claim = claim_store.get_for_customer(session_token=session_token, customer=customer)
    if claim is None:
        raise ClaimNotFoundError("Claim not found")

    if claim.payment_tier != PaymentTier.MANUAL:
        logger.warning(
            "Self-report refused for %s-tier claim=%s customer=%s",
            claim.payment_tier, claim.id, customer.id
        )
        raise WrongPaymentTierError("This endpoint is only for manual payments")

    return _confirm(claim, source='self_report', notify=True)


def confirm_deposit_by_vendor(*, claim_id: UUID, vendor_user: User) -> DepositConfirmation:
    """
    Confirm a payment the vendor received directly.

    Raises:
        ClaimNotFoundError: If the claim doesn't exist or belongs to
            another vendor
        ClaimExpiredError: If the claim is unconfirmed and past its deadline
    """
    claim = claim_store.get_by_id(claim_id)
    if claim is None or not claim.deal.vendor.has_staff(vendor_user):
        raise ClaimNotFoundError("Claim not found or unauthorized")

    return _confirm(claim, source='vendor', notify=False)


def _confirm(claim: Claim, *, source: str, notify: bool) -> DepositConfirmation:
    if claim.deposit_confirmed:
        logger.info("Deposit already confirmed, returning issued codes: claim=%s source=%s", claim.id, source)
        return DepositConfirmation(claim=claim, already_confirmed=True)

    if claim.is_expired():
        raise ClaimExpiredError(expires_at=claim.expires_at)

    return _apply_confirmation(claim, source=source, notify=notify)


@transaction.atomic
def _apply_confirmation(claim: Claim, *, source: str, notify: bool) -> DepositConfirmation:
    """
    Issue a credential and flip the claim to confirmed.

    The conditional update is the concurrency guard; when it matches no
    row either another request confirmed first (its codes are returned)
    or the deadline passed in between.
    A qr_code collision is retried with a fresh credential.
    """
    now = timezone.now()
    deal = claim.deal
    amount_paid = deal.deposit_amount if deal.requires_deposit else deal.deal_price
    max_attempts = settings.CLAIM_CREDENTIAL_MAX_ATTEMPTS

    for attempt in range(max_attempts):
        qr_code, redemption_code = generate_credential()
        try:
            with transaction.atomic():
                confirmed = claim_store.confirm_deposit(
                    claim_id=claim.id,
                    qr_code=qr_code,
                    redemption_code=redemption_code,
                    amount_paid=amount_paid,
                    now=now,
                )
            break
        except IntegrityError:
            logger.warning("Credential collision on claim=%s (attempt %d)", claim.id, attempt + 1)
            continue
    else:
        raise CredentialGenerationError(
            f"Failed to store a unique credential after {max_attempts} attempts"
        )

    claim.refresh_from_db()

    if not confirmed:
        if not claim.deposit_confirmed:
            raise ClaimExpiredError(expires_at=claim.expires_at)
        logger.info("Lost confirmation race, returning winner's codes: claim=%s source=%s", claim.id, source)
        return DepositConfirmation(claim=claim, already_confirmed=True)

    increment_claims_count(claim.deal_id)
    logger.info("Deposit confirmed: claim=%s deal=%s source=%s", claim.id, claim.deal_id, source)

    if notify:
        transaction.on_commit(partial(dispatch_payment_notification, claim.id))

    return DepositConfirmation(claim=claim)
