"""
Vendor payment notifications.

Sent after a deposit is confirmed so the vendor knows to expect the
customer. Delivery is fire-and-forget: it runs after the confirming
transaction commits, off the request thread, and a failure is logged
without touching the confirmed claim.
"""

import logging
import threading
from uuid import UUID

from django.conf import settings
from django.core.mail import send_mail
from django.db import connection

from apps.claims.models import Claim

logger = logging.getLogger(__name__)


def send_payment_notification(claim: Claim) -> bool:
    """
    Email the claim's vendor about a confirmed deposit.

    Returns:
        False if the vendor has no notification address
    """
    deal = claim.deal
    vendor = deal.vendor
    if not vendor.email:
        return False

    customer_name = claim.customer.get_display_name()
    amount = claim.deposit_amount_paid if claim.deposit_amount_paid is not None else deal.deal_price
    processor = claim.payment_method_type or claim.get_payment_tier_display()

    lines = [
        f"Hi {vendor.business_name},",
        "",
        f"{customer_name} ({claim.customer.email}) has paid for \"{deal.title}\".",
        f"Amount: {amount}",
        f"Paid via: {processor}",
    ]
    if claim.payment_reference:
        lines.append(f"Reference: {claim.payment_reference}")
    lines += [
        "",
        "They will show a QR code or 6-digit code when they arrive.",
        f"Review payments: {settings.APP_URL.rstrip('/')}/vendor/payments",
    ]

    send_mail(
        subject=f"New payment: {deal.title}",
        message='\n'.join(lines),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[vendor.email],
    )
    return True


def deliver_payment_notification(claim_id: UUID) -> None:
    """Load the claim and send its notification; never raises."""
    try:
        claim = (
            Claim.objects
            .select_related('deal', 'deal__vendor', 'customer')
            .get(id=claim_id)
        )
        if send_payment_notification(claim):
            logger.info("Payment notification sent: claim=%s vendor=%s", claim.id, claim.deal.vendor_id)
        else:
            logger.info("Payment notification skipped, vendor has no email: claim=%s", claim.id)
    except Exception:
        logger.exception("Payment notification failed: claim=%s", claim_id)


def _deliver_in_thread(claim_id: UUID) -> None:
    try:
        deliver_payment_notification(claim_id)
    finally:
        # Worker threads get their own connection; don't leak it
        connection.close()


def dispatch_payment_notification(claim_id: UUID) -> None:
    """Start delivery on a daemon thread and return immediately."""
    threading.Thread(
        target=_deliver_in_thread,
        args=(claim_id,),
        name=f'payment-notification-{claim_id}',
        daemon=True,
    ).start()
