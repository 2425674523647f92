"""
Claims app services layer.

Services contain the claim lifecycle: credential issuing, deposit
confirmation and redemption. Every state change is a conditional
single-row update; see ``claim_store``.
"""

from .exceptions import (
    ClaimsServiceError,
    InvalidPayloadError,
    WebhookSignatureError,
    ClaimNotFoundError,
    WrongPaymentTierError,
    ClaimExpiredError,
    AlreadyRedeemedError,
    DepositNotConfirmedError,
    WrongVendorError,
    CredentialGenerationError,
)

from .credentials import (
    generate_credential,
    get_redemption_url,
    render_qr_png,
)

from .signatures import (
    compute_signature,
    verify_signature,
)

from .deposit_confirmation import (
    DepositConfirmation,
    confirm_deposit_from_webhook,
    confirm_deposit_self_reported,
    confirm_deposit_by_vendor,
)

from .redemption import (
    lookup_status,
    redeem,
)

from .claim_store import (
    get_customer_claims,
    get_vendor_pending_claims,
)


__all__ = [
    # Exceptions
    'ClaimsServiceError',
    'InvalidPayloadError',
    'WebhookSignatureError',
    'ClaimNotFoundError',
    'WrongPaymentTierError',
    'ClaimExpiredError',
    'AlreadyRedeemedError',
    'DepositNotConfirmedError',
    'WrongVendorError',
    'CredentialGenerationError',

    # Credentials
    'generate_credential',
    'get_redemption_url',
    'render_qr_png',

    # Signatures
    'compute_signature',
    'verify_signature',

    # Deposit confirmation
    'DepositConfirmation',
    'confirm_deposit_from_webhook',
    'confirm_deposit_self_reported',
    'confirm_deposit_by_vendor',

    # Redemption
    'lookup_status',
    'redeem',

    # Queries
    'get_customer_claims',
    'get_vendor_pending_claims',
]
