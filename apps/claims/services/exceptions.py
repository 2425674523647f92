"""
Domain-specific exceptions for claims services.

These exceptions represent guard failures in the claim lifecycle and
should be caught in views and converted to appropriate HTTP responses.
Each carries a stable ``code`` the front end switches on.
"""


class ClaimsServiceError(Exception):
    """Base exception for all claims service errors."""
    code = 'CLAIM_ERROR'


class InvalidPayloadError(ClaimsServiceError):
    """Raised when a webhook body is unparseable or carries no session token."""
    code = 'INVALID_PAYLOAD'


class WebhookSignatureError(ClaimsServiceError):
    """Raised when a deposit webhook fails HMAC verification."""
    code = 'UNAUTHORIZED'


class ClaimNotFoundError(ClaimsServiceError):
    """Raised when no claim matches the token/credential in the caller's scope."""
    code = 'INVALID'


class WrongPaymentTierError(ClaimsServiceError):
    """Raised when a confirmation path does not fit the claim's payment tier."""
    code = 'WRONG_PAYMENT_TIER'


class ClaimExpiredError(ClaimsServiceError):
    """Raised when the claim's redemption deadline has passed."""
    code = 'EXPIRED'

    def __init__(self, message='Claim has expired', *, expires_at=None):
        super().__init__(message)
        self.expires_at = expires_at


class AlreadyRedeemedError(ClaimsServiceError):
    """Raised when a credential that was already consumed is scanned again."""
    code = 'ALREADY_REDEEMED'

    def __init__(self, message='This code has already been redeemed', *, redeemed_at=None, scanned_by=None):
        super().__init__(message)
        self.redeemed_at = redeemed_at
        self.scanned_by = scanned_by


class DepositNotConfirmedError(ClaimsServiceError):
    """Raised when redeeming a claim whose deposit was never confirmed."""
    code = 'NO_DEPOSIT'


class WrongVendorError(ClaimsServiceError):
    """Raised when staff scan a code issued for another vendor's deal."""
    code = 'WRONG_VENDOR'


class CredentialGenerationError(ClaimsServiceError):
    """Raised when no collision-free credential could be stored."""
    code = 'CREDENTIAL_GENERATION_FAILED'
