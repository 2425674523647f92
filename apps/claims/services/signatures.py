"""Deposit webhook signature verification."""

import hashlib
import hmac


SIGNATURE_PREFIX = 'sha256='


def compute_signature(raw_body: bytes, shared_secret: str) -> str:
    """Return the ``sha256=<hex>`` signature a sender should attach."""
    digest = hmac.new(
        shared_secret.encode('utf-8'),
        raw_body,
        hashlib.sha256
    ).hexdigest()
    return f'{SIGNATURE_PREFIX}{digest}'


def verify_signature(raw_body: bytes, provided_signature: str, shared_secret: str) -> bool:
    """
    Check a webhook signature against the vendor's shared secret.

    The HMAC is computed over the exact request bytes; a parsed and
    re-serialized body would not reproduce the sender's digest.

    Args:
        raw_body: Request body as received
        provided_signature: Header value, ``sha256=<hex>`` (prefix optional)
        shared_secret: Vendor's configured webhook secret

    Returns:
        True if the signature matches, False otherwise
    """
    if not provided_signature or not shared_secret:
        return False

    provided = provided_signature.strip()
    if provided.startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX):]

    expected = compute_signature(raw_body, shared_secret)[len(SIGNATURE_PREFIX):]
    # Bytes, so non-ASCII header junk compares unequal instead of raising
    return hmac.compare_digest(expected.encode('ascii'), provided.lower().encode('utf-8'))
