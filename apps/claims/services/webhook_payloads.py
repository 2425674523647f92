"""
Deposit webhook payload shapes.

Payment processors wrap the claim's session token in different
envelopes. Each known shape has its own extractor; they are tried in
the order of ``PAYLOAD_SHAPES`` and the first non-empty token wins.
"""

import json
from typing import Any, Callable, Dict, Optional, Tuple

from .exceptions import InvalidPayloadError


def parse_payload(raw_body: bytes) -> Dict[str, Any]:
    """
    Decode a webhook body into a JSON object.

    Raises:
        InvalidPayloadError: If the body is not a JSON object
    """
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidPayloadError("Invalid JSON")

    if not isinstance(payload, dict):
        raise InvalidPayloadError("Webhook payload must be a JSON object")
    return payload


def _token(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _event_object(payload: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get('data')
    if not isinstance(data, dict):
        return {}
    obj = data.get('object')
    return obj if isinstance(obj, dict) else {}


def client_reference_token(payload: Dict[str, Any]) -> Optional[str]:
    """Checkout-session style: ``data.object.client_reference_id``."""
    return _token(_event_object(payload).get('client_reference_id'))


def metadata_token(payload: Dict[str, Any]) -> Optional[str]:
    """Processor metadata bag: ``data.object.metadata.session_token``."""
    metadata = _event_object(payload).get('metadata')
    if not isinstance(metadata, dict):
        return None
    return _token(metadata.get('session_token')) or _token(metadata.get('sessionToken'))


def top_level_token(payload: Dict[str, Any]) -> Optional[str]:
    """Generic senders: top-level ``session_token``."""
    return _token(payload.get('session_token')) or _token(payload.get('sessionToken'))


PAYLOAD_SHAPES: Tuple[Tuple[str, Callable[[Dict[str, Any]], Optional[str]]], ...] = (
    ('client_reference', client_reference_token),
    ('metadata', metadata_token),
    ('generic', top_level_token),
)


def extract_session_token(payload: Dict[str, Any]) -> Tuple[str, str]:
    """
    Find the claim session token in a webhook payload.

    Returns:
        Tuple of (session_token, name of the matching shape)

    Raises:
        InvalidPayloadError: If no known shape carries a token
    """
    for shape, extractor in PAYLOAD_SHAPES:
        token = extractor(payload)
        if token:
            return token, shape
    raise InvalidPayloadError("No session token found in payload")
