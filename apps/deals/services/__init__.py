"""
Deals app services layer.

The claims core consumes deals through these functions only.
"""

from .counter import increment_claims_count


__all__ = [
    'increment_claims_count',
]
