"""
Claims counter service.

Keeps ``Deal.claims_count`` in step with confirmed claims.
"""

from uuid import UUID

from django.db.models import F

from apps.deals.models import Deal


def increment_claims_count(deal_id: UUID) -> None:
    """
    Add one confirmed claim to a deal's aggregate count.

    Issued as a single ``UPDATE ... SET claims_count = claims_count + 1``
    so concurrent confirmations for the same deal never lose increments.
    Callers are responsible for invoking this exactly once per claim.

    Args:
        deal_id: UUID of the deal

    Raises:
        Deal.DoesNotExist: If no deal matched
    """
    updated = Deal.objects.filter(id=deal_id).update(
        claims_count=F('claims_count') + 1
    )
    if not updated:
        raise Deal.DoesNotExist(f"Deal with ID {deal_id} not found")
