import pytest
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.accounts.models import User, UserRole
from apps.deals.models import Deal, Vendor


@pytest.fixture
def vendor_owner(db):
    """Create and return a vendor user."""
    return User.objects.create_user(
        email='owner@cafe.example.com',
        password='TestPass123!',
        display_name='Cafe Owner',
        role=UserRole.VENDOR,
    )


@pytest.fixture
def vendor(db, vendor_owner):
    return Vendor.objects.create(
        owner=vendor_owner,
        business_name='Corner Cafe',
        email='hello@cafe.example.com',
    )


@pytest.fixture
def deal(db, vendor):
    """$12 deal with a $3 deposit, capped at two claims."""
    return Deal.objects.create(
        vendor=vendor,
        title='Breakfast Combo',
        deal_price=Decimal('12.00'),
        original_price=Decimal('18.00'),
        deposit_amount=Decimal('3.00'),
        max_claims=2,
        expires_at=timezone.now() + timedelta(days=14),
    )
