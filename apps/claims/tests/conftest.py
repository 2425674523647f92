import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, UserRole
from apps.claims.models import Claim, PaymentTier
from apps.deals.models import Deal, Vendor


WEBHOOK_SECRET = 'whsec_test_secret'


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def customer(db):
    """Create and return a customer."""
    return User.objects.create_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Casey Customer',
    )


@pytest.fixture
def other_customer(db):
    """Create and return another customer."""
    return User.objects.create_user(
        email='othercustomer@example.com',
        password='TestPass123!',
        display_name='Other Customer',
    )


@pytest.fixture
def vendor_owner(db):
    """Create and return the owner of the test vendor."""
    return User.objects.create_user(
        email='owner@bakery.example.com',
        password='TestPass123!',
        display_name='Bakery Owner',
        role=UserRole.VENDOR,
    )


@pytest.fixture
def vendor_staff(db, vendor):
    """Create a cashier on the test vendor's staff."""
    user = User.objects.create_user(
        email='cashier@bakery.example.com',
        password='TestPass123!',
        display_name='Bakery Cashier',
        role=UserRole.VENDOR,
    )
    vendor.staff.add(user)
    return user


@pytest.fixture
def other_vendor_owner(db):
    """Create and return the owner of an unrelated vendor."""
    return User.objects.create_user(
        email='owner@pizza.example.com',
        password='TestPass123!',
        display_name='Pizza Owner',
        role=UserRole.VENDOR,
    )


# =============================================================================
# Vendors and deals
# =============================================================================

@pytest.fixture
def vendor(db, vendor_owner):
    """Vendor with a deposit webhook secret."""
    return Vendor.objects.create(
        owner=vendor_owner,
        business_name='Corner Bakery',
        email='orders@bakery.example.com',
        deposit_webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def other_vendor(db, other_vendor_owner):
    """Vendor without a webhook secret."""
    return Vendor.objects.create(
        owner=other_vendor_owner,
        business_name='Pizza Place',
        email='',
    )


@pytest.fixture
def deal(db, vendor):
    """$40 deal with a $10 deposit."""
    return Deal.objects.create(
        vendor=vendor,
        title='Dozen Croissants',
        deal_price=Decimal('40.00'),
        original_price=Decimal('60.00'),
        deposit_amount=Decimal('10.00'),
        max_claims=50,
        expires_at=timezone.now() + timedelta(days=30),
    )


@pytest.fixture
def other_deal(db, other_vendor):
    """Deal without a deposit on the vendor that has no webhook secret."""
    return Deal.objects.create(
        vendor=other_vendor,
        title='Large Pizza',
        deal_price=Decimal('15.00'),
        expires_at=timezone.now() + timedelta(days=30),
    )


# =============================================================================
# Claims
# =============================================================================

@pytest.fixture
def make_claim(db, customer, deal):
    """Factory for claims; defaults to a pending manual claim on ``deal``."""
    def _make_claim(**kwargs):
        kwargs.setdefault('customer', customer)
        kwargs.setdefault('deal', deal)
        kwargs.setdefault('session_token', f'sess_{uuid4().hex}')
        kwargs.setdefault('payment_tier', PaymentTier.MANUAL)
        kwargs.setdefault('expires_at', timezone.now() + timedelta(days=7))
        if kwargs.get('deposit_confirmed'):
            kwargs.setdefault('deposit_confirmed_at', timezone.now())
            kwargs.setdefault('qr_code', f'qr_{uuid4().hex}')
            kwargs.setdefault('redemption_code', '246810')
        return Claim.objects.create(**kwargs)
    return _make_claim


@pytest.fixture
def pending_claim(make_claim):
    """Unconfirmed manual-tier claim."""
    return make_claim(payment_method_type='venmo', payment_reference='@casey')


@pytest.fixture
def integrated_claim(make_claim):
    """Unconfirmed claim paid through an integrated processor."""
    return make_claim(payment_tier=PaymentTier.INTEGRATED, payment_method_type='stripe')


@pytest.fixture
def expired_claim(make_claim):
    """Unconfirmed claim past its deadline."""
    return make_claim(expires_at=timezone.now() - timedelta(hours=1))


@pytest.fixture
def expired_integrated_claim(make_claim):
    """Unconfirmed processor-verified claim past its deadline."""
    return make_claim(
        payment_tier=PaymentTier.INTEGRATED,
        expires_at=timezone.now() - timedelta(hours=1),
    )


@pytest.fixture
def confirmed_claim(make_claim):
    """Claim with a confirmed deposit and issued credential."""
    return make_claim(
        deposit_confirmed=True,
        deposit_amount_paid=Decimal('10.00'),
        qr_code='confirmed-qr-credential',
        redemption_code='123456',
    )


@pytest.fixture
def expired_confirmed_claim(make_claim):
    """Confirmed claim whose deadline passed before redemption."""
    return make_claim(
        deposit_confirmed=True,
        qr_code='expired-qr-credential',
        redemption_code='654321',
        expires_at=timezone.now() - timedelta(hours=1),
    )


@pytest.fixture
def other_vendor_claim(make_claim, other_deal):
    """Confirmed claim on the other vendor's deal."""
    return make_claim(
        deal=other_deal,
        deposit_confirmed=True,
        qr_code='pizza-qr-credential',
        redemption_code='777777',
    )


# =============================================================================
# Authenticated clients
# =============================================================================

@pytest.fixture
def customer_client(customer):
    """API client authenticated as the customer."""
    return _client_for(customer)


@pytest.fixture
def other_customer_client(other_customer):
    return _client_for(other_customer)


@pytest.fixture
def vendor_client(vendor_owner, vendor):
    """API client authenticated as the vendor owner."""
    return _client_for(vendor_owner)


@pytest.fixture
def staff_client(vendor_staff):
    """API client authenticated as vendor staff."""
    return _client_for(vendor_staff)


@pytest.fixture
def other_vendor_client(other_vendor_owner, other_vendor):
    return _client_for(other_vendor_owner)
