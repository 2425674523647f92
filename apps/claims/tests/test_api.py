import json
from unittest.mock import patch

import pytest
from django.urls import reverse
from rest_framework import status

from apps.claims.models import Claim, Redemption
from apps.claims.services import compute_signature


def webhook_body(session_token):
    return json.dumps({
        'data': {'object': {'metadata': {'session_token': session_token}}},
    }).encode('utf-8')


# =============================================================================
# Deposit webhook
# =============================================================================

@pytest.mark.django_db
class TestDepositWebhook:
    """Tests for POST /api/webhooks/deposit-confirmed/"""

    url_name = 'claims:deposit-webhook'

    def _post(self, client, body, **headers):
        return client.post(reverse(self.url_name), data=body, content_type='application/json', **headers)

    def test_signed_webhook_confirms(self, api_client, integrated_claim, vendor):
        body = webhook_body(integrated_claim.session_token)
        signature = compute_signature(body, vendor.deposit_webhook_secret)

        response = self._post(
            api_client, body,
            HTTP_X_WEBHOOK_SIGNATURE=signature,
            HTTP_X_VENDOR_ID=str(vendor.id),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['claim_id'] == str(integrated_claim.id)
        assert response.data['already_confirmed'] is False
        integrated_claim.refresh_from_db()
        assert response.data['qr_code'] == integrated_claim.qr_code

    def test_processor_signature_header(self, api_client, integrated_claim, vendor):
        """Signature is also read from the processor's own header."""
        body = webhook_body(integrated_claim.session_token)
        signature = compute_signature(body, vendor.deposit_webhook_secret)

        response = self._post(api_client, body, HTTP_STRIPE_SIGNATURE=signature)

        assert response.status_code == status.HTTP_200_OK

    def test_replay_returns_same_code(self, api_client, integrated_claim, vendor):
        body = webhook_body(integrated_claim.session_token)
        signature = compute_signature(body, vendor.deposit_webhook_secret)

        first = self._post(api_client, body, HTTP_X_WEBHOOK_SIGNATURE=signature)
        second = self._post(api_client, body, HTTP_X_WEBHOOK_SIGNATURE=signature)

        assert second.status_code == status.HTTP_200_OK
        assert second.data['already_confirmed'] is True
        assert second.data['qr_code'] == first.data['qr_code']

    def test_bad_signature(self, api_client, integrated_claim):
        body = webhook_body(integrated_claim.session_token)

        response = self._post(api_client, body, HTTP_X_WEBHOOK_SIGNATURE='sha256=00')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['code'] == 'UNAUTHORIZED'

    def test_invalid_json(self, api_client):
        response = self._post(api_client, b'{not json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'INVALID_PAYLOAD'

    def test_no_session_token(self, api_client):
        response = self._post(api_client, b'{"data": {"object": {}}}')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_claim(self, api_client):
        response = self._post(api_client, webhook_body('sess_missing'))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_expired_claim(self, api_client, expired_integrated_claim, vendor):
        body = webhook_body(expired_integrated_claim.session_token)
        signature = compute_signature(body, vendor.deposit_webhook_secret)

        response = self._post(api_client, body, HTTP_X_WEBHOOK_SIGNATURE=signature)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'EXPIRED'

    def test_manual_claim_rejected(self, api_client, make_claim, other_deal):
        """Manual payments on a vendor without a secret cannot be confirmed here."""
        claim = make_claim(deal=other_deal, session_token='tokmanual')

        response = self._post(api_client, b'{"session_token":"tokmanual"}')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'WRONG_PAYMENT_TIER'
        assert 'qr_code' not in response.data
        claim.refresh_from_db()
        assert claim.deposit_confirmed is False

    def test_unexpected_error_is_json_500(self, api_client):
        with patch(
            'apps.claims.views.confirm_deposit_from_webhook',
            side_effect=RuntimeError('database unavailable'),
        ):
            response = self._post(api_client, webhook_body('sess_any'))

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['code'] == 'INTERNAL_ERROR'


# =============================================================================
# Self-reported and vendor confirmation
# =============================================================================

@pytest.mark.django_db
class TestConfirmSent:
    """Tests for POST /api/claims/confirm-sent/"""

    url_name = 'claims:confirm-sent'

    def test_manual_payment_confirmed(self, customer_client, pending_claim):
        response = customer_client.post(
            reverse(self.url_name), {'session_token': pending_claim.session_token}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['already_confirmed'] is False
        assert len(response.data['redemption_code']) == 6
        assert response.data['qr_code_url'].endswith(response.data['qr_code'])

    def test_unauthenticated(self, api_client, pending_claim):
        response = api_client.post(
            reverse(self.url_name), {'session_token': pending_claim.session_token}, format='json'
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_missing_session_token(self, customer_client):
        response = customer_client.post(reverse(self.url_name), {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_wrong_payment_tier(self, customer_client, integrated_claim):
        response = customer_client.post(
            reverse(self.url_name), {'session_token': integrated_claim.session_token}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'WRONG_PAYMENT_TIER'

    def test_other_customers_claim(self, other_customer_client, pending_claim):
        response = other_customer_client.post(
            reverse(self.url_name), {'session_token': pending_claim.session_token}, format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_expired(self, customer_client, expired_claim):
        response = customer_client.post(
            reverse(self.url_name), {'session_token': expired_claim.session_token}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'EXPIRED'


@pytest.mark.django_db
class TestVendorConfirmPayment:
    """Tests for POST /api/vendor/confirm-payment/"""

    url_name = 'claims:vendor-confirm-payment'

    def test_vendor_confirms(self, vendor_client, pending_claim):
        response = vendor_client.post(reverse(self.url_name), {'claim_id': str(pending_claim.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['claim_id'] == str(pending_claim.id)
        assert response.data['qr_code']

    def test_customer_forbidden(self, customer_client, pending_claim):
        response = customer_client.post(reverse(self.url_name), {'claim_id': str(pending_claim.id)}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_other_vendor_not_found(self, other_vendor_client, pending_claim):
        response = other_vendor_client.post(reverse(self.url_name), {'claim_id': str(pending_claim.id)}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_claim_id(self, vendor_client):
        response = vendor_client.post(reverse(self.url_name), {'claim_id': 'not-a-uuid'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestVendorPendingPayments:
    """Tests for GET /api/vendor/pending-payments/"""

    url_name = 'claims:vendor-pending-payments'

    def test_lists_manual_payments_to_confirm(
        self, vendor_client, pending_claim, integrated_claim, confirmed_claim, expired_claim
    ):
        response = vendor_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_200_OK
        assert [c['id'] for c in response.data['claims']] == [str(pending_claim.id)]
        claim = response.data['claims'][0]
        assert claim['payment_method_type'] == 'venmo'
        assert claim['payment_reference'] == '@casey'
        assert claim['customer']['display_name'] == 'Casey Customer'
        assert claim['deal']['title'] == 'Dozen Croissants'
        assert 'qr_code' not in claim

    def test_staff_sees_vendor_claims(self, staff_client, pending_claim):
        response = staff_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['claims']) == 1

    def test_other_vendor_sees_nothing(self, other_vendor_client, pending_claim):
        response = other_vendor_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['claims'] == []

    def test_customer_forbidden(self, customer_client):
        response = customer_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Customer claims
# =============================================================================

@pytest.mark.django_db
class TestClaimList:
    """Tests for GET /api/claims/"""

    url_name = 'claims:claim-list'

    def test_lists_own_claims_with_status(self, customer_client, pending_claim, confirmed_claim):
        response = customer_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_200_OK
        statuses = {c['id']: c['status'] for c in response.data['results']}
        assert statuses == {
            str(pending_claim.id): 'pending',
            str(confirmed_claim.id): 'confirmed',
        }

    def test_filter_by_status(self, customer_client, pending_claim, confirmed_claim, expired_claim):
        response = customer_client.get(reverse(self.url_name), {'status': 'expired'})

        assert response.status_code == status.HTTP_200_OK
        assert [c['id'] for c in response.data['results']] == [str(expired_claim.id)]

    def test_invalid_status_filter(self, customer_client):
        response = customer_client.get(reverse(self.url_name), {'status': 'cancelled'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_excludes_other_customers(self, other_customer_client, pending_claim):
        response = other_customer_client.get(reverse(self.url_name))

        assert response.data['results'] == []

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse(self.url_name))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestClaimDetail:
    """Tests for GET /api/claims/{id}/ and /qr_code/"""

    def test_retrieve_own_claim(self, customer_client, confirmed_claim):
        url = reverse('claims:claim-detail', args=[confirmed_claim.id])
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'confirmed'
        assert response.data['qr_code'] == 'confirmed-qr-credential'
        assert response.data['redemption_code'] == '123456'
        assert response.data['deal']['remaining_balance'] == '30.00'
        assert response.data['deal']['requires_deposit'] is True
        assert response.data['deal']['is_sold_out'] is False

    def test_unconfirmed_claim_past_deadline_is_expired(self, customer_client, expired_claim):
        """Expiry is derived at read time, nothing is stored."""
        url = reverse('claims:claim-detail', args=[expired_claim.id])
        response = customer_client.get(url)

        assert response.data['status'] == 'expired'
        assert response.data['deposit_confirmed'] is False

    def test_other_customers_claim_not_found(self, other_customer_client, confirmed_claim):
        url = reverse('claims:claim-detail', args=[confirmed_claim.id])
        response = other_customer_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_qr_code_png(self, customer_client, confirmed_claim):
        url = reverse('claims:claim-qr-code', args=[confirmed_claim.id])
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'image/png'
        assert response.content.startswith(b'\x89PNG')

    def test_qr_code_pending_claim(self, customer_client, pending_claim):
        url = reverse('claims:claim-qr-code', args=[pending_claim.id])
        response = customer_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Redemption
# =============================================================================

@pytest.mark.django_db
class TestRedeemStatus:
    """Tests for GET /api/redeem/{credential}/"""

    def test_valid(self, api_client, confirmed_claim):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        response = api_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'valid'
        assert response.data['claim']['id'] == str(confirmed_claim.id)
        assert response.data['claim']['remaining_balance'] == '30.00'
        assert 'redemption_code' not in response.data['claim']

    def test_expired(self, api_client, expired_confirmed_claim):
        url = reverse('claims:redeem', args=[expired_confirmed_claim.qr_code])
        response = api_client.get(url)

        assert response.data['status'] == 'expired'

    def test_unknown(self, api_client, db):
        url = reverse('claims:redeem', args=['no-such-credential'])
        response = api_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'INVALID'

    def test_does_not_redeem(self, api_client, confirmed_claim):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        api_client.get(url)

        confirmed_claim.refresh_from_db()
        assert confirmed_claim.redeemed is False


@pytest.mark.django_db
class TestRedeem:
    """Tests for POST /api/redeem/{credential}/"""

    def test_staff_redeems(self, staff_client, confirmed_claim, vendor_staff):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        response = staff_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['success'] is True
        assert response.data['remaining_balance'] == '30.00'
        assert response.data['customer']['display_name'] == 'Casey Customer'
        assert response.data['scanned_by']['id'] == str(vendor_staff.id)
        assert Redemption.objects.filter(claim=confirmed_claim).count() == 1

    def test_six_digit_code(self, vendor_client, confirmed_claim):
        url = reverse('claims:redeem', args=['123456'])
        response = vendor_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        assert Claim.objects.get(id=confirmed_claim.id).redeemed is True

    def test_already_redeemed(self, vendor_client, staff_client, confirmed_claim):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        staff_client.post(url)

        response = vendor_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'ALREADY_REDEEMED'
        assert response.data['redeemed_at'] is not None
        assert response.data['scanned_by'] == 'Bakery Cashier'

    def test_expired(self, vendor_client, expired_confirmed_claim):
        url = reverse('claims:redeem', args=[expired_confirmed_claim.qr_code])
        response = vendor_client.post(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'EXPIRED'

    def test_wrong_vendor(self, other_vendor_client, confirmed_claim):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        response = other_vendor_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'WRONG_VENDOR'

    def test_unknown_credential(self, vendor_client):
        url = reverse('claims:redeem', args=['no-such-credential'])
        response = vendor_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'INVALID'

    def test_customer_cannot_redeem(self, customer_client, confirmed_claim):
        """Customers can't redeem their own code."""
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        response = customer_client.post(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        confirmed_claim.refresh_from_db()
        assert confirmed_claim.redeemed is False

    def test_unauthenticated(self, api_client, confirmed_claim):
        url = reverse('claims:redeem', args=[confirmed_claim.qr_code])
        response = api_client.post(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Project endpoints
# =============================================================================

@pytest.mark.django_db
class TestProjectEndpoints:
    """Tests for auth and health endpoints."""

    def test_health_check(self, api_client):
        response = api_client.get(reverse('health-check'))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'status': 'ok'}

    def test_obtain_token(self, api_client, customer):
        response = api_client.post(
            reverse('token_obtain_pair'),
            {'email': 'customer@example.com', 'password': 'TestPass123!'},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert 'refresh' in response.data
