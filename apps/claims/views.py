import logging

from django.conf import settings
from django.http import HttpResponse
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from rest_framework import viewsets, status
from rest_framework.decorators import (
    action,
    api_view,
    authentication_classes,
    permission_classes,
)
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Claim
from .permissions import IsClaimOwner, IsVendorUser
from .serializers import (
    ClaimSerializer,
    CredentialClaimSerializer,
    PendingPaymentSerializer,
    RedemptionSerializer,
    # Input serializers
    ClaimFilterSerializer,
    SelfReportConfirmInputSerializer,
    VendorConfirmPaymentInputSerializer,
)
from .services import (
    AlreadyRedeemedError,
    ClaimExpiredError,
    ClaimNotFoundError,
    ClaimsServiceError,
    DepositNotConfirmedError,
    InvalidPayloadError,
    WebhookSignatureError,
    WrongPaymentTierError,
    WrongVendorError,
    confirm_deposit_by_vendor,
    confirm_deposit_from_webhook,
    confirm_deposit_self_reported,
    get_customer_claims,
    get_vendor_pending_claims,
    lookup_status,
    redeem,
    render_qr_png,
)

logger = logging.getLogger(__name__)


def _error(exc, http_status, **extra):
    return Response({'error': str(exc), 'code': exc.code, **extra}, status=http_status)


def _expired(exc):
    return _error(exc, status.HTTP_400_BAD_REQUEST, expired_at=exc.expires_at)


def _signature_header(request):
    """First configured signature header present on the request."""
    for header in settings.DEPOSIT_WEBHOOK_SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


# =============================================================================
# Deposit confirmation
# =============================================================================

@extend_schema(
    request=None,
    description=(
        "Deposit confirmation callback from a vendor's payment processor. "
        "The raw body is HMAC-SHA256 signed with the vendor's webhook secret."
    ),
    tags=['webhooks'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def deposit_webhook(request):
    """
    POST /api/webhooks/deposit-confirmed/

    Always answers with a definitive JSON status so the processor can
    decide whether to retry.
    """
    # Signed bytes; read before anything touches request.data
    raw_body = request.body

    try:
        result = confirm_deposit_from_webhook(
            raw_body=raw_body,
            signature=_signature_header(request),
            vendor_id=request.headers.get('X-Vendor-Id'),
        )
    except InvalidPayloadError as e:
        return _error(e, status.HTTP_400_BAD_REQUEST)
    except WebhookSignatureError as e:
        return _error(e, status.HTTP_401_UNAUTHORIZED)
    except ClaimNotFoundError as e:
        return _error(e, status.HTTP_404_NOT_FOUND)
    except WrongPaymentTierError as e:
        return _error(e, status.HTTP_400_BAD_REQUEST)
    except ClaimExpiredError as e:
        return _expired(e)
    except Exception:
        logger.exception("Deposit webhook failed")
        return Response(
            {'error': 'Internal server error', 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({
        'success': True,
        'claim_id': str(result.claim.id),
        'qr_code': result.qr_code,
        'already_confirmed': result.already_confirmed,
    })


@extend_schema(
    request=SelfReportConfirmInputSerializer,
    description="Customer reports that a manual (Venmo, Zelle, ...) deposit was sent.",
    tags=['claims'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def confirm_sent(request):
    """POST /api/claims/confirm-sent/"""
    input_serializer = SelfReportConfirmInputSerializer(data=request.data)
    input_serializer.is_valid(raise_exception=True)

    try:
        result = confirm_deposit_self_reported(
            session_token=input_serializer.validated_data['session_token'],
            customer=request.user,
        )
    except ClaimNotFoundError as e:
        return _error(e, status.HTTP_404_NOT_FOUND)
    except WrongPaymentTierError as e:
        return _error(e, status.HTTP_400_BAD_REQUEST)
    except ClaimExpiredError as e:
        return _expired(e)

    return Response({
        'success': True,
        'qr_code': result.qr_code,
        'qr_code_url': result.qr_code_url,
        'redemption_code': result.redemption_code,
        'already_confirmed': result.already_confirmed,
    })


@extend_schema(
    request=VendorConfirmPaymentInputSerializer,
    description="Vendor confirms a manual payment received directly.",
    tags=['vendor'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsVendorUser])
def vendor_confirm_payment(request):
    """POST /api/vendor/confirm-payment/"""
    input_serializer = VendorConfirmPaymentInputSerializer(data=request.data)
    input_serializer.is_valid(raise_exception=True)

    try:
        result = confirm_deposit_by_vendor(
            claim_id=input_serializer.validated_data['claim_id'],
            vendor_user=request.user,
        )
    except ClaimNotFoundError as e:
        return _error(e, status.HTTP_404_NOT_FOUND)
    except ClaimExpiredError as e:
        return _expired(e)

    return Response({
        'success': True,
        'claim_id': str(result.claim.id),
        'qr_code': result.qr_code,
        'redemption_code': result.redemption_code,
        'already_confirmed': result.already_confirmed,
    })


@extend_schema(
    responses=PendingPaymentSerializer(many=True),
    description="Manual payments awaiting confirmation across the user's vendors.",
    tags=['vendor'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsVendorUser])
def vendor_pending_payments(request):
    """GET /api/vendor/pending-payments/"""
    claims = get_vendor_pending_claims(vendor_user=request.user)
    serializer = PendingPaymentSerializer(claims, many=True)
    return Response({'claims': serializer.data})


# =============================================================================
# Customer claims
# =============================================================================

class ClaimPagination(PageNumberPagination):
    """Custom pagination for claims."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@extend_schema_view(
    list=extend_schema(parameters=[
        OpenApiParameter('status', str, enum=['pending', 'confirmed', 'redeemed', 'expired']),
    ]),
)
class ClaimViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The current user's claims (read-only).

    list: Own claims, newest first, filterable by derived status
    retrieve: One claim with its credential
    qr_code: PNG of the redemption URL
    """

    serializer_class = ClaimSerializer
    permission_classes = [IsAuthenticated, IsClaimOwner]
    pagination_class = ClaimPagination
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_queryset(self):
        """Filter claims using input serializer validation."""
        if getattr(self, 'swagger_fake_view', False):
            return Claim.objects.none()

        params = {}
        if self.action == 'list':
            filter_serializer = ClaimFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            params = filter_serializer.validated_data

        return get_customer_claims(
            customer=self.request.user,
            status=params.get('status'),
        )

    @extend_schema(responses={(200, 'image/png'): bytes})
    @action(detail=True, methods=['get'])
    def qr_code(self, request, pk=None):
        """
        Get the QR image a vendor scans.

        GET /api/claims/{id}/qr_code/
        """
        claim = self.get_object()

        if not claim.qr_code:
            return Response(
                {'error': 'QR code not issued for this claim', 'code': 'NO_DEPOSIT'},
                status=status.HTTP_404_NOT_FOUND
            )

        return HttpResponse(render_qr_png(claim.qr_code), content_type='image/png')


# =============================================================================
# Redemption
# =============================================================================

class RedeemView(APIView):
    """
    Point-of-sale view of a credential.

    GET  /api/redeem/{credential}/ - Status preview (anyone holding the QR)
    POST /api/redeem/{credential}/ - Consume it (vendor staff only)
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsVendorUser()]
        return [AllowAny()]

    @extend_schema(tags=['redeem'])
    def get(self, request, credential):
        try:
            credential_status, claim = lookup_status(qr_code=credential)
        except ClaimNotFoundError as e:
            return _error(e, status.HTTP_404_NOT_FOUND)

        return Response({
            'status': credential_status,
            'claim': CredentialClaimSerializer(claim).data,
        })

    @extend_schema(request=None, responses={201: RedemptionSerializer}, tags=['redeem'])
    def post(self, request, credential):
        try:
            redemption = redeem(credential=credential, scanned_by=request.user)
        except ClaimNotFoundError as e:
            return _error(e, status.HTTP_404_NOT_FOUND)
        except WrongVendorError as e:
            return _error(e, status.HTTP_403_FORBIDDEN)
        except AlreadyRedeemedError as e:
            scanned_by = e.scanned_by.get_display_name() if e.scanned_by else None
            return _error(
                e, status.HTTP_400_BAD_REQUEST,
                redeemed_at=e.redeemed_at,
                scanned_by=scanned_by,
            )
        except ClaimExpiredError as e:
            return _expired(e)
        except DepositNotConfirmedError as e:
            return _error(e, status.HTTP_400_BAD_REQUEST)
        except ClaimsServiceError as e:
            return _error(e, status.HTTP_400_BAD_REQUEST)

        data = RedemptionSerializer(redemption).data
        return Response({'success': True, **data}, status=status.HTTP_201_CREATED)
