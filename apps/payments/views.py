import structlog
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.subscriptions.services import handle_webhook
from .exceptions import InvalidSignatureError, MalformedEventError

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = 'HTTP_STRIPE_SIGNATURE'


@extend_schema(
    request=None,
    responses={200: None, 400: None},
    description="Inbound payment gateway events. Authenticated by payload signature only.",
    tags=['payments'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """Receive a signed gateway event and apply it."""
    try:
        outcome = handle_webhook(
            payload=request.body,
            signature=request.META.get(SIGNATURE_HEADER),
        )
    except InvalidSignatureError as e:
        logger.warning('webhook_signature_rejected', error=str(e))
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except MalformedEventError as e:
        logger.warning('webhook_payload_rejected', error=str(e))
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'received': True, 'outcome': outcome})
