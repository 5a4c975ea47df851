import logging

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.exceptions import MethodNotAllowed, ParseError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema

from .exceptions import MissingAuthorizationError
from .permissions import HasAuthorizationHeader
from .serializers import (
    MISSING_FIELDS_MESSAGE,
    DeliveryReportSerializer,
    DeviceTokenRegisterSerializer,
    DeviceTokenSerializer,
    PushRequestSerializer,
)
from .services import (
    get_push_dispatcher,
    register_device_token,
    remove_device_token,
    # Exceptions
    PushDispatchError,
)

logger = logging.getLogger(__name__)


class PushNotificationView(APIView):
    """
    Send a push notification to every device of the given users.

    POST /api/notifications/push/
    Body: {"user_ids": [...], "title": "...", "body": "...", "data": {...}}

    Called server-to-server; only the presence of an Authorization
    header is checked.
    """

    authentication_classes = []
    permission_classes = [HasAuthorizationHeader]
    http_method_names = ['post']

    def initial(self, request, *args, **kwargs):
        # Method is checked before the Authorization header
        if request.method.lower() not in self.http_method_names:
            self.http_method_not_allowed(request, *args, **kwargs)
        super().initial(request, *args, **kwargs)

    def handle_exception(self, exc):
        if isinstance(exc, MethodNotAllowed):
            return Response({'error': 'Method not allowed'}, status=status.HTTP_405_METHOD_NOT_ALLOWED)
        if isinstance(exc, MissingAuthorizationError):
            return Response({'error': str(exc.detail)}, status=status.HTTP_401_UNAUTHORIZED)
        if isinstance(exc, ParseError):
            return Response({'error': str(exc.detail)}, status=status.HTTP_400_BAD_REQUEST)
        return super().handle_exception(exc)

    @extend_schema(request=PushRequestSerializer, responses={200: DeliveryReportSerializer})
    def post(self, request):
        serializer = PushRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': MISSING_FIELDS_MESSAGE, 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        dispatcher = get_push_dispatcher()
        try:
            report = async_to_sync(dispatcher.dispatch)(serializer.to_push_request())
        except PushDispatchError as e:
            logger.error("Push dispatch failed: %s", e)
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(report.to_dict())


class DeviceTokenView(APIView):
    """
    Register or remove the current user's device token.

    POST   /api/notifications/devices/          - Register token
    DELETE /api/notifications/devices/{token}/  - Remove token
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(request=DeviceTokenRegisterSerializer, responses={200: DeviceTokenSerializer})
    def post(self, request, *args, **kwargs):
        serializer = DeviceTokenRegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        device = register_device_token(
            user=request.user,
            token=serializer.validated_data['token'],
            platform=serializer.validated_data['platform'],
        )
        return Response(DeviceTokenSerializer(device).data, status=status.HTTP_200_OK)

    def delete(self, request, token=None):
        if not token or not remove_device_token(user=request.user, token=token):
            return Response({'error': 'Device token not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)
