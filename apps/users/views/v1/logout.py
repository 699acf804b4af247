import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.exceptions import ValidationError
from rest_framework import status
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

logger = logging.getLogger(__name__)


class LogoutView(APIView):
    """
    API endpoint that allows users to logout by blacklisting their refresh token.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        refresh_token = request.data.get('refresh_token')
        if not refresh_token:
            raise ValidationError({'refresh_token': 'This field is required.'})

        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as e:
            logger.info("Rejected logout with invalid refresh token: %s", e)
            raise ValidationError({'refresh_token': 'Token is invalid or expired.'})

        return Response({"detail": "Logout successful"}, status=status.HTTP_200_OK)
