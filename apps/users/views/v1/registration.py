from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.tokens import RefreshToken
from apps.users.serializers.registration import RegistrationSerializer
from apps.users.serializers.token import UserSerializer


class RegistrationView(generics.CreateAPIView):
    """
    Endpoint for user registration.
    """
    serializer_class = RegistrationSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        """
        Create a new user and return a JWT pair for it.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        refresh = RefreshToken.for_user(user)
        tokens = {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        }

        data = {
            'user': UserSerializer(user).data,
            'tokens': tokens,
            'message': 'User registered successfully'
        }

        return Response(data, status=status.HTTP_201_CREATED)
