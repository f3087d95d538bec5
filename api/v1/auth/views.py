"""
Authentication views for the Club Manager API.
"""
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from drf_spectacular.utils import extend_schema, OpenApiExample

from api.permissions import get_member

from .serializers import (
    ClubTokenObtainPairSerializer,
    MemberSummarySerializer,
    PasswordChangeSerializer,
)


class LoginView(TokenObtainPairView):
    """
    Login endpoint - obtain JWT access and refresh tokens.
    """
    permission_classes = [AllowAny]
    serializer_class = ClubTokenObtainPairSerializer

    @extend_schema(
        summary="Login with email or DNI",
        description="Authenticate with an email address or DNI and a password to receive JWT tokens.",
        examples=[
            OpenApiExample(
                'Login Request',
                value={
                    'login': '30111222',
                    'password': 'Secreta1!'
                },
                request_only=True
            )
        ],
        responses={
            200: {
                'type': 'object',
                'properties': {
                    'access': {'type': 'string'},
                    'refresh': {'type': 'string'},
                    'role': {'type': 'string'},
                    'member': {'type': 'object'}
                }
            }
        }
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class LogoutView(APIView):
    """
    Logout - blacklist the refresh token.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Logout and invalidate tokens",
        request={
            'type': 'object',
            'properties': {
                'refresh': {'type': 'string', 'description': 'Refresh token to blacklist'}
            }
        }
    )
    def post(self, request):
        refresh_token = request.data.get('refresh')
        if refresh_token:
            try:
                RefreshToken(refresh_token).blacklist()
            except TokenError as e:
                return Response({'error': str(e), 'code': 'invalid_token', 'field': 'refresh'},
                                status=status.HTTP_400_BAD_REQUEST)
        return Response({'message': 'Logged out successfully.'}, status=status.HTTP_200_OK)


class TokenRefreshAPIView(TokenRefreshView):
    """
    Refresh access token using refresh token.
    """

    @extend_schema(summary="Refresh access token")
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class CurrentMemberView(APIView):
    """
    The member record of the authenticated user.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Get current member", responses=MemberSummarySerializer)
    def get(self, request):
        member = get_member(request)
        if member is None:
            return Response(
                {'error': 'This account is not linked to a club member.', 'code': 'member_not_found',
                 'field': None},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(MemberSummarySerializer(member).data)


class PasswordChangeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Change password", request=PasswordChangeSerializer)
    def post(self, request):
        serializer = PasswordChangeSerializer(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)

        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save()

        return Response({'message': 'Password changed successfully.'})
