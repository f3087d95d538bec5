"""
Authentication URL patterns for the Club Manager API.
"""
from django.urls import path

from .views import (
    LoginView,
    LogoutView,
    TokenRefreshAPIView,
    CurrentMemberView,
    PasswordChangeView,
)

urlpatterns = [
    path('login/', LoginView.as_view(), name='login'),
    path('logout/', LogoutView.as_view(), name='logout'),
    path('token/refresh/', TokenRefreshAPIView.as_view(), name='token_refresh'),
    path('me/', CurrentMemberView.as_view(), name='current_member'),
    path('password/change/', PasswordChangeView.as_view(), name='password_change'),
]
