"""
Member, family plan and staff URL patterns for the Club Manager API.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AdminViewSet,
    CoachViewSet,
    EmailLogViewSet,
    MemberRemovalViewSet,
    MemberViewSet,
)

router = DefaultRouter()
router.register('members', MemberViewSet, basename='member')
router.register('removals', MemberRemovalViewSet, basename='member-removal')
router.register('coaches', CoachViewSet, basename='coach')
router.register('admins', AdminViewSet, basename='admin')
router.register('email-logs', EmailLogViewSet, basename='email-log')

urlpatterns = [
    path('', include(router.urls)),
]
