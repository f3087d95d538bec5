"""
Practice URL patterns for the Club Manager API.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import PracticeViewSet

router = SimpleRouter()
router.register('', PracticeViewSet, basename='practice')

urlpatterns = [
    path('', include(router.urls)),
]
