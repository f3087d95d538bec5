"""
Court URL patterns for the Club Manager API.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import CourtViewSet, ReservationViewSet

router = SimpleRouter()
router.register('reservations', ReservationViewSet, basename='reservation')
router.register('', CourtViewSet, basename='court')

urlpatterns = [
    path('', include(router.urls)),
]
