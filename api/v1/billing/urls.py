"""
Billing URL patterns for the Club Manager API.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    BillingSettingsView,
    DebtsView,
    GenerateDuesView,
    PaymentViewSet,
    UnpaidDuesView,
)

router = DefaultRouter()
router.register('payments', PaymentViewSet, basename='payment')

urlpatterns = [
    path('settings/', BillingSettingsView.as_view(), name='billing_settings'),
    path('dues/generate/', GenerateDuesView.as_view(), name='generate_dues'),
    path('dues/unpaid/', UnpaidDuesView.as_view(), name='unpaid_dues'),
    path('debts/', DebtsView.as_view(), name='debts'),
    path('', include(router.urls)),
]
