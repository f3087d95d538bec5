"""
API v1 URL configuration.
"""
from django.urls import path, include

app_name = 'v1'

urlpatterns = [
    path('auth/', include('api.v1.auth.urls')),
    path('', include('api.v1.members.urls')),
    path('billing/', include('api.v1.billing.urls')),
    path('courts/', include('api.v1.courts.urls')),
    path('practices/', include('api.v1.practices.urls')),
]
