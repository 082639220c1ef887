from django.urls import path
from . import api_views

urlpatterns = [
    path('auth/', api_views.tma_auth, name='tma_auth'),
    path('account/', api_views.account_summary, name='account_summary'),
]
