from django.urls import path
from . import views

urlpatterns = [
    path('place/', views.place_wager, name='wager_place'),
    path('cashout/', views.cash_out, name='wager_cashout'),
    path('crash/', views.crash, name='wager_crash'),
    path('<str:wager_id>/', views.wager_state, name='wager_state'),
]
