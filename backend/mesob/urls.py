from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    path('admin-panel/', admin.site.urls),

    # Telegram Mini App session
    path('api/', include('accounts.urls')),

    # Crash game
    path('api/wager/', include('crash.urls')),

    # Telegram bot updates
    path('api/telegram/', include('notifications.urls')),
]
