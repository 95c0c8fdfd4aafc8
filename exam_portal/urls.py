"""
Root URL configuration for the exam portal.
"""
from django.conf import settings
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from core.views import login_view, logout_view

urlpatterns = [
    path('', RedirectView.as_view(url='/login/', permanent=False), name='home'),
    path('login/', login_view, name='login'),
    path('logout/', logout_view, name='logout'),
    path(f"{settings.SECRET_ADMIN_URL}/", admin.site.urls),
    path('api/creator/', include('creator.api_urls')),
    path('api/field/', include('fieldops.api_urls')),
]

# JSON error handlers
handler404 = 'core.error_handlers.handler404'
handler500 = 'core.error_handlers.handler500'
handler403 = 'core.error_handlers.handler403'
handler400 = 'core.error_handlers.handler400'
