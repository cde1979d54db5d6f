"""
URL configuration for trackportal project.

Track-transition endpoints plus the Django admin (audit log browsing).
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Django admin
    path('admin/', admin.site.urls),

    # Track transitions, application review, roster export
    path('tracks/', include(('tracks.urls', 'tracks'), namespace='tracks')),
]
