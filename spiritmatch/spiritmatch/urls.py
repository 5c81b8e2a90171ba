"""
URL configuration for spiritmatch project.

The quiz app owns the site root; everything else is static assets.
"""
from django.urls import path, include

urlpatterns = [
    path('', include('quiz.urls')),
]

from django.conf import settings
from django.conf.urls.static import static

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
