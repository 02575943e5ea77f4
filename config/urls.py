"""
URL configuration for MovoKids.

This is the main URL router that directs all requests to the appropriate views.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.contrib.sitemaps.views import sitemap
from django.urls import path, include

from movokids.sitemaps import sitemaps

urlpatterns = [
    # Django admin for coaches, sessions and everything the back-office JSON doesn't cover
    path('admin/', admin.site.urls),

    path('sitemap.xml', sitemap, {'sitemaps': sitemaps}, name='django.contrib.sitemaps.views.sitemap'),

    # Everything else: pages, auth, learning path, payments, back-office API
    path("", include("movokids.urls")),
]

# Uploaded blog images and videos during development
urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
