"""
Rentas — Root URL Configuration
"""
from django.conf import settings
from django.contrib import admin
from django.urls import path, include, re_path
from django.views.static import serve

from core.storage import PUBLIC_PREFIX

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('core.urls')),

    # Public document URLs: <bucket>/<path> under MEDIA_ROOT
    re_path(rf'^{PUBLIC_PREFIX}/(?P<path>.+)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
