"""
WSGI config for Rentas.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentas_project.settings')

application = get_wsgi_application()
