"""
WSGI config do Portal de Suporte.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "portal_suporte.settings")

application = get_wsgi_application()
