"""
WSGI config for the factcite service.

The fact store is loaded before the application is returned; a failed
load exits the process.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()

from apps.rag.context import bootstrap  # noqa: E402

bootstrap()
