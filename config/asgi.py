"""
ASGI config for the factcite service.

The fact store is loaded before the application is returned; a failed
load exits the process.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Initialize Django first so settings are available to the loader.
application = get_asgi_application()

# Import after Django setup
from apps.rag.context import bootstrap  # noqa: E402

bootstrap()
