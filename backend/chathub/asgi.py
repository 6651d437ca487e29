"""
ASGI config for chathub project.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import atexit
import os
from django.core.asgi import get_asgi_application
from django.contrib.staticfiles.handlers import ASGIStaticFilesHandler
from chathub.observability.tracing import cleanup_all_clients

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "chathub.settings")

# Flush pending Langfuse traces on shutdown
atexit.register(cleanup_all_clients)

django_asgi_app = get_asgi_application()

# In production, static files should be served by nginx or a CDN
application = ASGIStaticFilesHandler(django_asgi_app)
