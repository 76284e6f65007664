"""Django project package: settings, URL root, WSGI/ASGI and the Celery app."""

# Load the Celery app with Django so @shared_task binds to it
from .celery import app as celery_app  # noqa: F401
