"""
Database models app configuration.
"""
from django.apps import AppConfig


class DbConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'chathub.db'
    verbose_name = 'Database Models'

    def ready(self):
        # Import models here to avoid circular imports
        from .models import session, message, plan, subscription, credit_transaction, usage_log  # noqa
