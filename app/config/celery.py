"""
Celery configuration for the Django application.

Celery carries the engine's asynchronous work:
- Dispatching outbox side effects (emails, ledger entries, audit records)
- Periodic sweeps (auto-closing stale issues, recovering stuck refunds,
  re-dispatching side effects whose on-commit hook was lost)

Tasks are auto-discovered from the tasks.py module of every installed app.
Periodic schedules live in the database (django-celery-beat).

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import logging
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

logger = logging.getLogger(__name__)

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()


@app.task(bind=True, ignore_result=True)
def debug_task(self):
    """Log the request to verify worker connectivity."""
    logger.info("Celery debug task request: %r", self.request)
