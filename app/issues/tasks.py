"""
Celery tasks for issue maintenance.

Tasks:
    auto_close_stale_issues: Daily; closes INFO_REQUESTED issues the
        customer never answered
    recover_stuck_processing: Every 15 minutes; finishes refunds left in
        PROCESSING by a worker that died between the Stripe call and the
        local commit

Both are scheduled by django-celery-beat (see migration
0002_add_celery_beat_schedules).
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings

from issues.services import IssueService

logger = logging.getLogger(__name__)


@shared_task
def auto_close_stale_issues() -> dict:
    """
    Close issues waiting on a customer reply for too long.

    Returns:
        {"closed": n}
    """
    closed = IssueService.auto_close_stale_issues()
    if closed:
        logger.info(f"Auto-closed {closed} stale issues")
    return {"closed": closed}


@shared_task(acks_late=True)
def recover_stuck_processing(older_than_minutes: int | None = None) -> dict:
    """
    Re-drive stuck refunds with their original idempotency keys.

    Returns:
        {"recovered": n, "failed": n}
    """
    minutes = older_than_minutes or settings.ISSUE_STUCK_PROCESSING_MINUTES
    counts = IssueService.recover_stuck_processing(older_than=timedelta(minutes=minutes))
    if counts["failed"]:
        logger.warning(f"{counts['failed']} stuck refunds could not be completed")
    return counts
