"""
Celery tasks for side-effect delivery.

Tasks:
    dispatch_side_effect: Deliver one outbox row
    redispatch_pending_side_effects: Periodic sweep for rows whose
        post-commit dispatch was lost

Design:
    - Tasks receive side_effect_id (UUID string), never payloads
    - Re-running on a non-PENDING row is a no-op, so dispatch is idempotent
    - A failing handler is retried with backoff until SIDE_EFFECT_MAX_ATTEMPTS,
      then the row is marked FAILED and left for inspection

Usage:
    from notifications.tasks import dispatch_side_effect

    # Called automatically after commit by SideEffectService.enqueue()
    dispatch_side_effect.delay(side_effect_id="uuid-string")
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from notifications.models import SideEffect, SideEffectStatus
from notifications.services import SideEffectService

logger = logging.getLogger(__name__)


MAX_ATTEMPTS = getattr(settings, "SIDE_EFFECT_MAX_ATTEMPTS", 5)

# Rows younger than this are left to their own on_commit dispatch
REDISPATCH_GRACE_SECONDS = 60

RETRY_BACKOFF_MAX_SECONDS = 300


def _get_side_effect(side_effect_id: str) -> SideEffect | None:
    """
    Fetch a side effect.

    Returns None if it doesn't exist or is not PENDING.
    """
    try:
        side_effect = SideEffect.objects.get(id=side_effect_id)
    except SideEffect.DoesNotExist:
        logger.warning(f"Side effect {side_effect_id} not found")
        return None

    if side_effect.status != SideEffectStatus.PENDING:
        logger.info(
            f"Side effect {side_effect_id} status is {side_effect.status}, skipping"
        )
        return None

    return side_effect


def _backoff_seconds(attempt_count: int) -> int:
    return min(2**attempt_count, RETRY_BACKOFF_MAX_SECONDS)


def _record_failure(side_effect: SideEffect, error: Exception) -> bool:
    """
    Count a failed attempt.

    Returns True if the row may be retried, False once it is marked FAILED.
    """
    side_effect.attempt_count += 1
    side_effect.last_error = f"{type(error).__name__}: {error}"[:2000]

    if side_effect.attempt_count >= MAX_ATTEMPTS:
        side_effect.status = SideEffectStatus.FAILED
        side_effect.next_attempt_at = None
    else:
        side_effect.next_attempt_at = timezone.now() + timedelta(
            seconds=_backoff_seconds(side_effect.attempt_count)
        )

    side_effect.save(
        update_fields=[
            "attempt_count",
            "last_error",
            "status",
            "next_attempt_at",
            "updated_at",
        ]
    )
    return side_effect.status == SideEffectStatus.PENDING


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=RETRY_BACKOFF_MAX_SECONDS,
    retry_kwargs={"max_retries": MAX_ATTEMPTS},
    acks_late=True,
)
def dispatch_side_effect(self, side_effect_id: str) -> bool:
    """
    Deliver a single side effect.

    Flow:
        1. Fetch the row; skip if missing or not PENDING
        2. Route to the handler registered for its kind
        3. On success: status=DELIVERED
        4. On error: count the attempt; re-raise for retry, or mark FAILED
           once attempts are exhausted

    Args:
        side_effect_id: UUID string of the SideEffect

    Returns:
        True if delivered or skipped, False if permanently failed
    """
    side_effect = _get_side_effect(side_effect_id)
    if side_effect is None:
        return True

    try:
        SideEffectService.deliver(side_effect)
        return True
    except Exception as e:
        if _record_failure(side_effect, e):
            logger.warning(
                f"Side effect {side_effect_id} ({side_effect.kind}) failed: {e}, "
                f"will retry (attempt {side_effect.attempt_count}/{MAX_ATTEMPTS})"
            )
            raise

        logger.exception(
            f"Side effect {side_effect_id} ({side_effect.kind}) failed permanently "
            f"after {side_effect.attempt_count} attempts",
            extra={"side_effect_id": side_effect_id, "kind": side_effect.kind},
        )
        return False


@shared_task
def redispatch_pending_side_effects() -> dict:
    """
    Periodic task to re-queue PENDING side effects.

    Picks up rows older than a minute whose backoff has elapsed. These are
    rows whose on_commit dispatch never ran (process crash, broker outage)
    or whose Celery retries were lost.

    This task should be scheduled via celery-beat, e.g., every 5 minutes.
    """
    now = timezone.now()
    cutoff = now - timedelta(seconds=REDISPATCH_GRACE_SECONDS)

    pending_ids = list(
        SideEffect.objects.filter(
            status=SideEffectStatus.PENDING,
            created_at__lt=cutoff,
        )
        .filter(Q(next_attempt_at__isnull=True) | Q(next_attempt_at__lte=now))
        .values_list("id", flat=True)[:500]
    )

    for side_effect_id in pending_ids:
        dispatch_side_effect.delay(str(side_effect_id))

    if pending_ids:
        logger.info(f"Re-queued {len(pending_ids)} pending side effects")

    return {"queued": len(pending_ids)}
