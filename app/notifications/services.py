"""
Side-effect outbox service.

Resolution flows never send email, write ledger entries or audit records
inline. They enqueue a SideEffect inside their own transaction; the row
commits (or rolls back) with the state change, and a Celery task delivers
it once the transaction has committed.

Design Principles:
    - enqueue() must be called inside the caller's transaction
    - Dispatch happens only after commit (transaction.on_commit)
    - A broker outage never fails the primary operation; the periodic
      sweep re-dispatches rows whose on_commit hook was lost

Usage:
    from notifications.services import SideEffectService
    from notifications.models import SideEffectKind

    with transaction.atomic():
        issue.save()
        SideEffectService.enqueue(
            SideEffectKind.REFUND_CONFIRMATION_EMAIL,
            {"order_id": str(order.id), "amount": "25.00"},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from core.services import BaseService

from notifications.handlers import get_handler
from notifications.models import SideEffect, SideEffectKind, SideEffectStatus

if TYPE_CHECKING:
    from typing import Any


class SideEffectService(BaseService):
    """Outbox writes and delivery."""

    @classmethod
    def enqueue(cls, kind: str, payload: dict[str, Any]) -> SideEffect:
        """
        Record a side effect and schedule its dispatch after commit.

        Args:
            kind: A SideEffectKind value
            payload: JSON-serializable handler arguments

        Returns:
            The PENDING SideEffect row
        """
        if kind not in SideEffectKind.values:
            raise ValueError(f"Unknown side effect kind: {kind}")

        side_effect = SideEffect.objects.create(kind=kind, payload=payload)

        # Imported here to avoid a circular import (tasks -> services)
        from notifications.tasks import dispatch_side_effect

        side_effect_id = str(side_effect.id)
        transaction.on_commit(
            lambda: dispatch_side_effect.delay(side_effect_id),
            robust=True,
        )

        cls.get_logger().debug(
            "Side effect enqueued",
            extra={"side_effect_id": side_effect_id, "kind": kind},
        )
        return side_effect

    @classmethod
    def deliver(cls, side_effect: SideEffect) -> None:
        """
        Run the handler for ``side_effect`` and mark it DELIVERED.

        Handler exceptions propagate; the caller decides whether to retry.
        """
        handler = get_handler(side_effect.kind)

        # Handler writes and the DELIVERED mark commit together
        with cls.atomic():
            handler(side_effect.payload)

            side_effect.status = SideEffectStatus.DELIVERED
            side_effect.delivered_at = timezone.now()
            side_effect.next_attempt_at = None
            side_effect.save(
                update_fields=["status", "delivered_at", "next_attempt_at", "updated_at"]
            )

        cls.get_logger().info(
            "Side effect delivered",
            extra={
                "side_effect_id": str(side_effect.id),
                "kind": side_effect.kind,
                "attempt_count": side_effect.attempt_count,
            },
        )
