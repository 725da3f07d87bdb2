"""
Audit trail services.

AuditService.record() writes an entry. It is called by the side-effect
dispatcher; resolution flows use the audit_* helpers instead, which
enqueue the record in the caller's transaction so it is only written if
the audited action commits.

Usage:
    from audit.services import audit_issue_resolution
    from audit.types import ActorContext

    with transaction.atomic():
        issue.save()
        audit_issue_resolution(
            ActorContext.from_user(admin),
            issue_id=issue.id,
            resolution_type="FULL_REFUND",
            details={"refund_id": "re_123"},
        )
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from core.services import BaseService

from audit.models import AuditAction, AuditLogEntry
from audit.types import ActorContext

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID


def _jsonable(details: dict[str, Any] | None) -> dict[str, Any]:
    """Stringify values JSON can't hold (UUIDs, Decimals)."""
    result: dict[str, Any] = {}
    for key, value in (details or {}).items():
        if value is None or isinstance(value, (bool, int, float, str, list, dict)):
            result[key] = value
        else:
            result[key] = str(value)
    return result


class AuditService(BaseService):
    """Writes audit entries."""

    @classmethod
    def record(
        cls,
        action: str,
        entity_type: str,
        entity_id: UUID | str,
        actor: ActorContext,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry.objects.create(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=actor.user_id,
            actor_email=actor.email,
            actor_type=actor.actor_type,
            details=_jsonable(details),
        )
        cls.get_logger().info(
            "Audit entry recorded",
            extra={
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "actor_id": actor.user_id,
            },
        )
        return entry

    @classmethod
    def record_from_payload(cls, payload: dict[str, Any]) -> AuditLogEntry:
        """Write an entry from an outbox payload built by enqueue()."""
        return cls.record(
            action=payload["action"],
            entity_type=payload["entity_type"],
            entity_id=payload["entity_id"],
            actor=ActorContext.from_dict(payload.get("actor")),
            details=payload.get("details"),
        )

    @classmethod
    def enqueue(
        cls,
        action: str,
        entity_type: str,
        entity_id: UUID | str,
        actor: ActorContext,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Schedule an entry to be written after the current transaction commits."""
        from notifications.models import SideEffectKind
        from notifications.services import SideEffectService

        SideEffectService.enqueue(
            SideEffectKind.AUDIT,
            {
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "actor": actor.to_dict(),
                "details": _jsonable(details),
            },
        )


# =============================================================================
# Helpers
# =============================================================================


def audit_issue_reported(
    actor: ActorContext,
    issue_id: UUID | str,
    order_id: UUID | str,
    reason: str,
) -> None:
    AuditService.enqueue(
        AuditAction.ISSUE_REPORTED,
        "issue",
        issue_id,
        actor,
        {"order_id": order_id, "reason": reason},
    )


def audit_issue_resolution(
    actor: ActorContext,
    issue_id: UUID | str,
    resolution_type: str,
    details: dict[str, Any] | None = None,
    entity_type: str = "issue",
) -> None:
    """Record that an issue (or order-level resolution) was resolved."""
    AuditService.enqueue(
        AuditAction.ISSUE_RESOLVED,
        entity_type,
        issue_id,
        actor,
        {"resolution_type": resolution_type, **(details or {})},
    )


def audit_reprint_creation(
    actor: ActorContext,
    original_order_id: UUID | str,
    reprint_order_id: UUID | str,
    source_id: UUID | str | None = None,
) -> None:
    AuditService.enqueue(
        AuditAction.REPRINT_CREATED,
        "order",
        reprint_order_id,
        actor,
        {"original_order_id": original_order_id, "source_id": source_id},
    )


def audit_refund(
    actor: ActorContext,
    order_id: UUID | str,
    amount: Decimal,
    refund_id: str,
    idempotency_key: str = "",
    full_refund: bool = True,
) -> None:
    AuditService.enqueue(
        AuditAction.ORDER_REFUNDED,
        "order",
        order_id,
        actor,
        {
            "amount": amount,
            "refund_id": refund_id,
            "idempotency_key": idempotency_key,
            "full_refund": full_refund,
        },
    )


def audit_cancellation_review(
    actor: ActorContext,
    request_id: UUID | str,
    order_id: UUID | str,
    approved: bool,
    refund_amount: Decimal | None = None,
    review_notes: str = "",
) -> None:
    """
    Record a cancellation decision.

    An approval also records ORDER_CANCELLED against the order.
    """
    details = {
        "order_id": order_id,
        "refund_amount": refund_amount,
        "review_notes": review_notes,
    }
    action = (
        AuditAction.CANCELLATION_APPROVED if approved else AuditAction.CANCELLATION_REJECTED
    )
    AuditService.enqueue(action, "cancellation_request", request_id, actor, details)

    if approved:
        AuditService.enqueue(
            AuditAction.ORDER_CANCELLED,
            "order",
            order_id,
            actor,
            {"cancellation_request_id": request_id, "refund_amount": refund_amount},
        )
