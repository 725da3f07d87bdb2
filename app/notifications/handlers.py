"""
Side-effect handler registry.

Maps each SideEffectKind to the function that performs it. Handlers take
the SideEffect payload (a dict of JSON values) and raise on failure so the
dispatcher can retry.

Usage:
    from notifications.handlers import get_handler, register_handler

    @register_handler("custom_kind")
    def handle_custom(payload: dict) -> None:
        ...

    get_handler(side_effect.kind)(side_effect.payload)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps side effect kinds to handler functions
SIDE_EFFECT_HANDLERS: dict[str, Callable[[dict[str, Any]], None]] = {}


class UnknownSideEffectKind(LookupError):
    pass


def register_handler(kind: str) -> Callable:
    """
    Decorator to register a side effect handler.

    Args:
        kind: The SideEffectKind value the handler serves
    """

    def decorator(func: Callable[[dict[str, Any]], None]) -> Callable:
        SIDE_EFFECT_HANDLERS[kind] = func
        logger.debug(f"Registered side effect handler for {kind}")
        return func

    return decorator


def get_handler(kind: str) -> Callable[[dict[str, Any]], None]:
    try:
        return SIDE_EFFECT_HANDLERS[kind]
    except KeyError:
        raise UnknownSideEffectKind(f"No handler registered for {kind}") from None


# =============================================================================
# Email Handlers
# =============================================================================


@register_handler("issue_message_email")
def handle_issue_message_email(payload: dict[str, Any]) -> None:
    from notifications.emails import EmailNotifier

    EmailNotifier.send_issue_message_email(message_id=payload["message_id"])


@register_handler("refund_confirmation_email")
def handle_refund_confirmation_email(payload: dict[str, Any]) -> None:
    from notifications.emails import EmailNotifier

    EmailNotifier.send_refund_confirmation_email(
        order_id=payload["order_id"],
        amount=Decimal(payload["amount"]),
        refund_id=payload.get("refund_id", ""),
        full_refund=payload.get("full_refund", True),
    )


@register_handler("reprint_confirmation_email")
def handle_reprint_confirmation_email(payload: dict[str, Any]) -> None:
    from notifications.emails import EmailNotifier

    EmailNotifier.send_reprint_confirmation_email(
        original_order_id=payload["original_order_id"],
        reprint_order_id=payload["reprint_order_id"],
    )


@register_handler("cancellation_email")
def handle_cancellation_email(payload: dict[str, Any]) -> None:
    from notifications.emails import EmailNotifier

    refund_amount = payload.get("refund_amount")
    EmailNotifier.send_cancellation_email(
        order_id=payload["order_id"],
        approved=payload["approved"],
        refund_amount=Decimal(refund_amount) if refund_amount else None,
        review_notes=payload.get("review_notes", ""),
    )


# =============================================================================
# Ledger Handlers
# =============================================================================


@register_handler("ledger_refund_entry")
def handle_ledger_refund_entry(payload: dict[str, Any]) -> None:
    from payments.ledger import LedgerService

    LedgerService.create_refund_entry(
        order_id=payload["order_id"],
        amount=Decimal(payload["amount"]),
        memo=payload.get("memo", ""),
        idempotency_key=payload["idempotency_key"],
        full_refund=payload.get("full_refund", True),
    )


@register_handler("ledger_reprint_expense")
def handle_ledger_reprint_expense(payload: dict[str, Any]) -> None:
    from payments.ledger import LedgerService

    LedgerService.create_reprint_expense(
        original_order_id=payload["original_order_id"],
        reprint_order_id=payload["reprint_order_id"],
        reason_code=payload.get("reason_code", ""),
        idempotency_key=payload.get("idempotency_key"),
    )


# =============================================================================
# Audit Handler
# =============================================================================


@register_handler("audit")
def handle_audit(payload: dict[str, Any]) -> None:
    from audit.services import AuditService

    AuditService.record_from_payload(payload)
