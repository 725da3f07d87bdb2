"""
Notifications app: transactional outbox for post-commit side effects.

This app provides:
- SideEffect model, written in the same transaction as the state change
- SideEffectService.enqueue() for resolution flows
- EmailNotifier for plain-text customer emails
- Celery tasks that deliver side effects with retry

Usage:
    from notifications.models import SideEffectKind
    from notifications.services import SideEffectService

    SideEffectService.enqueue(
        SideEffectKind.REPRINT_CONFIRMATION_EMAIL,
        {"original_order_id": str(order.id), "reprint_order_id": str(reprint.id)},
    )
"""
