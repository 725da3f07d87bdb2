"""
Audit app: append-only trail of administrative and money-moving actions.

Records are written by the side-effect dispatcher, never inline, so an
audit failure cannot block or roll back the action being audited.

Usage:
    from audit.services import audit_refund
    from audit.types import ActorContext

    audit_refund(ActorContext.from_user(admin), order_id=order.id, amount=amount)
"""
