"""
Factory Boy factories for outbox test data.

Usage:
    from notifications.tests.factories import SideEffectFactory

    side_effect = SideEffectFactory(kind=SideEffectKind.AUDIT, payload={...})
"""

import factory

from notifications.models import SideEffect, SideEffectKind, SideEffectStatus


class SideEffectFactory(factory.django.DjangoModelFactory):
    """A PENDING audit side effect recorded by the system."""

    class Meta:
        model = SideEffect

    kind = SideEffectKind.AUDIT
    status = SideEffectStatus.PENDING
    payload = factory.LazyFunction(
        lambda: {
            "action": "ORDER_REFUNDED",
            "entity_type": "order",
            "entity_id": "00000000-0000-0000-0000-000000000001",
            "actor": {"user_id": "", "email": "", "actor_type": "SYSTEM"},
            "details": {"amount": "25.00"},
        }
    )
