"""
Tests for the audit trail.
"""

from decimal import Decimal

import pytest

from audit.models import ActorType, AuditAction, AuditLogEntry
from audit.services import (
    AuditService,
    audit_cancellation_review,
    audit_issue_reported,
    audit_refund,
)
from audit.types import ActorContext
from notifications.models import SideEffect, SideEffectKind


class TestActorContext:
    def test_staff_user_is_admin(self, admin_user):
        actor = ActorContext.from_user(admin_user)

        assert actor.actor_type == ActorType.ADMIN
        assert actor.user_id == str(admin_user.pk)
        assert actor.email == admin_user.email

    def test_customer(self, customer):
        assert ActorContext.from_user(customer).actor_type == ActorType.CUSTOMER

    def test_no_user_is_system(self):
        assert ActorContext.from_user(None) == ActorContext.system()

    def test_round_trips_through_payload(self, customer):
        actor = ActorContext.from_user(customer)

        assert ActorContext.from_dict(actor.to_dict()) == actor

    def test_empty_payload_is_system(self):
        assert ActorContext.from_dict(None).actor_type == ActorType.SYSTEM


@pytest.mark.django_db
class TestAuditService:
    def test_record_stringifies_details(self, admin_user, delivered_order):
        entry = AuditService.record(
            AuditAction.ORDER_REFUNDED,
            "order",
            delivered_order.id,
            ActorContext.from_user(admin_user),
            {"amount": Decimal("25.00"), "order_id": delivered_order.id, "full_refund": True},
        )

        assert entry.entity_id == str(delivered_order.id)
        assert entry.details == {
            "amount": "25.00",
            "order_id": str(delivered_order.id),
            "full_refund": True,
        }
        assert entry.actor_email == admin_user.email

    def test_record_from_payload(self):
        entry = AuditService.record_from_payload(
            {
                "action": AuditAction.ISSUE_REPORTED,
                "entity_type": "issue",
                "entity_id": "abc",
                "details": {"reason": "DAMAGED"},
            }
        )

        assert entry.actor_type == ActorType.SYSTEM
        assert entry.details == {"reason": "DAMAGED"}

    def test_enqueue_defers_the_write(self, customer):
        audit_issue_reported(
            ActorContext.from_user(customer),
            issue_id="issue-1",
            order_id="order-1",
            reason="DAMAGED",
        )

        assert not AuditLogEntry.objects.exists()
        side_effect = SideEffect.objects.get(kind=SideEffectKind.AUDIT)
        assert side_effect.payload["action"] == AuditAction.ISSUE_REPORTED
        assert side_effect.payload["actor"]["actor_type"] == ActorType.CUSTOMER


@pytest.mark.django_db
class TestAuditHelpers:
    def test_refund(self, admin_user):
        audit_refund(
            ActorContext.from_user(admin_user),
            order_id="order-1",
            amount=Decimal("7.50"),
            refund_id="re_1",
            idempotency_key="issue_1",
            full_refund=False,
        )

        payload = SideEffect.objects.get().payload
        assert payload["action"] == AuditAction.ORDER_REFUNDED
        assert payload["details"]["amount"] == "7.50"
        assert payload["details"]["full_refund"] is False

    def test_approved_cancellation_also_records_order_cancelled(self, admin_user):
        audit_cancellation_review(
            ActorContext.from_user(admin_user),
            request_id="request-1",
            order_id="order-1",
            approved=True,
            refund_amount=Decimal("25.00"),
        )

        actions = {row.payload["action"] for row in SideEffect.objects.all()}
        assert actions == {AuditAction.CANCELLATION_APPROVED, AuditAction.ORDER_CANCELLED}

    def test_rejected_cancellation(self, admin_user):
        audit_cancellation_review(
            ActorContext.from_user(admin_user),
            request_id="request-1",
            order_id="order-1",
            approved=False,
            review_notes="Too late",
        )

        (side_effect,) = SideEffect.objects.all()
        assert side_effect.payload["action"] == AuditAction.CANCELLATION_REJECTED
        assert side_effect.payload["details"]["review_notes"] == "Too late"
