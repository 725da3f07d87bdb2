"""
Tests for the side-effect dispatch tasks.
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from audit.models import AuditLogEntry
from notifications.models import SideEffect, SideEffectStatus
from notifications.tasks import (
    MAX_ATTEMPTS,
    dispatch_side_effect,
    redispatch_pending_side_effects,
)
from notifications.tests.factories import SideEffectFactory


@pytest.mark.django_db
class TestDispatchSideEffect:
    def test_delivers_pending_row(self):
        side_effect = SideEffectFactory()

        assert dispatch_side_effect(str(side_effect.id)) is True

        assert SideEffect.objects.get(pk=side_effect.pk).status == SideEffectStatus.DELIVERED
        assert AuditLogEntry.objects.count() == 1

    def test_redelivery_is_a_no_op(self):
        side_effect = SideEffectFactory()
        dispatch_side_effect(str(side_effect.id))

        assert dispatch_side_effect(str(side_effect.id)) is True

        assert AuditLogEntry.objects.count() == 1

    def test_missing_row_is_skipped(self):
        assert dispatch_side_effect("00000000-0000-0000-0000-000000000000") is True

    def test_failure_is_counted_and_retried(self, failing_handler):
        side_effect = SideEffectFactory()

        with pytest.raises(RuntimeError):
            dispatch_side_effect(str(side_effect.id))

        side_effect = SideEffect.objects.get(pk=side_effect.pk)
        assert side_effect.status == SideEffectStatus.PENDING
        assert side_effect.attempt_count == 1
        assert side_effect.last_error == "RuntimeError: mail server down"
        assert side_effect.next_attempt_at > timezone.now()

    def test_last_attempt_marks_failed(self, failing_handler):
        side_effect = SideEffectFactory(attempt_count=MAX_ATTEMPTS - 1)

        assert dispatch_side_effect(str(side_effect.id)) is False

        side_effect = SideEffect.objects.get(pk=side_effect.pk)
        assert side_effect.status == SideEffectStatus.FAILED
        assert side_effect.attempt_count == MAX_ATTEMPTS
        assert side_effect.next_attempt_at is None

    def test_failed_rows_are_not_retried(self, failing_handler):
        side_effect = SideEffectFactory(status=SideEffectStatus.FAILED)

        assert dispatch_side_effect(str(side_effect.id)) is True
        assert failing_handler == []


@pytest.mark.django_db
class TestRedispatchPendingSideEffects:
    def test_requeues_old_pending_rows(self, mocker):
        delay = mocker.patch("notifications.tasks.dispatch_side_effect.delay")
        with freeze_time(timezone.now() - timedelta(minutes=10)):
            stale = SideEffectFactory()
        SideEffectFactory()  # just enqueued, its own dispatch is still due
        with freeze_time(timezone.now() - timedelta(minutes=10)):
            SideEffectFactory(status=SideEffectStatus.DELIVERED)

        result = redispatch_pending_side_effects()

        assert result == {"queued": 1}
        delay.assert_called_once_with(str(stale.id))

    def test_respects_backoff(self, mocker):
        delay = mocker.patch("notifications.tasks.dispatch_side_effect.delay")
        with freeze_time(timezone.now() - timedelta(minutes=10)):
            SideEffectFactory(
                attempt_count=2,
                next_attempt_at=timezone.now() + timedelta(hours=1),
            )

        assert redispatch_pending_side_effects() == {"queued": 0}
        delay.assert_not_called()
