"""
Pytest fixtures for notification tests.
"""

import pytest

from notifications.handlers import SIDE_EFFECT_HANDLERS


@pytest.fixture
def failing_handler():
    """
    Make audit side effects fail on delivery.

    Yields the list of payloads the handler was called with.
    """
    calls = []

    def _fail(payload):
        calls.append(payload)
        raise RuntimeError("mail server down")

    original = SIDE_EFFECT_HANDLERS["audit"]
    SIDE_EFFECT_HANDLERS["audit"] = _fail
    yield calls
    SIDE_EFFECT_HANDLERS["audit"] = original
