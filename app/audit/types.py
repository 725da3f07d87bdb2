"""
Type definitions for the audit trail.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from audit.models import ActorType

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class ActorContext:
    """
    Who performed an audited action.

    Serialized into side-effect payloads, so it holds plain values only.

    Attributes:
        user_id: Acting user's id as a string ("" for the system)
        email: Acting user's email ("" when unknown)
        actor_type: ADMIN, CUSTOMER or SYSTEM
    """

    user_id: str
    email: str
    actor_type: str

    @classmethod
    def from_user(cls, user) -> ActorContext:
        """Build from a Django user; staff users act as ADMIN."""
        if user is None:
            return cls.system()
        return cls(
            user_id=str(user.pk),
            email=user.email or "",
            actor_type=ActorType.ADMIN if user.is_staff else ActorType.CUSTOMER,
        )

    @classmethod
    def system(cls) -> ActorContext:
        return cls(user_id="", email="", actor_type=ActorType.SYSTEM)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ActorContext:
        if not data:
            return cls.system()
        return cls(
            user_id=str(data.get("user_id", "")),
            email=data.get("email", ""),
            actor_type=data.get("actor_type", ActorType.SYSTEM),
        )

    def to_dict(self) -> dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}
