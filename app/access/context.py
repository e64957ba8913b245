"""
Actor and per-query relational context.
ActorContext is derived, never stored: build it fresh from the current
actor and the current entity snapshot for every authorization query.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Actor:
    """The party requesting an action."""

    id: Optional[int]
    role_level: int
    customer_id: Optional[int] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(
            id=user.id,
            role_level=user.role_level,
            customer_id=user.customer_id,
        )

    @classmethod
    def from_payload(cls, payload: dict) -> "Actor":
        return cls(
            id=payload.get("id"),
            role_level=payload.get("role_level", 0),
            customer_id=payload.get("customer_id"),
        )


@dataclass(frozen=True)
class ActorContext:
    role_level: int
    is_own_entity: bool = False
    is_assigned_entity: bool = False

    def as_dict(self) -> dict:
        return {
            "is_own_entity": self.is_own_entity,
            "is_assigned_entity": self.is_assigned_entity,
        }


def same_id(left, right) -> bool:
    """Compares ids that may arrive as ints or strings; None never matches."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


@dataclass(frozen=True)
class Transition:
    """A requested state change: what to do, to which status, and why."""

    action: str
    target: Optional[str] = None
    reason: str = ""
    metadata: dict = field(default_factory=dict)
