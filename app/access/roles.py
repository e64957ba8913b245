"""
Domain layer - pure, Django-unaware role hierarchy.
Role levels are totally ordered integers; "at least role X" is level >= X.
"""

from enum import IntEnum


class RoleLevel(IntEnum):
    """Built-in role tiers. Gaps leave room for future roles."""

    CUSTOMER = 0
    SALES_REP = 1000
    FULFILLMENT_COORDINATOR = 2000
    SALES_MANAGER = 4000
    ADMIN = 5000
    SUPER_ADMIN = 9999

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]

    @classmethod
    def choices(cls) -> list:
        """(value, label) pairs for model fields and serializers."""
        return [(role.value, role.label) for role in cls]


ROLE_LABELS = {
    RoleLevel.CUSTOMER: "Customer",
    RoleLevel.SALES_REP: "Sales Representative",
    RoleLevel.FULFILLMENT_COORDINATOR: "Fulfillment Coordinator",
    RoleLevel.SALES_MANAGER: "Sales Manager",
    RoleLevel.ADMIN: "Administrator",
    RoleLevel.SUPER_ADMIN: "Super Administrator",
}

# Accepts both snake_case API names and enum-style names.
_ROLE_NAMES = {
    "customer": RoleLevel.CUSTOMER,
    "salesrep": RoleLevel.SALES_REP,
    "sales_rep": RoleLevel.SALES_REP,
    "fulfillmentcoordinator": RoleLevel.FULFILLMENT_COORDINATOR,
    "fulfillment_coordinator": RoleLevel.FULFILLMENT_COORDINATOR,
    "salesmanager": RoleLevel.SALES_MANAGER,
    "sales_manager": RoleLevel.SALES_MANAGER,
    "admin": RoleLevel.ADMIN,
    "superadmin": RoleLevel.SUPER_ADMIN,
    "super_admin": RoleLevel.SUPER_ADMIN,
}


def has_minimum_role(actor_role_level, required_level) -> bool:
    """True if the actor is at least the required role."""
    if actor_role_level is None:
        return False
    return int(actor_role_level) >= int(required_level)


def is_exact_role(actor_role_level, role) -> bool:
    """True only for the given tier, not for anything above it."""
    if actor_role_level is None:
        return False
    return int(actor_role_level) == int(role)


def is_staff_level(actor_role_level) -> bool:
    """Staff is anyone at or above the sales representative tier."""
    return has_minimum_role(actor_role_level, RoleLevel.SALES_REP)


def role_label(level) -> str:
    """Display name for a level; custom levels get a generic label."""
    if level is None:
        return "Unknown"
    try:
        return RoleLevel(int(level)).label
    except ValueError:
        return f"Role {int(level)}"


def parse_role(value) -> int:
    """
    Normalises a role given either as a numeric level or as a name.
    Unknown names fall back to the customer tier.
    """
    if isinstance(value, bool):
        raise TypeError("Role level must be an int or a role name.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.isdigit():
            return int(cleaned)
        return int(_ROLE_NAMES.get(cleaned.lower(), RoleLevel.CUSTOMER))
    raise TypeError("Role level must be an int or a role name.")
