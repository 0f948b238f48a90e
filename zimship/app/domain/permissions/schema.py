"""
Permission Schema.

Declares the permission sections, the actions each section supports, and
the role names that can never be deleted.
"""

import enum
from types import MappingProxyType
from typing import Optional


class PermissionSection(str, enum.Enum):
    ADMIN = "admin"
    SHIPMENTS = "shipments"
    USERS = "users"
    REPORTS = "reports"
    SUPPORT = "support"
    SETTINGS = "settings"


class PermissionAction(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


class SectionType(str, enum.Enum):
    BOOLEAN = "boolean"
    OBJECT = "object"


class SectionSpec:
    """Schema entry for one permission section."""

    __slots__ = ("section", "type", "actions", "label")

    def __init__(self, section: PermissionSection, type: SectionType, actions=(), label: str = ""):
        self.section = section
        self.type = type
        self.actions = frozenset(actions)
        self.label = label

    def __repr__(self):
        return f"<SectionSpec({self.section.value}, {self.type.value}, {sorted(a.value for a in self.actions)})>"


A = PermissionAction
RWD = (A.READ, A.WRITE, A.DELETE)
RW = (A.READ, A.WRITE)

PERMISSION_SCHEMA = MappingProxyType({
    PermissionSection.ADMIN: SectionSpec(PermissionSection.ADMIN, SectionType.BOOLEAN, label="Full administrator access"),
    PermissionSection.SHIPMENTS: SectionSpec(PermissionSection.SHIPMENTS, SectionType.OBJECT, RWD, "Shipments"),
    PermissionSection.USERS: SectionSpec(PermissionSection.USERS, SectionType.OBJECT, RWD, "Users"),
    PermissionSection.REPORTS: SectionSpec(PermissionSection.REPORTS, SectionType.OBJECT, RW, "Reports"),
    PermissionSection.SUPPORT: SectionSpec(PermissionSection.SUPPORT, SectionType.OBJECT, RW, "Support tickets"),
    PermissionSection.SETTINGS: SectionSpec(PermissionSection.SETTINGS, SectionType.OBJECT, RW, "System settings"),
})

PROTECTED_ROLE_NAMES = frozenset({"Admin", "Support", "Manager"})


def section_spec(section) -> Optional[SectionSpec]:
    """Look up a section by enum member or exact string key."""
    if isinstance(section, PermissionSection):
        return PERMISSION_SCHEMA[section]
    try:
        return PERMISSION_SCHEMA[PermissionSection(section)]
    except ValueError:
        return None
