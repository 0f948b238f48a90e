"""
Permission Evaluator.

Pure functions answering "can this permissions document perform action A
on section S" and normalising permissions documents against the schema.
No state is kept between calls.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from zimship.app.core.exceptions import SchemaViolationError
from zimship.app.domain.permissions.schema import (
    PERMISSION_SCHEMA,
    PROTECTED_ROLE_NAMES,
    PermissionAction,
    SectionType,
    section_spec,
)

logger = logging.getLogger("zimship")


def _key(value) -> Any:
    # Enum members compare by their string value
    return getattr(value, "value", value)


def default_permissions() -> Dict[str, Any]:
    """An all-false permissions document covering every section."""
    doc: Dict[str, Any] = {}
    for section, spec in PERMISSION_SCHEMA.items():
        if spec.type is SectionType.BOOLEAN:
            doc[section.value] = False
        else:
            doc[section.value] = {action.value: False for action in sorted(spec.actions, key=lambda a: a.value)}
    return doc


def has_permission(permissions: Optional[Mapping], section, action=None) -> bool:
    """
    Check a single permission.

    Args:
        permissions: Permissions document (may be partial; missing entries are False)
        section: Permission section key
        action: Required for object sections, ignored for boolean sections

    Raises:
        SchemaViolationError: unknown section, missing/undeclared action,
            or a stored value of the wrong type
    """
    spec = section_spec(section)
    if spec is None:
        raise SchemaViolationError(f"Unknown permission section '{_key(section)}'", section=_key(section))

    permissions = permissions or {}
    stored = permissions.get(spec.section.value, None)

    if spec.type is SectionType.BOOLEAN:
        if stored is None:
            return False
        if not isinstance(stored, bool):
            raise SchemaViolationError(
                f"Section '{spec.section.value}' must be a boolean",
                section=spec.section.value
            )
        return stored

    if action is None:
        raise SchemaViolationError(
            f"Section '{spec.section.value}' requires an action",
            section=spec.section.value
        )
    try:
        declared = PermissionAction(_key(action))
    except ValueError:
        declared = None
    if declared is None or declared not in spec.actions:
        raise SchemaViolationError(
            f"Action '{_key(action)}' is not declared for section '{spec.section.value}'",
            section=spec.section.value,
            action=_key(action)
        )

    if stored is None:
        return False
    if not isinstance(stored, Mapping):
        raise SchemaViolationError(
            f"Section '{spec.section.value}' must be an object of action flags",
            section=spec.section.value
        )
    value = stored.get(declared.value, False)
    if not isinstance(value, bool):
        raise SchemaViolationError(
            f"Permission '{spec.section.value}.{declared.value}' must be a boolean",
            section=spec.section.value,
            action=declared.value
        )
    return value


def is_protected_role(name: str) -> bool:
    """Exact, case-sensitive match against the built-in protected role names."""
    return name in PROTECTED_ROLE_NAMES


def validate_permissions_shape(doc: Optional[Mapping]) -> Dict[str, Any]:
    """
    Normalise a permissions document against the schema.

    Missing sections and actions are filled in as False, so documents saved
    under an older schema load cleanly. Unknown sections or actions and
    non-boolean flags are rejected.

    Returns:
        A new, complete permissions document with string keys

    Raises:
        SchemaViolationError
    """
    if doc is None:
        return default_permissions()
    if not isinstance(doc, Mapping):
        raise SchemaViolationError("Permissions document must be an object")

    normalised = default_permissions()

    for raw_section, value in doc.items():
        spec = section_spec(_key(raw_section))
        if spec is None:
            raise SchemaViolationError(
                f"Unknown permission section '{_key(raw_section)}'",
                section=_key(raw_section)
            )
        name = spec.section.value

        if spec.type is SectionType.BOOLEAN:
            if not isinstance(value, bool):
                raise SchemaViolationError(f"Section '{name}' must be a boolean", section=name)
            normalised[name] = value
            continue

        if not isinstance(value, Mapping):
            raise SchemaViolationError(f"Section '{name}' must be an object of action flags", section=name)

        for raw_action, flag in value.items():
            try:
                action = PermissionAction(_key(raw_action))
            except ValueError:
                action = None
            if action is None or action not in spec.actions:
                raise SchemaViolationError(
                    f"Action '{_key(raw_action)}' is not declared for section '{name}'",
                    section=name,
                    action=_key(raw_action)
                )
            if not isinstance(flag, bool):
                raise SchemaViolationError(
                    f"Permission '{name}.{action.value}' must be a boolean",
                    section=name,
                    action=action.value
                )
            normalised[name][action.value] = flag

    return normalised


def load_permissions(doc: Optional[Mapping], role_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Normalise a stored permissions document without rejecting it.

    Used on read paths. Sections, actions, and values the current schema
    does not accept are dropped (each drop is logged) and read as False, so
    one stale role cannot break role listings or permission checks. Writes
    still go through ``validate_permissions_shape``.
    """
    normalised = default_permissions()
    if doc is None:
        return normalised
    if not isinstance(doc, Mapping):
        logger.warning(
            "Ignoring malformed stored permissions",
            extra={"role_name": role_name, "stored_type": type(doc).__name__}
        )
        return normalised

    for raw_section, value in doc.items():
        spec = section_spec(_key(raw_section))
        if spec is None:
            logger.warning(
                "Dropping unknown permission section",
                extra={"role_name": role_name, "section": _key(raw_section)}
            )
            continue
        name = spec.section.value

        if spec.type is SectionType.BOOLEAN:
            if isinstance(value, bool):
                normalised[name] = value
            else:
                logger.warning(
                    "Dropping non-boolean permission",
                    extra={"role_name": role_name, "section": name}
                )
            continue

        if not isinstance(value, Mapping):
            logger.warning(
                "Dropping malformed permission section",
                extra={"role_name": role_name, "section": name}
            )
            continue

        for raw_action, flag in value.items():
            try:
                action = PermissionAction(_key(raw_action))
            except ValueError:
                action = None
            if action is None or action not in spec.actions or not isinstance(flag, bool):
                logger.warning(
                    "Dropping unknown permission action",
                    extra={"role_name": role_name, "section": name, "action": _key(raw_action)}
                )
                continue
            normalised[name][action.value] = flag

    return normalised


def describe_schema() -> Dict[str, Any]:
    """Serializable view of the schema for role editors."""
    return {
        section.value: {
            "type": spec.type.value,
            "label": spec.label,
            "actions": sorted(a.value for a in spec.actions),
        }
        for section, spec in PERMISSION_SCHEMA.items()
    }
