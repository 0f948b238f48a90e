"""
Unit tests for the permission schema and evaluator.
"""

import logging

import pytest

from zimship.app.core.exceptions import SchemaViolationError
from zimship.app.domain.permissions.evaluator import (
    default_permissions,
    describe_schema,
    has_permission,
    is_protected_role,
    load_permissions,
    validate_permissions_shape,
)
from zimship.app.domain.permissions.schema import PermissionAction, PermissionSection

DISPATCHER_PERMISSIONS = {
    "admin": False,
    "shipments": {"read": True, "write": True, "delete": False},
    "reports": {"read": True, "write": False},
}


def test_dispatcher_can_write_but_not_delete_shipments():
    assert has_permission(DISPATCHER_PERMISSIONS, "shipments", "write") is True
    assert has_permission(DISPATCHER_PERMISSIONS, "shipments", "delete") is False
    assert has_permission(DISPATCHER_PERMISSIONS, "admin") is False


def test_enum_keys_match_string_keys():
    assert has_permission(DISPATCHER_PERMISSIONS, PermissionSection.SHIPMENTS, PermissionAction.WRITE) is True
    assert has_permission(DISPATCHER_PERMISSIONS, PermissionSection.REPORTS, PermissionAction.READ) is True


def test_stored_value_is_returned_as_is():
    doc = {"admin": True, "shipments": {"read": False}}
    # The admin flag does not imply other sections at the evaluator level
    assert has_permission(doc, "admin") is True
    assert has_permission(doc, "shipments", "read") is False


def test_boolean_section_ignores_action():
    assert has_permission({"admin": True}, "admin", "delete") is True


def test_missing_entries_are_false():
    assert has_permission({}, "users", "read") is False
    assert has_permission(None, "admin") is False
    assert has_permission({"shipments": {"read": True}}, "shipments", "delete") is False


def test_unknown_section_raises():
    with pytest.raises(SchemaViolationError) as exc_info:
        has_permission(DISPATCHER_PERMISSIONS, "billing", "read")
    assert exc_info.value.error_code == "ERR_SCHEMA_001"
    assert exc_info.value.status_code == 422


def test_undeclared_action_raises():
    # reports only supports read/write
    with pytest.raises(SchemaViolationError):
        has_permission(DISPATCHER_PERMISSIONS, "reports", "delete")
    with pytest.raises(SchemaViolationError):
        has_permission(DISPATCHER_PERMISSIONS, "shipments", "approve")


def test_object_section_requires_action():
    with pytest.raises(SchemaViolationError):
        has_permission(DISPATCHER_PERMISSIONS, "shipments")


def test_wrong_value_type_raises():
    with pytest.raises(SchemaViolationError):
        has_permission({"admin": "yes"}, "admin")
    with pytest.raises(SchemaViolationError):
        has_permission({"shipments": True}, "shipments", "read")
    with pytest.raises(SchemaViolationError):
        has_permission({"shipments": {"read": 1}}, "shipments", "read")


@pytest.mark.parametrize("name,expected", [
    ("Admin", True),
    ("Support", True),
    ("Manager", True),
    ("admin", False),
    ("ADMIN", False),
    ("Dispatcher", False),
    ("", False),
])
def test_protected_role_names_are_exact(name, expected):
    assert is_protected_role(name) is expected


def test_default_permissions_are_all_false():
    doc = default_permissions()
    assert doc["admin"] is False
    assert doc["shipments"] == {"read": False, "write": False, "delete": False}
    assert doc["reports"] == {"read": False, "write": False}
    assert set(doc) == {s.value for s in PermissionSection}


def test_validate_fills_missing_sections_and_actions():
    normalised = validate_permissions_shape({"shipments": {"read": True}})

    assert normalised["shipments"] == {"read": True, "write": False, "delete": False}
    assert normalised["admin"] is False
    assert normalised["settings"] == {"read": False, "write": False}


def test_validate_does_not_mutate_input():
    doc = {"shipments": {"read": True}}
    validate_permissions_shape(doc)
    assert doc == {"shipments": {"read": True}}


def test_validate_none_gives_defaults():
    assert validate_permissions_shape(None) == default_permissions()


@pytest.mark.parametrize("doc", [
    {"billing": {"read": True}},
    {"reports": {"delete": True}},
    {"admin": {"read": True}},
    {"shipments": True},
    {"shipments": {"read": "true"}},
    ["shipments"],
])
def test_validate_rejects_bad_documents(doc):
    with pytest.raises(SchemaViolationError):
        validate_permissions_shape(doc)


def test_describe_schema_lists_actions():
    schema = describe_schema()
    assert schema["admin"]["type"] == "boolean"
    assert schema["admin"]["actions"] == []
    assert schema["shipments"]["actions"] == ["delete", "read", "write"]
    assert schema["support"]["actions"] == ["read", "write"]


def test_load_drops_retired_sections_and_actions(caplog):
    stored = {"analytics": False, "shipments": {"view": True, "read": True}, "admin": False}

    with caplog.at_level(logging.WARNING, logger="zimship"):
        loaded = load_permissions(stored, "Customer Support")

    assert "analytics" not in loaded
    assert loaded["shipments"] == {"read": True, "write": False, "delete": False}
    assert "Dropping unknown permission section" in caplog.text
    assert "Dropping unknown permission action" in caplog.text


def test_load_treats_bad_values_as_denied():
    loaded = load_permissions({"admin": "yes", "reports": True, "users": {"read": 1}})

    assert loaded["admin"] is False
    assert loaded["reports"] == {"read": False, "write": False}
    assert loaded["users"]["read"] is False


def test_load_matches_strict_validation_for_valid_documents():
    doc = {"shipments": {"read": True, "write": True}, "support": {"read": True}}
    assert load_permissions(doc) == validate_permissions_shape(doc)
    assert load_permissions(None) == default_permissions()
    assert load_permissions(["shipments"]) == default_permissions()
