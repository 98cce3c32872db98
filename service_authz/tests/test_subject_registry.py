"""
Unit tests for the subject registry.
"""

import pytest

from shared.errors import UnknownActionOrSubject
from service_authz.app.subjects.registry import (
    DEFAULT_REGISTRY, MANAGE, SubjectDefinition, SubjectRegistry
)


class TestSubjectRegistry:
    """Test cases for SubjectRegistry."""

    def test_subject_types(self):
        assert DEFAULT_REGISTRY.subject_types() == (
            "Organization", "Project", "User", "Billing", "Invite"
        )

    @pytest.mark.parametrize("subject_type", ["Organization", "Project", "User", "Billing", "Invite"])
    def test_manage_is_valid_everywhere(self, subject_type):
        assert DEFAULT_REGISTRY.is_valid(MANAGE, subject_type) is True

    def test_valid_pairs(self):
        assert DEFAULT_REGISTRY.is_valid("transfer_ownership", "Organization") is True
        assert DEFAULT_REGISTRY.is_valid("create", "Project") is True
        assert DEFAULT_REGISTRY.is_valid("invite", "User") is True
        assert DEFAULT_REGISTRY.is_valid("export", "Billing") is True

    def test_invalid_pairs(self):
        assert DEFAULT_REGISTRY.is_valid("transfer_ownership", "User") is False
        assert DEFAULT_REGISTRY.is_valid("create", "Organization") is False
        assert DEFAULT_REGISTRY.is_valid("read", "Spaceship") is False

    def test_validate_raises_for_unknown_pair(self):
        with pytest.raises(UnknownActionOrSubject) as exc_info:
            DEFAULT_REGISTRY.validate("transfer_ownership", "User")

        assert exc_info.value.code == "UNKNOWN_ACTION_OR_SUBJECT"
        assert exc_info.value.details == {"action": "transfer_ownership", "subject_type": "User"}

    def test_attributes_for(self):
        attributes = DEFAULT_REGISTRY.attributes_for("Organization")

        assert "owner_id" in attributes
        assert "id" in attributes

    def test_actions_for_unknown_subject(self):
        with pytest.raises(UnknownActionOrSubject):
            DEFAULT_REGISTRY.actions_for("Spaceship")

    def test_custom_registry_adds_manage(self):
        registry = SubjectRegistry([
            SubjectDefinition("Report", frozenset({"read"}), frozenset({"id"}))
        ])

        assert registry.actions_for("Report") == frozenset({"read", MANAGE})
        assert registry.has_subject("Report") is True
        assert registry.has_subject("Organization") is False
