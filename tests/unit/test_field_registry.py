# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the settings field-path registry."""

import pytest

from src.domains.department_config.schema import (
    SETTINGS_FIELDS,
    FieldPath,
    UnknownFieldPathError,
    deep_merge,
    extra_keys,
    get_field_path,
    is_known_field,
)


class TestSettingsFields:
    """Tests for the enumerated registry."""

    def test_registry_follows_declaration_order(self) -> None:
        """Test that the first leaves come from default_class_settings in order."""
        dotted = [path.dotted for path in SETTINGS_FIELDS]

        assert dotted[0] == "default_class_settings.default_capacity"
        assert dotted[1] == "default_class_settings.allow_waitlist"
        assert dotted.index("grading_policies") == 10
        assert dotted[-1] == "academic_year"

    def test_registry_size(self) -> None:
        """Test that every leaf of every section is registered once."""
        dotted = [path.dotted for path in SETTINGS_FIELDS]

        assert len(dotted) == 40
        assert len(set(dotted)) == 40

    def test_sections_are_not_leaves(self) -> None:
        """Test that section names never appear as leaves."""
        dotted = {path.dotted for path in SETTINGS_FIELDS}

        assert "default_class_settings" not in dotted
        assert "notification_settings" not in dotted
        assert "custom_fields" in dotted
        assert "collaboration_rules.max_group_size" in dotted

    def test_restricted_fields_is_not_a_setting(self) -> None:
        """Test that the restriction policy is not a configurable leaf."""
        assert not is_known_field("restricted_fields")


class TestGetFieldPath:
    """Tests for dot-notation lookup."""

    def test_known_leaf(self) -> None:
        """Test resolving a leaf path."""
        path = get_field_path("assignment_defaults.max_resubmissions")

        assert path.parts == ("assignment_defaults", "max_resubmissions")
        assert path.is_section is False

    def test_unknown_path_raises(self) -> None:
        """Test that unknown paths raise UnknownFieldPathError."""
        with pytest.raises(UnknownFieldPathError):
            get_field_path("default_class_settings.no_such_field")

    def test_section_requires_flag(self) -> None:
        """Test that sections resolve only when allowed."""
        with pytest.raises(UnknownFieldPathError):
            get_field_path("notification_settings")

        path = get_field_path("notification_settings", allow_sections=True)

        assert path.is_section is True
        assert path.parts == ("notification_settings",)


class TestFieldPathAccess:
    """Tests for FieldPath get/set/delete."""

    def test_false_and_zero_are_present(self) -> None:
        """Test that False and 0 count as present values."""
        path = FieldPath(("collaboration_rules", "allow_peer_review"))

        assert path.get({"collaboration_rules": {"allow_peer_review": False}}) == (True, False)
        assert FieldPath(("budget_code",)).get({"budget_code": ""}) == (True, "")

    def test_none_and_missing_are_absent(self) -> None:
        """Test that None and missing keys count as absent."""
        path = FieldPath(("default_class_settings", "default_capacity"))

        assert path.get({}) == (False, None)
        assert path.get({"default_class_settings": None}) == (False, None)
        assert path.get({"default_class_settings": {"default_capacity": None}}) == (False, None)

    def test_set_creates_sections(self) -> None:
        """Test that set creates intermediate sections."""
        data: dict = {}

        FieldPath(("default_class_settings", "default_capacity")).set(data, 40)

        assert data == {"default_class_settings": {"default_capacity": 40}}

    def test_delete_prunes_empty_section(self) -> None:
        """Test that removing the last leaf removes the section."""
        data = {"default_class_settings": {"default_capacity": 40}, "budget_code": "B-1"}

        removed = FieldPath(("default_class_settings", "default_capacity")).delete(data)

        assert removed is True
        assert data == {"budget_code": "B-1"}

    def test_delete_keeps_non_empty_section(self) -> None:
        """Test that sibling leaves survive a delete."""
        data = {"default_class_settings": {"default_capacity": 40, "passing_grade": 70}}

        FieldPath(("default_class_settings", "default_capacity")).delete(data)

        assert data == {"default_class_settings": {"passing_grade": 70}}

    def test_delete_missing_returns_false(self) -> None:
        """Test deleting an absent path."""
        data = {"budget_code": "B-1"}

        assert FieldPath(("cost_center",)).delete(data) is False
        assert data == {"budget_code": "B-1"}


class TestMergeHelpers:
    """Tests for deep_merge and extra_keys."""

    def test_deep_merge_merges_sections(self) -> None:
        """Test that sections merge key by key."""
        base = {"default_class_settings": {"default_capacity": 40}}
        patch = {"default_class_settings": {"passing_grade": 70}}

        merged = deep_merge(base, patch)

        assert merged == {"default_class_settings": {"default_capacity": 40, "passing_grade": 70}}

    def test_deep_merge_replaces_lists(self) -> None:
        """Test that lists are replaced whole."""
        base = {"custom_fields": [{"id": "a", "name": "A"}]}
        patch = {"custom_fields": [{"id": "b", "name": "B"}]}

        merged = deep_merge(base, patch)

        assert merged == {"custom_fields": [{"id": "b", "name": "B"}]}

    def test_extra_keys_collects_unknown_keys(self) -> None:
        """Test that unknown keys are collected at top and section level."""
        data = {
            "default_class_settings": {"default_capacity": 40, "room_type": "lab"},
            "legacy_flag": True,
            "budget_code": "B-1",
        }

        assert extra_keys(data) == {
            "default_class_settings": {"room_type": "lab"},
            "legacy_flag": True,
        }
