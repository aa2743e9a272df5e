# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models for institution and department configuration.

This module defines three families of models:
- Full settings sections (ClassSettings, AssignmentDefaults, ...) with the
  institution-wide defaults.
- Sparse override sections (ClassSettingsOverride, ...) where every leaf is
  optional. A leaf set to None is treated as "not overridden".
- Request/response models for the department configuration service.

Numeric constraints are intentionally not declared on the fields. Range
checks belong to the validator so that every violation is collected and
returned together instead of failing on the first one.
"""

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

GradingScale = Literal["letter", "percentage", "points"]
RoundingRule = Literal["up", "down", "nearest"]
DigestFrequency = Literal["immediate", "daily", "weekly", "never"]
CustomFieldType = Literal["text", "number", "boolean", "select", "date"]

DEFAULT_RESTRICTED_FIELDS: tuple[str, ...] = (
    "default_class_settings.allow_self_enrollment",
    "collaboration_rules.allow_external_collaboration",
    "assignment_defaults.allow_late_submissions",
)


# =============================================================================
# Shared value objects
# =============================================================================


class GradeRange(BaseModel):
    """A single row of a grading table."""

    min: float
    max: float
    grade: str
    gpa: float | None = None


class GradingPolicy(BaseModel):
    """Named, ordered set of grade ranges.

    Ranges inside one policy must not overlap (checked by the validator).
    """

    id: str
    name: str
    scale: GradingScale = "letter"
    ranges: list[GradeRange] = Field(default_factory=list)
    allow_extra_credit: bool = True
    rounding_rule: RoundingRule = "nearest"
    is_default: bool = False


class CustomFieldDefinition(BaseModel):
    """Custom attribute definition attached to classes of a department."""

    id: str
    name: str
    type: CustomFieldType = "text"
    required: bool = False
    options: list[str] | None = None
    default_value: Any = None


class AcademicTerm(BaseModel):
    """A term inside an academic year."""

    name: str
    start_date: date
    end_date: date


class AcademicYearSettings(BaseModel):
    """Academic calendar used by a department."""

    start_date: date
    end_date: date
    terms: list[AcademicTerm] = Field(default_factory=list)


def _standard_letter_policy() -> list[GradingPolicy]:
    ranges = [
        (97, 100, "A+", 4.0),
        (93, 96, "A", 4.0),
        (90, 92, "A-", 3.7),
        (87, 89, "B+", 3.3),
        (83, 86, "B", 3.0),
        (80, 82, "B-", 2.7),
        (77, 79, "C+", 2.3),
        (73, 76, "C", 2.0),
        (70, 72, "C-", 1.7),
        (67, 69, "D+", 1.3),
        (63, 66, "D", 1.0),
        (60, 62, "D-", 0.7),
        (0, 59, "F", 0.0),
    ]
    return [
        GradingPolicy(
            id="default",
            name="Standard Letter Grades",
            scale="letter",
            ranges=[
                GradeRange(min=low, max=high, grade=grade, gpa=gpa)
                for low, high, grade, gpa in ranges
            ],
            allow_extra_credit=True,
            rounding_rule="nearest",
            is_default=True,
        )
    ]


# =============================================================================
# Full settings (institution level and effective configuration)
# =============================================================================


class SettingsSection(BaseModel):
    """Marker base for nested settings groups.

    The field-path registry descends into fields typed as a SettingsSection
    and treats every other field as a leaf.
    """

    model_config = ConfigDict(extra="allow")


class ClassSettings(SettingsSection):
    """Defaults applied to newly created classes."""

    default_capacity: int = 30
    allow_waitlist: bool = True
    require_approval: bool = False
    allow_self_enrollment: bool = True
    grading_scale: GradingScale = "letter"
    passing_grade: float = 60
    default_duration: int = 50
    allow_late_submissions: bool = True
    late_penalty_percent: float = 10
    max_late_days: int = 7


class AssignmentDefaults(SettingsSection):
    """Defaults applied to newly created assignments."""

    allow_late_submissions: bool = True
    late_penalty_percent: float = 10
    max_late_days: int = 7
    allow_resubmissions: bool = True
    max_resubmissions: int = 3
    default_due_days: int = 7
    require_rubric: bool = False
    default_point_value: float = 100
    allow_peer_review: bool = True
    anonymous_grading: bool = False


class CollaborationRules(SettingsSection):
    """Group work and collaboration policy."""

    allow_peer_review: bool = True
    allow_group_assignments: bool = True
    allow_cross_class_collaboration: bool = True
    allow_external_collaboration: bool = True
    default_group_size: int = 3
    max_group_size: int = 6
    require_group_approval: bool = False
    allow_student_group_creation: bool = True


class NotificationSettings(SettingsSection):
    """Notification preferences for department members."""

    email_notifications: bool = True
    push_notifications: bool = True
    digest_frequency: DigestFrequency = "daily"
    notify_on_assignment_created: bool = True
    notify_on_grade_posted: bool = True
    notify_on_announcement_posted: bool = True
    notify_on_discussion_reply: bool = True


class EffectiveConfig(BaseModel):
    """Fully populated configuration.

    Used both as the body of institution settings and as the merged
    configuration a department actually runs with.
    """

    model_config = ConfigDict(extra="allow")

    default_class_settings: ClassSettings = Field(default_factory=ClassSettings)
    grading_policies: list[GradingPolicy] = Field(default_factory=_standard_letter_policy)
    assignment_defaults: AssignmentDefaults = Field(default_factory=AssignmentDefaults)
    collaboration_rules: CollaborationRules = Field(default_factory=CollaborationRules)
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    custom_fields: list[CustomFieldDefinition] = Field(default_factory=list)
    budget_code: str | None = None
    cost_center: str | None = None
    academic_year: AcademicYearSettings | None = None


class InstitutionSettings(EffectiveConfig):
    """Institution-wide defaults plus the restriction policy.

    Attributes:
        restricted_fields: Field paths departments may tighten but never
            loosen. Only institution admins can change this list.
    """

    restricted_fields: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RESTRICTED_FIELDS)
    )


# =============================================================================
# Sparse department overrides
# =============================================================================


class ClassSettingsOverride(SettingsSection):
    default_capacity: int | None = None
    allow_waitlist: bool | None = None
    require_approval: bool | None = None
    allow_self_enrollment: bool | None = None
    grading_scale: GradingScale | None = None
    passing_grade: float | None = None
    default_duration: int | None = None
    allow_late_submissions: bool | None = None
    late_penalty_percent: float | None = None
    max_late_days: int | None = None


class AssignmentDefaultsOverride(SettingsSection):
    allow_late_submissions: bool | None = None
    late_penalty_percent: float | None = None
    max_late_days: int | None = None
    allow_resubmissions: bool | None = None
    max_resubmissions: int | None = None
    default_due_days: int | None = None
    require_rubric: bool | None = None
    default_point_value: float | None = None
    allow_peer_review: bool | None = None
    anonymous_grading: bool | None = None


class CollaborationRulesOverride(SettingsSection):
    allow_peer_review: bool | None = None
    allow_group_assignments: bool | None = None
    allow_cross_class_collaboration: bool | None = None
    allow_external_collaboration: bool | None = None
    default_group_size: int | None = None
    max_group_size: int | None = None
    require_group_approval: bool | None = None
    allow_student_group_creation: bool | None = None


class NotificationSettingsOverride(SettingsSection):
    email_notifications: bool | None = None
    push_notifications: bool | None = None
    digest_frequency: DigestFrequency | None = None
    notify_on_assignment_created: bool | None = None
    notify_on_grade_posted: bool | None = None
    notify_on_announcement_posted: bool | None = None
    notify_on_discussion_reply: bool | None = None


class DepartmentSettings(BaseModel):
    """Sparse department override object.

    Only the leaves a department diverges on are set. Presence is decided by
    "not None", so False and 0 are valid overrides.
    """

    model_config = ConfigDict(extra="allow")

    default_class_settings: ClassSettingsOverride | None = None
    grading_policies: list[GradingPolicy] | None = None
    assignment_defaults: AssignmentDefaultsOverride | None = None
    collaboration_rules: CollaborationRulesOverride | None = None
    notification_settings: NotificationSettingsOverride | None = None
    custom_fields: list[CustomFieldDefinition] | None = None
    budget_code: str | None = None
    cost_center: str | None = None
    academic_year: AcademicYearSettings | None = None

    def to_sparse_dict(self) -> dict[str, Any]:
        """Dump only the fields that are actually set."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# Conflicts and validation errors
# =============================================================================


class ValidationErrorCode(str, Enum):
    """Machine-readable validation error codes."""

    REQUIRED = "REQUIRED"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_RANGE = "INVALID_RANGE"
    INVALID_VALUE = "INVALID_VALUE"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


class ValidationErrorDetail(BaseModel):
    """A single validation problem.

    Attributes:
        field: Dot-notation path of the offending field.
        message: Human-readable description.
        code: Machine-readable error code.
    """

    field: str
    message: str
    code: ValidationErrorCode


class ConflictType(str, Enum):
    """Kind of disagreement between department and institution."""

    RESTRICTION = "restriction"
    REQUIREMENT = "requirement"


class ConflictResolution(str, Enum):
    """How a conflict is (or should be) resolved."""

    USE_INSTITUTION = "use_institution"
    USE_DEPARTMENT = "use_department"
    MERGE = "merge"


class FieldConflict(BaseModel):
    """A detected disagreement between department intent and institution policy."""

    field: str
    department_value: Any
    institution_value: Any
    conflict_type: ConflictType
    message: str
    resolution: ConflictResolution


class ValidationResult(BaseModel):
    """Outcome of a pure settings validation."""

    is_valid: bool
    errors: list[ValidationErrorDetail] = Field(default_factory=list)


# =============================================================================
# Service requests and responses
# =============================================================================


class InheritanceResult(BaseModel):
    """Merged configuration with provenance of every leaf."""

    final_config: EffectiveConfig
    inherited_fields: list[str] = Field(default_factory=list)
    overridden_fields: list[str] = Field(default_factory=list)
    conflicts: list[FieldConflict] = Field(default_factory=list)


class ConfigValidationResult(BaseModel):
    """Response of validate_department_config."""

    is_valid: bool
    errors: list[ValidationErrorDetail] = Field(default_factory=list)
    conflicts: list[FieldConflict] = Field(default_factory=list)


class DepartmentConfigUpdate(BaseModel):
    """A settings patch for one department.

    Attributes:
        department_id: Target department.
        settings: Sparse patch merged over the existing overrides.
        updated_by: Acting user id.
        reason: Optional free-text reason stored in the audit log.
        resolutions: Explicit caller decisions for conflicting field paths.
    """

    department_id: str
    settings: DepartmentSettings
    updated_by: str
    reason: str | None = None
    resolutions: dict[str, ConflictResolution] = Field(default_factory=dict)


class ConfigUpdateResult(BaseModel):
    """Response of write operations (update, reset)."""

    success: bool
    conflicts: list[FieldConflict] | None = None
    errors: list[ValidationErrorDetail] | None = None


class ConfigHierarchy(BaseModel):
    """Raw institution and department settings with inheritance analysis."""

    institution: dict[str, Any]
    department: dict[str, Any]
    inherited: list[str] = Field(default_factory=list)
    overridden: list[str] = Field(default_factory=list)


class DepartmentConfigUpdateRequest(BaseModel):
    """HTTP body for PUT /departments/{id}/config."""

    settings: DepartmentSettings
    reason: str | None = Field(None, max_length=500)
    resolutions: dict[str, ConflictResolution] = Field(default_factory=dict)


class DepartmentConfigResetRequest(BaseModel):
    """HTTP body for POST /departments/{id}/config/reset."""

    field_paths: list[str] | None = Field(
        None,
        description="Paths to revert; omit to clear every override",
    )


class InstitutionSettingsUpdateRequest(BaseModel):
    """HTTP body for PUT /institutions/{id}/settings."""

    settings: InstitutionSettings
    reason: str | None = Field(None, max_length=500)


class DepartmentConfigValidateRequest(BaseModel):
    """HTTP body for POST /departments/{id}/config/validate.

    Settings are accepted untyped so type errors come back as
    INVALID_FORMAT entries alongside the rule errors.
    """

    settings: dict[str, Any] = Field(default_factory=dict)
