# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Field-path registry for the settings schema.

The registry enumerates every leaf of the configuration schema once, in
declaration order, by walking the pydantic models. Sections (subclasses of
SettingsSection) are descended into; every other field is a leaf, including
lists such as grading policies and custom fields.

All path handling in the resolver, detector and orchestrator goes through
FieldPath objects. Caller-supplied dot-notation strings are looked up in the
registry instead of being split and walked ad hoc.

Example:
    >>> path = get_field_path("default_class_settings.default_capacity")
    >>> path.parts
    ('default_class_settings', 'default_capacity')
    >>> path.get({"default_class_settings": {"default_capacity": 40}})
    (True, 40)
"""

from dataclasses import dataclass
from typing import Any, Iterator, MutableMapping, Mapping

from pydantic import BaseModel

from src.models.department_config import EffectiveConfig, SettingsSection


class UnknownFieldPathError(KeyError):
    """Raised when a dot-notation path is not part of the settings schema."""

    pass


@dataclass(frozen=True)
class FieldPath:
    """Location of a settings leaf or section.

    Attributes:
        parts: Attribute names from the root to the field.
        is_section: True when the path names a whole settings section.
    """

    parts: tuple[str, ...]
    is_section: bool = False

    @property
    def dotted(self) -> str:
        """Dot-notation form used in responses and audit entries."""
        return ".".join(self.parts)

    def get(self, data: Mapping[str, Any]) -> tuple[bool, Any]:
        """Look up the path in a nested mapping.

        Returns:
            Tuple of (present, value). A key holding None counts as absent.
        """
        node: Any = data
        for part in self.parts:
            if not isinstance(node, Mapping) or node.get(part) is None:
                return False, None
            node = node[part]
        return True, node

    def set(self, data: MutableMapping[str, Any], value: Any) -> None:
        """Write a value, creating intermediate sections as needed."""
        node = data
        for part in self.parts[:-1]:
            child = node.get(part)
            if not isinstance(child, MutableMapping):
                child = {}
                node[part] = child
            node = child
        node[self.parts[-1]] = value

    def delete(self, data: MutableMapping[str, Any]) -> bool:
        """Remove the path and prune sections left empty.

        Returns:
            True if something was removed.
        """
        parents: list[MutableMapping[str, Any]] = []
        node: Any = data
        for part in self.parts[:-1]:
            if not isinstance(node, MutableMapping) or not isinstance(node.get(part), MutableMapping):
                return False
            parents.append(node)
            node = node[part]

        if not isinstance(node, MutableMapping) or self.parts[-1] not in node:
            return False
        del node[self.parts[-1]]

        # Walk back up and drop sections that became empty
        for parent, part in zip(reversed(parents), reversed(self.parts[:-1])):
            if parent[part]:
                break
            del parent[part]
        return True

    def __str__(self) -> str:
        return self.dotted


def _is_section(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, SettingsSection)


def _walk(model: type[BaseModel], prefix: tuple[str, ...]) -> Iterator[FieldPath]:
    for name, info in model.model_fields.items():
        parts = (*prefix, name)
        if _is_section(info.annotation):
            yield from _walk(info.annotation, parts)
        else:
            yield FieldPath(parts)


def _sections(model: type[BaseModel]) -> dict[str, type[SettingsSection]]:
    return {
        name: info.annotation
        for name, info in model.model_fields.items()
        if _is_section(info.annotation)
    }


# Ordered, immutable registry of every configurable leaf
SETTINGS_FIELDS: tuple[FieldPath, ...] = tuple(_walk(EffectiveConfig, ()))

SECTION_FIELDS: dict[str, type[SettingsSection]] = _sections(EffectiveConfig)

_LEAVES_BY_NAME: dict[str, FieldPath] = {path.dotted: path for path in SETTINGS_FIELDS}
_SECTIONS_BY_NAME: dict[str, FieldPath] = {
    name: FieldPath((name,), is_section=True) for name in SECTION_FIELDS
}


def get_field_path(dotted: str, allow_sections: bool = False) -> FieldPath:
    """Resolve a dot-notation string to a registered FieldPath.

    Args:
        dotted: Path such as "collaboration_rules.max_group_size".
        allow_sections: Also accept whole-section paths like
            "notification_settings".

    Returns:
        The registered FieldPath.

    Raises:
        UnknownFieldPathError: If the path is not part of the schema.
    """
    path = _LEAVES_BY_NAME.get(dotted)
    if path is None and allow_sections:
        path = _SECTIONS_BY_NAME.get(dotted)
    if path is None:
        raise UnknownFieldPathError(dotted)
    return path


def is_known_field(dotted: str) -> bool:
    """Check whether a dot-notation path names a schema leaf."""
    return dotted in _LEAVES_BY_NAME


def extra_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Collect keys the schema does not know about, at any depth.

    Returns:
        Nested mapping holding only the unrecognised keys (pass-through data).
    """
    extras: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if key in SECTION_FIELDS:
            if isinstance(value, Mapping):
                known = SECTION_FIELDS[key].model_fields
                nested = {k: v for k, v in value.items() if k not in known and v is not None}
                if nested:
                    extras[key] = nested
        elif key not in EffectiveConfig.model_fields and key != "restricted_fields":
            extras[key] = value
    return extras


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a sparse patch over a sparse settings mapping.

    Sections merge key by key; every other value (lists included) is
    replaced whole by the patch.
    """
    merged: dict[str, Any] = {key: value for key, value in base.items()}
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged
