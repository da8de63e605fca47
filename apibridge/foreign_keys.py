"""Foreign-key detection for generated sample payloads.

A uuid property named like authorId, author_id or id_author points at
another endpoint. While sampling, such a property gets a dynamic marker
(DYNAMIC_USERS_ID) instead of a literal uuid; after sampling, the markers
are collected into dependencies the workflow fetches before creating.
"""

from __future__ import annotations

import json
import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any

from .naming import pluralize

# Property-name stem -> endpoint name, for stems that do not pluralize
# into the endpoint they reference
RESOURCE_ALIASES: dict[str, str] = {
    "author": "users",
    "user": "users",
    "owner": "users",
    "creator": "users",
    "category": "categories",
    "tag": "tags",
}

_FK_PATTERNS = (
    re.compile(r"^(.+)id$", re.IGNORECASE),
    re.compile(r"^(.+)_id$", re.IGNORECASE),
    re.compile(r"^id_(.+)$", re.IGNORECASE),
)

MARKER_PATTERN = re.compile(r"DYNAMIC_([A-Z0-9_]+?)_ID\b")


def marker_for(target_endpoint: str) -> str:
    """DYNAMIC_<TARGET>_ID placeholder for a target endpoint."""
    return f"DYNAMIC_{target_endpoint.upper()}_ID"


def context_key_for(target_endpoint: str) -> str:
    """Context key the dependency-fetch step saves the target list under."""
    return f"existing_{target_endpoint}"


@dataclass(frozen=True)
class ForeignKeyTarget:
    source_property: str
    target_endpoint: str
    target_resource: str


@dataclass(frozen=True)
class ForeignKeyDependency:
    """A marker found in a sample payload and where it sits."""

    source_property: str
    target_endpoint: str
    marker: str
    path: str = ""

    @property
    def context_key(self) -> str:
        return context_key_for(self.target_endpoint)

    def to_dict(self) -> dict[str, str]:
        return {
            "sourceProperty": self.source_property,
            "targetEndpoint": self.target_endpoint,
            "marker": self.marker,
            "contextKey": self.context_key,
        }


def _find_property_with_marker(
    node: Any, marker: str, path: str = "", key: str = "",
) -> tuple[str, str] | None:
    """Depth-first search for the first value equal to marker."""
    if isinstance(node, str):
        return (key, path) if node == marker else None
    if isinstance(node, Mapping):
        items = node.items()
    elif isinstance(node, list):
        items = ((str(i), v) for i, v in enumerate(node))
    else:
        return None

    for child_key, value in items:
        child_path = f"{path}.{child_key}" if path else child_key
        # List indices keep the enclosing property name
        owner = child_key if isinstance(node, Mapping) else key
        found = _find_property_with_marker(value, marker, child_path, owner)
        if found:
            return found
    return None


class ForeignKeyAnalyzer:
    """Detect and collect foreign-key references against an endpoint registry."""

    def __init__(
        self,
        endpoints: Collection[str],
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.endpoints = endpoints
        self.aliases = dict(RESOURCE_ALIASES if aliases is None else aliases)

    def target_endpoint_for(self, resource: str) -> str:
        return self.aliases.get(resource) or pluralize(resource)

    def detect(
        self,
        prop_name: str,
        prop_schema: Mapping[str, Any],
        current_endpoint: str = "",
    ) -> ForeignKeyTarget | None:
        """Return the referenced endpoint when prop_name looks like a foreign key."""
        if prop_schema.get("format") != "uuid":
            return None

        for pattern in _FK_PATTERNS:
            match = pattern.match(prop_name)
            if not match:
                continue
            resource = match.group(1).lower()
            target = self.target_endpoint_for(resource)
            if target in self.endpoints:
                return ForeignKeyTarget(
                    source_property=prop_name,
                    target_endpoint=target,
                    target_resource=resource,
                )
        return None

    def analyze_dependencies(self, sample_data: Any) -> list[ForeignKeyDependency]:
        """List one dependency per marker occurrence in the payload."""
        serialized = json.dumps(sample_data, default=str)
        dependencies: list[ForeignKeyDependency] = []

        for match in MARKER_PATTERN.finditer(serialized):
            marker = match.group(0)
            found = _find_property_with_marker(sample_data, marker)
            if found is None:
                # Marker embedded inside a longer string value
                continue
            prop, path = found
            dependencies.append(ForeignKeyDependency(
                source_property=prop,
                target_endpoint=match.group(1).lower(),
                marker=marker,
                path=path,
            ))
        return dependencies


def needs_foreign_key_resolution(data: Any) -> bool:
    """True when the payload still carries a dynamic marker."""
    return bool(MARKER_PATTERN.search(json.dumps(data, default=str)))


def marker_paths(node: Any, marker: str, path: str = "") -> list[str]:
    """Dotted paths of every value in node that equals marker."""
    if isinstance(node, str):
        return [path] if node == marker else []
    if isinstance(node, Mapping):
        items = node.items()
    elif isinstance(node, list):
        items = ((str(i), v) for i, v in enumerate(node))
    else:
        return []

    paths: list[str] = []
    for key, value in items:
        paths.extend(marker_paths(value, marker, f"{path}.{key}" if path else key))
    return paths
