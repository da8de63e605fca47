"""Generate plausible request payloads from resolved schemas.

Values come from, in order: the schema's example, its first enum entry,
then type-specific heuristics on format and property name. uuid
properties that reference another endpoint get a dynamic marker the
execution engine substitutes with a real id.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .foreign_keys import ForeignKeyAnalyzer, marker_for

PLACEHOLDER_UUID = "123e4567-e89b-12d3-a456-426614174000"

DEFAULT_NUMBER = 10

# Checked in order against the lower-cased property name; first hit wins.
# A value of None means "Sample <propName>".
NAME_RULES: list[tuple[tuple[str, ...], str | None]] = [
    (("firstname", "first_name"), "Workflow"),
    (("lastname", "last_name"), "TestUser"),
    (("fullname", "full_name"), "Workflow TestUser"),
    (("username",), "workflow_tester"),
    (("title",), "Sample Workflow Title"),
    (("description",), "This is a sample description generated for testing."),
    (("content",), "This is sample content for a test entry."),
    (("phone",), "123-456-7890"),
    (("address",), "123 Test St, Sample City"),
    (("city",), "Sample City"),
    (("country",), "USA"),
    (("zip", "postal"), "12345"),
    (("name",), None),
]


class SampleValueSynthesizer:
    """Build sample values; foreign keys are checked against the analyzer's registry."""

    def __init__(
        self,
        foreign_keys: ForeignKeyAnalyzer,
        name_rules: Sequence[tuple[tuple[str, ...], str | None]] = NAME_RULES,
    ) -> None:
        self.foreign_keys = foreign_keys
        self.name_rules = list(name_rules)

    def sample_data(self, schema: dict[str, Any] | None, endpoint_name: str = "") -> dict[str, Any]:
        """Sample an object schema: required properties first, read-only skipped."""
        if not schema or schema.get("type") != "object" or not schema.get("properties"):
            return {}

        properties: dict[str, Any] = schema["properties"]
        data: dict[str, Any] = {}

        for name in schema.get("required", []):
            prop = properties.get(name)
            if not prop or prop.get("readOnly"):
                continue
            data[name] = self.sample_value(name, prop, endpoint_name)

        for name, prop in properties.items():
            if name in data or not prop or prop.get("readOnly"):
                continue
            data[name] = self.sample_value(name, prop, endpoint_name)

        return data

    def sample_value(self, prop_name: str, prop_schema: dict[str, Any] | None, endpoint_name: str = "") -> Any:
        """Return a single value for one property."""
        if not prop_schema:
            return None
        if "example" in prop_schema:
            return prop_schema["example"]
        if prop_schema.get("enum"):
            return prop_schema["enum"][0]

        schema_type = prop_schema.get("type")
        if schema_type == "string":
            return self._string_value(prop_name, prop_schema, endpoint_name)
        if schema_type in ("integer", "number"):
            return prop_schema.get("minimum", DEFAULT_NUMBER)
        if schema_type == "boolean":
            return True
        if schema_type == "array":
            items = prop_schema.get("items")
            if items:
                return [self.sample_value(f"{prop_name}_item", items, endpoint_name)]
            return []
        if schema_type == "object":
            return self.sample_data(prop_schema, endpoint_name)
        return None

    def _string_value(self, prop_name: str, prop_schema: dict[str, Any], endpoint_name: str) -> str:
        fmt = prop_schema.get("format")
        lower = prop_name.lower()

        if fmt == "email" or "email" in lower:
            return "workflow.test@example.com"
        if fmt == "date":
            return "2025-01-01"
        if fmt == "date-time":
            return "2025-01-01T10:00:00Z"
        if fmt == "uuid":
            target = self.foreign_keys.detect(prop_name, prop_schema, endpoint_name)
            if target:
                return marker_for(target.target_endpoint)
            return PLACEHOLDER_UUID
        if fmt == "password" or "password" in lower:
            return "WorkflowTestPass123!"
        if fmt == "uri" or "url" in lower:
            return "https://example.com/test"

        for substrings, value in self.name_rules:
            if any(s in lower for s in substrings):
                return f"Sample {prop_name}" if value is None else value

        return f"test_{lower}"
