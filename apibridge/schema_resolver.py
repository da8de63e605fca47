"""Dereference $ref pointers in OpenAPI schemas.

Handles:
- $ref pointers into the loaded document (#/components/schemas/...)
- nested object properties and array items, at any depth
- reference cycles (cut with a placeholder object)
- allOf merging, only when explicitly enabled

oneOf/anyOf (and allOf by default) pass through unresolved.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Stand-in for a $ref that points back into its own resolution chain
_CYCLE_PLACEHOLDER: dict[str, Any] = {"type": "object"}


def _decode_segment(segment: str) -> str:
    """Undo JSON pointer escaping (~1 is '/', ~0 is '~')."""
    return segment.replace("~1", "/").replace("~0", "~")


class SchemaResolver:
    """Resolve schema nodes against one OpenAPI document."""

    def __init__(self, document: dict[str, Any], merge_all_of: bool = False) -> None:
        self.document = document
        self.merge_all_of = merge_all_of

    def lookup(self, ref: str) -> Any:
        """Walk a $ref pointer from the document root, or return None."""
        pointer = ref[2:] if ref.startswith("#/") else ref.lstrip("#")
        node: Any = self.document
        for part in pointer.split("/"):
            part = _decode_segment(part)
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                logger.warning("Could not resolve reference: %s", ref)
                return None
        return node

    def resolve(self, node: Any) -> dict[str, Any] | None:
        """Return node with every reachable $ref replaced by its target."""
        return self._resolve(node, ())

    def _resolve(self, node: Any, stack: tuple[str, ...]) -> Any:
        if not node:
            return None
        if not isinstance(node, dict):
            return node

        ref = node.get("$ref")
        if isinstance(ref, str):
            if ref in stack:
                logger.warning("Circular reference cut at %s", ref)
                return dict(_CYCLE_PLACEHOLDER)
            target = self.lookup(ref)
            if target is None:
                return None
            return self._resolve(target, stack + (ref,))

        if self.merge_all_of and isinstance(node.get("allOf"), list):
            node = self._merge_all_of(node, stack)

        node_type = node.get("type")
        if node_type == "object" and node.get("properties"):
            properties = {
                name: self._resolve(value, stack)
                for name, value in node["properties"].items()
            }
            return {**node, "properties": properties}

        if node_type == "array" and node.get("items"):
            return {**node, "items": self._resolve(node["items"], stack)}

        return node

    def _merge_all_of(self, node: dict[str, Any], stack: tuple[str, ...]) -> dict[str, Any]:
        """Union the properties and required lists of every allOf member."""
        merged_props: dict[str, Any] = {}
        merged_required: list[str] = []
        for sub in node["allOf"]:
            resolved = self._resolve(sub, stack)
            if not isinstance(resolved, dict):
                continue
            merged_props.update(resolved.get("properties", {}))
            for name in resolved.get("required", []):
                if name not in merged_required:
                    merged_required.append(name)

        merged = {k: v for k, v in node.items() if k != "allOf"}
        merged_props.update(merged.get("properties", {}))
        for name in merged.get("required", []):
            if name not in merged_required:
                merged_required.append(name)
        merged["type"] = "object"
        merged["properties"] = merged_props
        if merged_required:
            merged["required"] = merged_required
        return merged

    def request_body_schema(self, request_body: dict[str, Any] | None) -> dict[str, Any] | None:
        """Extract and resolve the application/json schema of a request body."""
        if not request_body:
            return None
        if "$ref" in request_body:
            request_body = self.lookup(request_body["$ref"]) or {}
        schema = (
            request_body.get("content", {})
            .get("application/json", {})
            .get("schema")
        )
        if not schema:
            return None
        return self.resolve(schema)
