"""Describe endpoint operations as agent-callable tools.

Each (endpoint, operation key) pair becomes {name, description, inputSchema}.
Every input schema accepts queryParams, saveToContext and fromContext so
tool calls can be chained through the context store.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .endpoints import Endpoint
from .naming import build_tool_name, singularize

# Item-scoped keys take an 'id' argument
_ITEM_KEYS = {"GET", "PUT", "PATCH", "DELETE"}

_BODY_KEYS = {"POST", "PUT", "PATCH"}

# Server-managed fields never sent on create
_POST_SKIP_FIELDS = {"id", "createdAt", "updatedAt"}

_DESCRIPTIONS: dict[str, str] = {
    "GET": "Get {singular} by ID",
    "GET_COLLECTION": "List all {plural}",
    "POST": "Create a new {singular}",
    "PUT": "Update an existing {singular}",
    "PATCH": "Partially update an existing {singular}",
    "DELETE": "Delete an existing {singular}",
}

CONTEXT_PROPERTIES: dict[str, dict[str, Any]] = {
    "queryParams": {
        "type": "object",
        "description": "Query parameters to include in the request",
        "additionalProperties": True,
    },
    "saveToContext": {
        "type": "string",
        "description": "Save the response to context with this key",
    },
    "fromContext": {
        "type": "string",
        "description": "Load data from context using this key",
    },
}


def _make_description(operation_key: str, endpoint_name: str, endpoint: Endpoint) -> str:
    """Build a tool description; the operation's summary or description wins."""
    operation = endpoint.operations.get(operation_key)
    if operation is not None:
        if operation.summary:
            return operation.summary
        if operation.description:
            return operation.description

    template = _DESCRIPTIONS.get(operation_key)
    if template is None:
        return f"{operation_key} operation on {endpoint_name}"
    return template.format(singular=singularize(endpoint_name), plural=endpoint_name)


def build_input_schema(operation_key: str, endpoint: Endpoint) -> dict[str, Any]:
    """Build the JSON-Schema-like input contract for one tool."""
    properties: dict[str, Any] = {}

    if operation_key in _ITEM_KEYS:
        properties["id"] = {
            "type": "string",
            "description": "The ID of the resource to modify",
        }

    if operation_key in _BODY_KEYS:
        schema_props = (endpoint.schema or {}).get("properties") or {}
        for key, value in schema_props.items():
            if operation_key == "POST" and key in _POST_SKIP_FIELDS:
                continue
            # Unresolvable $ref leaves None behind
            properties[key] = value if value is not None else {}

        properties["data"] = {
            "type": "object",
            "description": "Raw data object to send in the request body (alternative to individual fields)",
            "additionalProperties": True,
        }

    properties.update({k: dict(v) for k, v in CONTEXT_PROPERTIES.items()})
    return {"type": "object", "properties": properties}


def describe_tool(operation_key: str, endpoint_name: str, endpoint: Endpoint) -> dict[str, Any]:
    """Describe one endpoint operation as a tool."""
    return {
        "name": build_tool_name(operation_key, endpoint_name),
        "description": _make_description(operation_key, endpoint_name, endpoint),
        "inputSchema": build_input_schema(operation_key, endpoint),
    }


def core_tools(workflow_names: list[str]) -> list[dict[str, Any]]:
    """Tools that exist regardless of the document."""
    return [
        {
            "name": "run_workflow",
            "description": "Execute a pre-defined test workflow",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "workflow": {
                        "type": "string",
                        "enum": list(workflow_names),
                        "description": "The name of the workflow to execute",
                    },
                    "stopOnError": {"type": "boolean", "default": True},
                },
                "required": ["workflow"],
            },
        },
        {
            "name": "ping_api",
            "description": "Check API health and connectivity",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "endpoint": {
                        "type": "string",
                        "description": "Specific endpoint to ping (e.g., /health)",
                    },
                    "detailed": {
                        "type": "boolean",
                        "description": "Include detailed diagnostics",
                    },
                },
            },
        },
        {
            "name": "validate_api",
            "description": "Comprehensive API validation",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "endpoints": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Array of endpoint names to validate. Defaults to all.",
                    },
                },
            },
        },
        {
            "name": "get_metrics",
            "description": "Get server metrics and performance statistics",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "format": {
                        "type": "string",
                        "enum": ["json", "table", "summary"],
                        "default": "summary",
                    },
                },
            },
        },
    ]


def _deduplicate_tool_names(entries: list[tuple[dict[str, Any], str, str]]) -> None:
    """Ensure all tool names are unique by appending the operation key if needed."""
    seen: set[str] = set()
    for tool, _, key in entries:
        name = tool["name"]
        if name in seen:
            tool["name"] = f"{name}_{key.lower()}"
        else:
            seen.add(name)

    final_seen: dict[str, int] = {}
    for tool, _, _ in entries:
        name = tool["name"]
        if name in final_seen:
            final_seen[name] += 1
            tool["name"] = f"{name}_{final_seen[name]}"
        else:
            final_seen[name] = 1


def endpoint_tools(endpoints: Mapping[str, Endpoint]) -> list[tuple[dict[str, Any], str, str]]:
    """Describe every endpoint operation as (tool, endpoint name, operation key)."""
    entries = [
        (describe_tool(key, name, endpoint), name, key)
        for name, endpoint in endpoints.items()
        for key in endpoint.operations
    ]
    _deduplicate_tool_names(entries)
    return entries


def build_tool_catalogue(
    endpoints: Mapping[str, Endpoint],
    workflows: Iterable[str],
) -> list[dict[str, Any]]:
    """Core tools followed by one tool per endpoint operation."""
    return core_tools(list(workflows)) + [tool for tool, _, _ in endpoint_tools(endpoints)]
