"""Build the endpoint registry from an OpenAPI document.

Every path template is folded into a logical endpoint (users, posts, ...).
Collection and item templates of the same resource share one Endpoint,
with GET on the collection keyed GET_COLLECTION and GET on the item keyed GET.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .loader import get_paths
from .naming import endpoint_name, generate_operation_id, is_collection_path
from .schema_resolver import SchemaResolver

HTTP_METHODS = ("get", "post", "put", "patch", "delete")

OPERATION_KEYS = ("GET", "GET_COLLECTION", "POST", "PUT", "PATCH", "DELETE")


@dataclass
class Operation:
    """One HTTP verb on one endpoint."""

    operation_id: str
    path: str
    is_collection: bool
    summary: str | None = None
    description: str | None = None
    parameters: list[dict[str, Any]] = field(default_factory=list)
    request_body: dict[str, Any] | None = None
    responses: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operationId": self.operation_id,
            "summary": self.summary,
            "description": self.description,
            "parameters": self.parameters,
            "requestBody": self.request_body,
            "responses": self.responses,
            "path": self.path,
            "isCollection": self.is_collection,
        }


@dataclass
class Endpoint:
    """A logical resource grouping the operations of its path templates."""

    name: str
    path: str
    methods: set[str] = field(default_factory=set)
    operations: dict[str, Operation] = field(default_factory=dict)
    schema: dict[str, Any] | None = None

    def has(self, *keys: str) -> bool:
        return all(key in self.operations for key in keys)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "methods": sorted(self.methods),
            "operations": {k: op.to_dict() for k, op in self.operations.items()},
            "schema": self.schema,
        }


def operation_key(method: str, path: str) -> str:
    """GET on a collection path is GET_COLLECTION; otherwise the verb."""
    method_upper = method.upper()
    if method_upper == "GET" and is_collection_path(path):
        return "GET_COLLECTION"
    return method_upper


def _build_operation(method: str, path: str, operation: dict[str, Any]) -> Operation:
    return Operation(
        operation_id=operation.get("operationId") or generate_operation_id(method, path),
        path=path,
        is_collection=is_collection_path(path),
        summary=operation.get("summary"),
        description=operation.get("description"),
        parameters=operation.get("parameters") or [],
        request_body=operation.get("requestBody"),
        responses=operation.get("responses") or {},
    )


def build_endpoints(
    spec: dict[str, Any],
    resolver: SchemaResolver | None = None,
) -> dict[str, Endpoint]:
    """Convert every path item into the endpoint registry."""
    paths = get_paths(spec)
    resolver = resolver or SchemaResolver(spec)
    endpoints: dict[str, Endpoint] = {}

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        name = endpoint_name(path)
        endpoint = endpoints.get(name)
        if endpoint is None:
            endpoint = Endpoint(name=name, path=path)
            endpoints[name] = endpoint

        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict):
                continue
            endpoint.methods.add(method.upper())
            endpoint.operations[operation_key(method, path)] = _build_operation(
                method, path, operation,
            )

        # Representative schema: first POST or PUT body, never overwritten
        if endpoint.schema is None:
            for method in ("post", "put"):
                body = (path_item.get(method) or {}).get("requestBody")
                if body:
                    endpoint.schema = resolver.request_body_schema(body)
                    break

        # Prefer the collection template as the canonical path
        if "{" not in path or "{" in endpoint.path:
            endpoint.path = path

    return endpoints
