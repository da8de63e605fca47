"""Synthesize CRUD workflows from the endpoint registry.

An endpoint with list, get, create and delete operations gets a workflow:

  list_<target>      one per foreign-key target of create or update,
                     saved as existing_<target>
  create_<singular>  saved as created_<singular>
  list_<endpoint>
  get_<singular>     fromContext created_<singular>
  update_<singular>  only with PUT/PATCH and a non-empty update payload;
                     carries its own _dynamicForeignKeys
  delete_<singular>  fromContext created_<singular>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .endpoints import Endpoint
from .foreign_keys import ForeignKeyAnalyzer, ForeignKeyDependency, marker_paths
from .naming import singularize
from .sample_data import SampleValueSynthesizer
from .schema_resolver import SchemaResolver

REQUIRED_OPERATIONS = ("GET_COLLECTION", "GET", "POST", "DELETE")


@dataclass(frozen=True)
class Step:
    action: str
    description: str
    args: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        step: dict[str, Any] = {"action": self.action, "description": self.description}
        if self.args is not None:
            step["args"] = self.args
        return step


@dataclass(frozen=True)
class Workflow:
    name: str
    description: str
    steps: tuple[Step, ...] = field(default_factory=tuple)

    @property
    def actions(self) -> list[str]:
        return [step.action for step in self.steps]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "steps": [step.to_dict() for step in self.steps],
        }


def workflow_name(endpoint_name: str) -> str:
    return f"{endpoint_name}_crud_workflow"


def _unique_by(dependencies: list[ForeignKeyDependency], attr: str) -> list[ForeignKeyDependency]:
    seen: set[str] = set()
    unique = []
    for dep in dependencies:
        key = getattr(dep, attr)
        if key not in seen:
            seen.add(key)
            unique.append(dep)
    return unique


def _dependency_edges(payload: dict[str, Any], dependencies: list[ForeignKeyDependency]) -> list[dict[str, Any]]:
    """One _dynamicForeignKeys entry per marker, with every path it occupies in payload."""
    return [
        {**dep.to_dict(), "paths": marker_paths(payload, dep.marker)}
        for dep in _unique_by(dependencies, "marker")
    ]


class WorkflowSynthesizer:
    """Derive one CRUD workflow per eligible endpoint."""

    def __init__(
        self,
        endpoints: dict[str, Endpoint],
        resolver: SchemaResolver,
        sample_values: SampleValueSynthesizer | None = None,
    ) -> None:
        self.endpoints = endpoints
        self.resolver = resolver
        if sample_values is None:
            sample_values = SampleValueSynthesizer(ForeignKeyAnalyzer(endpoints))
        self.sample_values = sample_values

    @property
    def foreign_keys(self) -> ForeignKeyAnalyzer:
        return self.sample_values.foreign_keys

    def synthesize_all(self) -> dict[str, Workflow]:
        workflows: dict[str, Workflow] = {}
        for name, endpoint in self.endpoints.items():
            workflow = self.synthesize(name, endpoint)
            if workflow is not None:
                workflows[workflow.name] = workflow
        return workflows

    def operation_payload(self, endpoint: Endpoint, key: str | None, endpoint_name: str) -> dict[str, Any]:
        """Sample payload for one operation: raw 'data' plus the flattened fields."""
        if not key or key not in endpoint.operations:
            return {}
        schema = self.resolver.request_body_schema(endpoint.operations[key].request_body)
        if not schema:
            return {}
        sample = self.sample_values.sample_data(schema, endpoint_name)
        return {"data": sample, **sample}

    def synthesize(self, name: str, endpoint: Endpoint) -> Workflow | None:
        if not endpoint.has(*REQUIRED_OPERATIONS):
            return None

        singular = singularize(name)
        context_var = f"created_{singular}"
        update_key = "PUT" if "PUT" in endpoint.operations else (
            "PATCH" if "PATCH" in endpoint.operations else None
        )

        create_data = self.operation_payload(endpoint, "POST", name)
        update_data = self.operation_payload(endpoint, update_key, name)
        dependencies = self.foreign_keys.analyze_dependencies(create_data)
        # update_data always carries 'data'; require at least one real field
        has_update = bool(update_key) and len(update_data) > 1
        update_dependencies = self.foreign_keys.analyze_dependencies(update_data) if has_update else []

        steps: list[Step] = []

        for dep in _unique_by(dependencies + update_dependencies, "context_key"):
            steps.append(Step(
                action=f"list_{dep.target_endpoint}",
                description=f"Get existing {dep.target_endpoint} for {dep.source_property} reference",
                args={"saveToContext": dep.context_key},
            ))

        create_args: dict[str, Any] = {"saveToContext": context_var, **create_data}
        if dependencies:
            create_args["_dynamicForeignKeys"] = _dependency_edges(create_data, dependencies)
        steps.append(Step(
            action=f"create_{singular}",
            description=f"Create a new {singular}",
            args=create_args,
        ))

        steps.append(Step(
            action=f"list_{name}",
            description=f"List all {name} to verify creation",
        ))

        steps.append(Step(
            action=f"get_{singular}",
            description=f"Get the created {singular} by ID",
            args={"fromContext": context_var},
        ))

        if has_update:
            update_args: dict[str, Any] = {"fromContext": context_var, **update_data}
            if update_dependencies:
                update_args["_dynamicForeignKeys"] = _dependency_edges(update_data, update_dependencies)
            steps.append(Step(
                action=f"update_{singular}",
                description=f"Update the created {singular}",
                args=update_args,
            ))

        steps.append(Step(
            action=f"delete_{singular}",
            description=f"Delete the created {singular}",
            args={"fromContext": context_var},
        ))

        return Workflow(
            name=workflow_name(name),
            description=f"Full CRUD workflow for the {name} endpoint.",
            steps=tuple(steps),
        )
