"""Assemble the full catalogue from a parsed OpenAPI document.

Runs the pipeline resolver -> endpoints -> workflows -> tools and keeps
an index from tool name back to the endpoint operation it calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .endpoints import Endpoint, build_endpoints
from .foreign_keys import ForeignKeyAnalyzer
from .loader import get_info, get_servers
from .naming import singularize
from .sample_data import SampleValueSynthesizer
from .schema_resolver import SchemaResolver
from .tool_schema import core_tools, endpoint_tools
from .workflows import Workflow, WorkflowSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolBinding:
    """Where an endpoint tool sends its request."""

    endpoint: str
    operation_key: str


@dataclass
class Catalogue:
    endpoints: dict[str, Endpoint]
    workflows: dict[str, Workflow]
    tools: list[dict[str, Any]]
    bindings: dict[str, ToolBinding] = field(default_factory=dict)
    info: dict[str, Any] = field(default_factory=dict)
    servers: list[dict[str, Any]] = field(default_factory=list)

    @property
    def tool_count(self) -> int:
        return len(self.tools)

    def to_dict(self) -> dict[str, Any]:
        return {
            "info": self.info,
            "servers": self.servers,
            "endpoints": {name: ep.to_dict() for name, ep in self.endpoints.items()},
            "workflows": {name: wf.to_dict() for name, wf in self.workflows.items()},
            "tools": self.tools,
            "tool_count": self.tool_count,
        }


def build_catalogue(
    spec: dict[str, Any],
    merge_all_of: bool = False,
    aliases: dict[str, str] | None = None,
) -> Catalogue:
    """Build endpoints, workflows and the tool catalogue from the document."""
    resolver = SchemaResolver(spec, merge_all_of=merge_all_of)
    endpoints = build_endpoints(spec, resolver)

    sample_values = SampleValueSynthesizer(ForeignKeyAnalyzer(endpoints, aliases))
    workflows = WorkflowSynthesizer(endpoints, resolver, sample_values).synthesize_all()

    entries = endpoint_tools(endpoints)
    tools = core_tools(list(workflows)) + [tool for tool, _, _ in entries]
    bindings = {tool["name"]: ToolBinding(name, key) for tool, name, key in entries}

    # Workflows call update_<singular> for PATCH-only endpoints too
    for name, endpoint in endpoints.items():
        if "PATCH" in endpoint.operations and "PUT" not in endpoint.operations:
            bindings.setdefault(f"update_{singularize(name)}", ToolBinding(name, "PATCH"))

    logger.info(
        "Loaded %d endpoints, %d workflows, %d tools",
        len(endpoints), len(workflows), len(tools),
    )
    return Catalogue(
        endpoints=endpoints,
        workflows=workflows,
        tools=tools,
        bindings=bindings,
        info=get_info(spec),
        servers=get_servers(spec),
    )
