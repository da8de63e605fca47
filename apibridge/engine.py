"""Execute synthesized workflows against an injected dispatcher.

The engine owns argument resolution and context bookkeeping; turning a
tool call into an HTTP request is the dispatcher's job. Steps of one
workflow run strictly one after another, since later steps read context
written by earlier ones.

Argument resolution, in order:
- fromContext: merge the stored object under the explicit args, adopting
  its id when the call supplies none
- _dynamicForeignKeys: put the id of the first entry cached under the
  dependency's contextKey (default existing_<target>) at each of its paths;
  entries without paths fall back to replacing the DYNAMIC_<TARGET>_ID
  marker wherever it occurs
- _dynamicAuthorId: replace {{EXISTING_USER_ID}} with the first cached user id
"""

from __future__ import annotations

import copy
import logging
import re
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .context_store import ContextStore
from .errors import UnknownWorkflowError
from .foreign_keys import context_key_for
from .workflows import Workflow

logger = logging.getLogger(__name__)

LEGACY_USER_MARKER = "{{EXISTING_USER_ID}}"
LEGACY_USER_CONTEXT_KEY = "existing_users"

_UNRESOLVED_PATTERN = re.compile(r"DYNAMIC_[A-Z0-9_]+_ID|\{\{[^}]*\}\}")


@dataclass
class ToolResponse:
    """Outcome of one dispatched tool call."""

    status: int
    data: Any
    method: str = ""
    endpoint: str = ""

    def summary(self) -> str:
        return f"{self.method} {self.endpoint} | Status: {self.status}".strip()


Dispatch = Callable[[str, dict[str, Any]], Awaitable[Any]]


@dataclass
class ExecutionOptions:
    stop_on_error: bool = True

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> ExecutionOptions:
        return cls(stop_on_error=bool(args.get("stopOnError", True)))


@dataclass
class StepResult:
    index: int
    action: str
    description: str
    ok: bool
    message: str = ""
    unresolved: list[str] = field(default_factory=list)


@dataclass
class ExecutionReport:
    workflow: str
    description: str
    steps: list[StepResult] = field(default_factory=list)
    total_steps: int = 0
    aborted: bool = False
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return (
            not self.aborted
            and len(self.steps) == self.total_steps
            and all(step.ok for step in self.steps)
        )

    def render(self) -> str:
        lines = [f"Starting workflow: {self.workflow}", self.description, ""]
        for step in self.steps:
            lines.append(f"Step {step.index}: {step.description or step.action}")
            if step.ok:
                if step.message:
                    lines.append(f"  | {step.message}")
                lines.append("Completed")
            else:
                lines.append(f"Failed: {step.message}")
            for marker in step.unresolved:
                lines.append(f"  ! unresolved marker {marker}")
            lines.append("")
        if self.aborted:
            skipped = self.total_steps - len(self.steps)
            lines.append(f"Stopped on error, {skipped} step(s) skipped.")
        lines.append(f"Workflow finished in {self.duration_ms}ms.")
        return "\n".join(lines)


def _first_id(cached: Any) -> Any:
    if isinstance(cached, list) and cached and isinstance(cached[0], Mapping):
        return cached[0].get("id")
    return None


def replace_marker(node: Any, marker: str, value: Any) -> Any:
    """Return a copy of node with every occurrence of marker replaced."""
    if isinstance(node, str):
        if node == marker:
            return value
        if marker in node:
            return node.replace(marker, str(value))
        return node
    if isinstance(node, list):
        return [replace_marker(item, marker, value) for item in node]
    if isinstance(node, Mapping):
        return {key: replace_marker(val, marker, value) for key, val in node.items()}
    return node


def _child(node: Any, part: str) -> Any:
    if isinstance(node, list):
        return node[int(part)] if part.isdigit() and int(part) < len(node) else None
    if isinstance(node, Mapping):
        return node.get(part)
    return None


def assign_at_path(node: Any, path: str, marker: str, value: Any) -> bool:
    """Set the value at a dotted path in place, only while it still holds marker."""
    *parents, leaf = path.split(".")
    for part in parents:
        node = _child(node, part)
        if node is None:
            return False
    if _child(node, leaf) != marker:
        return False
    node[int(leaf) if isinstance(node, list) else leaf] = value
    return True


def find_unresolved_markers(node: Any) -> list[str]:
    """Marker text still present anywhere in an argument tree."""
    found: list[str] = []
    if isinstance(node, str):
        found.extend(_UNRESOLVED_PATTERN.findall(node))
    elif isinstance(node, list):
        for item in node:
            found.extend(find_unresolved_markers(item))
    elif isinstance(node, Mapping):
        for value in node.values():
            found.extend(find_unresolved_markers(value))
    return list(dict.fromkeys(found))


def resolve_context_references(args: Mapping[str, Any], context: ContextStore) -> dict[str, Any]:
    """Resolve fromContext and dynamic markers for one call's arguments."""
    resolved = copy.deepcopy(dict(args))

    from_key = args.get("fromContext")
    if from_key and context.has(from_key):
        stored = context.get(from_key)
        if isinstance(stored, Mapping):
            resolved = {**copy.deepcopy(dict(stored)), **resolved}
            if stored.get("id") and not args.get("id"):
                resolved["id"] = stored["id"]

    dependencies = resolved.pop("_dynamicForeignKeys", None)
    if isinstance(dependencies, list):
        for dep in dependencies:
            key = dep.get("contextKey") or context_key_for(dep["targetEndpoint"])
            value = _first_id(context.get(key))
            if value is None:
                logger.warning(
                    "No cached %s to resolve %s; leaving marker in place",
                    key, dep.get("marker"),
                )
                continue
            paths = dep.get("paths")
            if paths:
                for path in paths:
                    assign_at_path(resolved, path, dep["marker"], value)
            else:
                resolved = replace_marker(resolved, dep["marker"], value)

    if resolved.pop("_dynamicAuthorId", None):
        value = _first_id(context.get(LEGACY_USER_CONTEXT_KEY))
        if value is None:
            logger.warning("No cached %s to resolve %s", LEGACY_USER_CONTEXT_KEY, LEGACY_USER_MARKER)
        else:
            resolved = replace_marker(resolved, LEGACY_USER_MARKER, value)

    return resolved


class WorkflowExecutionEngine:
    """Run registered workflows step by step."""

    def __init__(self, workflows: Mapping[str, Workflow]) -> None:
        self.workflows = workflows

    async def call_tool(
        self,
        action: str,
        args: Mapping[str, Any],
        context: ContextStore,
        dispatch: Dispatch,
    ) -> Any:
        """Resolve args, dispatch one call and save its payload if requested."""
        resolved = resolve_context_references(args, context)
        return await self._send(action, args, resolved, context, dispatch)

    async def _send(
        self,
        action: str,
        args: Mapping[str, Any],
        resolved: dict[str, Any],
        context: ContextStore,
        dispatch: Dispatch,
    ) -> Any:
        response = await dispatch(action, resolved)

        payload = response.data if isinstance(response, ToolResponse) else response
        save_key = args.get("saveToContext")
        if save_key and payload is not None:
            context.set(save_key, payload)
        return response

    async def execute(
        self,
        name: str,
        options: ExecutionOptions | None,
        context: ContextStore,
        dispatch: Dispatch,
    ) -> ExecutionReport:
        """Run a workflow; a failing step aborts the rest when stop_on_error is set."""
        workflow = self.workflows.get(name)
        if workflow is None:
            raise UnknownWorkflowError(name)
        options = options or ExecutionOptions()

        report = ExecutionReport(
            workflow=workflow.name,
            description=workflow.description,
            total_steps=len(workflow.steps),
        )
        started = time.perf_counter()

        for index, step in enumerate(workflow.steps, start=1):
            args = step.args or {}
            unresolved: list[str] = []
            try:
                resolved = resolve_context_references(args, context)
                unresolved = find_unresolved_markers(resolved)
                response = await self._send(step.action, args, resolved, context, dispatch)
            except Exception as exc:
                logger.error("Step %d (%s) of %s failed: %s", index, step.action, name, exc)
                report.steps.append(StepResult(
                    index=index,
                    action=step.action,
                    description=step.description,
                    ok=False,
                    message=str(exc),
                    unresolved=unresolved,
                ))
                if options.stop_on_error:
                    report.aborted = True
                    break
                continue

            message = response.summary() if isinstance(response, ToolResponse) else ""
            report.steps.append(StepResult(
                index=index,
                action=step.action,
                description=step.description,
                ok=True,
                message=message,
                unresolved=unresolved,
            ))

        report.duration_ms = int((time.perf_counter() - started) * 1000)
        return report

    async def handle_tool_call(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        context: ContextStore,
        dispatch: Dispatch,
    ) -> Any:
        """Route run_workflow to execute(); everything else is a single call."""
        if tool_name == "run_workflow":
            return await self.execute(
                args.get("workflow", ""),
                ExecutionOptions.from_args(args),
                context,
                dispatch,
            )
        return await self.call_tool(tool_name, args, context, dispatch)
