"""Request counters reported by the get_metrics tool."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

FORMATS = ("json", "table", "summary")


@dataclass
class RequestMetrics:
    """Counts HTTP requests sent to the target API and how long they took."""

    clock: Callable[[], float] = time.monotonic
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: int = 0
    response_times: list[float] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.started = self.clock()

    def record(self, elapsed_ms: float, ok: bool) -> None:
        """Count a request that got a response."""
        self.total += 1
        self.response_times.append(elapsed_ms)
        if ok:
            self.successful += 1
        else:
            self.failed += 1

    def record_error(self) -> None:
        """Count a request that never got a response."""
        self.total += 1
        self.failed += 1
        self.errors += 1

    @property
    def average_response_time(self) -> int:
        if not self.response_times:
            return 0
        return round(sum(self.response_times) / len(self.response_times))

    @property
    def uptime(self) -> str:
        return f"{int(self.clock() - self.started)}s"

    def snapshot(self, endpoints: int = 0, workflows: int = 0, active_items: int = 0) -> dict[str, Any]:
        return {
            "uptime": self.uptime,
            "requests": {
                "total": self.total,
                "successful": self.successful,
                "failed": self.failed,
            },
            "performance": {
                "averageResponseTime": self.average_response_time,
                "errors": self.errors,
            },
            "context": {
                "activeItems": active_items,
                "endpoints": endpoints,
                "workflows": workflows,
            },
        }


def format_metrics(data: dict[str, Any], fmt: str = "summary") -> str:
    """Render a snapshot as json, a box table or a short summary."""
    if fmt == "json":
        return json.dumps(data, indent=2)
    requests = data["requests"]
    performance = data["performance"]
    context = data["context"]
    if fmt == "table":
        rows = [
            ("Uptime", data["uptime"]),
            ("Total Requests", requests["total"]),
            ("Successful Requests", requests["successful"]),
            ("Failed Requests", requests["failed"]),
            ("Avg Response (ms)", performance["averageResponseTime"]),
            ("Errors", performance["errors"]),
            None,
            ("Endpoints", context["endpoints"]),
            ("Workflows", context["workflows"]),
            ("Context Items", context["activeItems"]),
        ]
        lines = [
            "┌─────────────────────┬─────────────┐",
            "│ Metric              │ Value       │",
            "├─────────────────────┼─────────────┤",
        ]
        for row in rows:
            if row is None:
                lines.append("├─────────────────────┼─────────────┤")
            else:
                lines.append(f"│ {row[0]:<19} │ {str(row[1]):<11} │")
        lines.append("└─────────────────────┴─────────────┘")
        return "\n".join(lines)
    return "\n".join([
        "APIBridge Metrics",
        "",
        f"Uptime: {data['uptime']}",
        f"Requests: {requests['total']} total "
        f"({requests['successful']} successful, {requests['failed']} failed)",
        f"Avg Response Time: {performance['averageResponseTime']}ms",
        f"Errors: {performance['errors']}",
        "",
        "Configuration:",
        f"- Endpoints: {context['endpoints']}",
        f"- Workflows: {context['workflows']}",
        f"- Active Context Items: {context['activeItems']}",
    ])
