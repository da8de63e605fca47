"""Turn tool calls into HTTP requests against the target API.

HttpToolDispatcher is the dispatch(action, args) collaborator the
execution engine awaits. It owns URL building, body assembly and error
translation; retries and auth refresh are not its concern. Every request
it sends is counted in its RequestMetrics.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx

from .catalogue import Catalogue
from .config import Settings
from .context_store import ContextStore
from .engine import ToolResponse
from .errors import ToolCallError
from .metrics import FORMATS, RequestMetrics, format_metrics

logger = logging.getLogger(__name__)

_PATH_PARAM = re.compile(r"\{[^}]+\}")

# Arguments that steer the call rather than form the request body
_CONTROL_ARGS = {"id", "queryParams", "saveToContext", "fromContext", "data"}

_BODY_METHODS = {"POST", "PUT", "PATCH"}

VALIDATION_ID = "test-id"


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _http_method(operation_key: str) -> str:
    return "GET" if operation_key == "GET_COLLECTION" else operation_key


class HttpToolDispatcher:
    """Dispatch endpoint tools with httpx."""

    def __init__(
        self,
        catalogue: Catalogue,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        context: ContextStore | None = None,
        metrics: RequestMetrics | None = None,
    ) -> None:
        self.catalogue = catalogue
        self.settings = settings
        self.context = context
        self.metrics = metrics or RequestMetrics()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.timeout)

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
        }
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    async def __aenter__(self) -> HttpToolDispatcher:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __call__(self, action: str, args: dict[str, Any]) -> ToolResponse:
        if action == "ping_api":
            return await self.ping(args.get("endpoint"), bool(args.get("detailed")))
        if action == "validate_api":
            return await self.validate(args.get("endpoints"))
        if action == "get_metrics":
            return self.get_metrics(args.get("format") or "summary")
        return await self.dispatch(action, args)

    def build_request(self, action: str, args: dict[str, Any]) -> tuple[str, str, dict[str, Any] | None]:
        """Return (http method, url, json body) for an endpoint tool call.

        Explicit None field values are sent as JSON null.
        """
        binding = self.catalogue.bindings.get(action)
        if binding is None:
            raise ToolCallError(f"Unknown tool: {action}")
        endpoint = self.catalogue.endpoints.get(binding.endpoint)
        if endpoint is None:
            raise ToolCallError(f"Endpoint not found: {binding.endpoint}")
        operation = endpoint.operations[binding.operation_key]

        url = f"{self.settings.base_url.rstrip('/')}{operation.path}"
        if "{" in operation.path:
            resource_id = args.get("id")
            if not resource_id:
                raise ToolCallError(
                    f"ID parameter is required for {binding.operation_key} operation on {operation.path}"
                )
            url = _PATH_PARAM.sub(quote(str(resource_id), safe=""), url)

        method = _http_method(binding.operation_key)
        body: dict[str, Any] | None = None
        if method in _BODY_METHODS:
            raw = args.get("data")
            body = dict(raw) if isinstance(raw, dict) else {}
            for key, value in args.items():
                if key not in _CONTROL_ARGS:
                    body[key] = value
            if method == "POST" and not body:
                raise ToolCallError(
                    f"No data provided for {binding.operation_key} operation. "
                    "Provide either individual fields or a 'data' object."
                )
        return method, url, body

    async def dispatch(self, action: str, args: dict[str, Any]) -> ToolResponse:
        method, url, body = self.build_request(action, args)
        params = args.get("queryParams") or None
        binding = self.catalogue.bindings[action]

        response = await self.request(method, url, body, params, label=binding.operation_key)
        response.endpoint = binding.endpoint
        return response

    async def request(
        self,
        method: str,
        url: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        label: str | None = None,
    ) -> ToolResponse:
        """Send one request; non-2xx and transport failures raise ToolCallError."""
        label = label or method
        logger.debug("[HTTP] %s %s", method, url)
        started = time.perf_counter()
        try:
            response = await self.client.request(
                method, url, json=body, params=params, headers=self.headers,
            )
        except httpx.HTTPError as exc:
            self.metrics.record_error()
            logger.debug("[HTTP] ERR %s %s - %s", method, url, exc)
            raise ToolCallError(f"{label} {url} failed: {exc}") from exc

        self.metrics.record((time.perf_counter() - started) * 1000, response.is_success)
        logger.debug("[HTTP] %s %s %s", response.status_code, method, url)
        if not response.is_success:
            raise ToolCallError(
                f"{label} {url} failed: HTTP {response.status_code}: {response.reason_phrase}"
            )
        return ToolResponse(status=response.status_code, data=_parse_body(response), method=method)

    def ping_url(self, endpoint: str | None = None) -> str:
        """Health URL: a trailing /api on the base URL becomes /health."""
        base = self.settings.base_url.rstrip("/")
        if endpoint:
            return f"{re.sub(r'/api$', '', base)}{endpoint}"
        return re.sub(r"/api$", "/health", base)

    async def ping(self, endpoint: str | None = None, detailed: bool = False) -> ToolResponse:
        """Health check; failures are reported in the payload, not raised."""
        url = self.ping_url(endpoint)
        started = time.perf_counter()
        result: dict[str, Any] = {"url": url}
        status = 0
        try:
            response = await self.client.get(url, headers=self.headers)
            status = response.status_code
            result["ok"] = response.is_success
            if detailed:
                result["response"] = _parse_body(response)
        except httpx.HTTPError as exc:
            self.metrics.record_error()
            result["ok"] = False
            result["error"] = str(exc)
        else:
            self.metrics.record((time.perf_counter() - started) * 1000, response.is_success)
        result["elapsed_ms"] = int((time.perf_counter() - started) * 1000)
        result["status"] = status
        return ToolResponse(status=status, data=result, method="GET", endpoint="ping")

    async def validate(self, names: Iterable[str] | None = None) -> ToolResponse:
        """Call every operation of the named endpoints (default all) once.

        Path parameters are filled with a placeholder id and no body is
        sent, so the results show reachability rather than correctness.
        Failures are collected, not raised.
        """
        names = list(names or self.catalogue.endpoints)
        base = self.settings.base_url.rstrip("/")
        results: list[dict[str, Any]] = []

        for name in names:
            endpoint = self.catalogue.endpoints.get(name)
            if endpoint is None:
                results.append({"endpoint": name, "ok": False, "error": f"Endpoint not found: {name}"})
                continue
            for key, operation in endpoint.operations.items():
                method = _http_method(key)
                url = f"{base}{_PATH_PARAM.sub(VALIDATION_ID, operation.path)}"
                entry: dict[str, Any] = {"endpoint": name, "method": method, "url": url}
                try:
                    response = await self.request(method, url, label=key)
                except ToolCallError as exc:
                    entry.update(ok=False, error=str(exc))
                else:
                    entry.update(ok=True, status=response.status)
                results.append(entry)

        passed = sum(1 for entry in results if entry["ok"])
        logger.info("Validated %d endpoint(s): %d/%d checks passed", len(names), passed, len(results))
        data = {"valid": passed == len(results), "results": results}
        return ToolResponse(status=200, data=data, endpoint="validate")

    def get_metrics(self, fmt: str = "summary") -> ToolResponse:
        if fmt not in FORMATS:
            raise ToolCallError(f"Unknown metrics format: {fmt}. Expected one of {', '.join(FORMATS)}")
        snapshot = self.metrics.snapshot(
            endpoints=len(self.catalogue.endpoints),
            workflows=len(self.catalogue.workflows),
            active_items=len(self.context) if self.context is not None else 0,
        )
        return ToolResponse(
            status=200,
            data={"metrics": snapshot, "text": format_metrics(snapshot, fmt)},
            endpoint="metrics",
        )
