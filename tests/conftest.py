"""Shared fixtures for apibridge tests.

The blog fixture document lives in tests/fixtures/blog-api.yml. MockApi is
an in-memory CRUD backend served through httpx.MockTransport, so the
dispatcher and engine can be exercised without a network.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any

import httpx
import pytest

from apibridge.catalogue import build_catalogue
from apibridge.config import Settings
from apibridge.loader import load_spec

FIXTURES = Path(__file__).parent / "fixtures"
BLOG_SPEC_PATH = FIXTURES / "blog-api.yml"
MOCK_BASE_URL = "http://mock.test/api"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def users_posts_spec() -> dict[str, Any]:
    """users has list/get/post/put/delete; posts has list/get/post/delete."""
    return {
        "openapi": "3.0.0",
        "info": {"title": "Users and posts", "version": "1.0.0"},
        "paths": {
            "/users": {
                "get": {"responses": {}},
                "post": {"requestBody": _json_body("#/components/schemas/User")},
            },
            "/users/{id}": {
                "get": {"responses": {}},
                "put": {"requestBody": _json_body("#/components/schemas/User")},
                "delete": {"responses": {}},
            },
            "/posts": {
                "get": {"responses": {}},
                "post": {"requestBody": _json_body("#/components/schemas/Post")},
            },
            "/posts/{id}": {
                "get": {"responses": {}},
                "delete": {"responses": {}},
            },
        },
        "components": {
            "schemas": {
                "User": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "id": {"type": "string", "format": "uuid", "readOnly": True},
                        "name": {"type": "string"},
                    },
                },
                "Post": {
                    "type": "object",
                    "required": ["title", "authorId"],
                    "properties": {
                        "title": {"type": "string"},
                        "authorId": {"type": "string", "format": "uuid"},
                    },
                },
            }
        },
    }


def _json_body(ref: str) -> dict[str, Any]:
    return {"content": {"application/json": {"schema": {"$ref": ref}}}}


@pytest.fixture(scope="session")
def blog_spec_path() -> Path:
    return BLOG_SPEC_PATH


@pytest.fixture(scope="session")
def blog_spec() -> dict[str, Any]:
    return load_spec(BLOG_SPEC_PATH)


@pytest.fixture()
def blog_catalogue(blog_spec):
    return build_catalogue(blog_spec)


@pytest.fixture()
def scenario_spec() -> dict[str, Any]:
    return users_posts_spec()


# ---------------------------------------------------------------------------
# Mock backend
# ---------------------------------------------------------------------------

class MockApi:
    """In-memory REST backend: /api/<resource>[/<id>].

    Rejects any body still carrying DYNAMIC_*_ID or {{...}} marker text with
    422, so tests can tell whether substitution happened.
    """

    def __init__(self, seed: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.store: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        for resource, items in (seed or {}).items():
            self.store[resource] = {item["id"]: dict(item) for item in items}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [p for p in request.url.path.split("/") if p]
        if parts and parts[0] == "health":
            return httpx.Response(200, json={"status": "ok"})
        if len(parts) < 2 or parts[0] != "api":
            return httpx.Response(404, json={"error": "not found"})

        resource = parts[1]
        item_id = parts[2] if len(parts) > 2 else None
        items = self.store.setdefault(resource, {})
        method = request.method

        body: dict[str, Any] = {}
        if request.content:
            text = request.content.decode()
            if "DYNAMIC_" in text or "{{" in text:
                return httpx.Response(422, json={"error": "unresolved marker", "body": text})
            body = json.loads(text)

        if item_id is None:
            if method == "GET":
                return httpx.Response(200, json=list(items.values()))
            if method == "POST":
                created = {**body, "id": str(uuid.uuid4())}
                items[created["id"]] = created
                return httpx.Response(201, json=created)
            return httpx.Response(405)

        if item_id not in items:
            return httpx.Response(404, json={"error": f"{resource}/{item_id} not found"})
        if method == "GET":
            return httpx.Response(200, json=items[item_id])
        if method in ("PUT", "PATCH"):
            items[item_id].update({k: v for k, v in body.items() if k != "id"})
            return httpx.Response(200, json=items[item_id])
        if method == "DELETE":
            del items[item_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def bodies(self, method: str) -> list[dict[str, Any]]:
        return [
            json.loads(r.content) for r in self.requests
            if r.method == method and r.content
        ]


@pytest.fixture()
def mock_api() -> MockApi:
    return MockApi(seed={
        "users": [{"id": "user-1", "name": "Ada", "email": "ada@example.com"}],
        "categories": [{"id": "cat-1", "name": "News"}],
    })


@pytest.fixture()
def settings() -> Settings:
    return Settings(base_url=MOCK_BASE_URL, api_key="secret-token", name="Blog API", version="2.1.0")
