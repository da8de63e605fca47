"""Load and parse an OpenAPI document.

Reads a .json, .yml or .yaml file and exposes the parts the model
builder needs: paths, component schemas, info and servers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .errors import SpecError

_YAML_SUFFIXES = {".yml", ".yaml"}


def load_spec(path: str | Path) -> dict[str, Any]:
    """Load the OpenAPI document from disk."""
    spec_file = Path(path)
    suffix = spec_file.suffix.lower()
    if suffix not in _YAML_SUFFIXES and suffix != ".json":
        raise SpecError(f"Unsupported file format: {suffix or '(none)'}. Use .yml, .yaml, or .json")

    try:
        with open(spec_file, encoding="utf-8") as f:
            if suffix == ".json":
                spec = json.load(f)
            else:
                spec = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SpecError(f"Failed to parse OpenAPI spec: {exc}") from exc

    if not isinstance(spec, dict):
        raise SpecError("Failed to parse OpenAPI spec: top level must be a mapping")
    return spec


def get_paths(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract paths from the document, failing when there are none."""
    paths = spec.get("paths")
    if not paths or not isinstance(paths, dict):
        raise SpecError("No paths found in OpenAPI specification")
    return paths


def get_schemas(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract component schemas from the document."""
    return spec.get("components", {}).get("schemas", {})


def get_info(spec: dict[str, Any]) -> dict[str, Any]:
    return spec.get("info") or {}


def get_servers(spec: dict[str, Any]) -> list[dict[str, Any]]:
    return spec.get("servers") or []
