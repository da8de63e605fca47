"""Render templates and write generated output.

Takes the catalogue and produces <output>/catalogue.md and <output>/tools.json.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import jinja2

from .catalogue import Catalogue

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
OUTPUT_DIR = Path("generated")


def render_catalogue(catalogue: Catalogue) -> str:
    """Render the catalogue report template."""
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("catalogue.md.j2")
    return template.render(
        info=catalogue.info,
        endpoints=catalogue.endpoints,
        workflows=catalogue.workflows,
        tools=catalogue.tools,
        tool_count=catalogue.tool_count,
    )


def generate(catalogue: Catalogue, output_dir: Path | None = None) -> Path:
    """Write catalogue.md and tools.json; returns the output directory."""
    out = output_dir or OUTPUT_DIR
    out.mkdir(parents=True, exist_ok=True)

    (out / "catalogue.md").write_text(render_catalogue(catalogue), encoding="utf-8")
    (out / "tools.json").write_text(
        json.dumps(catalogue.tools, indent=2, default=str) + "\n", encoding="utf-8",
    )

    logger.info("Generated %s (%d tools)", out, catalogue.tool_count)
    return out
