"""Entry point: python -m apibridge SPEC

Reads an OpenAPI document, writes generated/catalogue.md and
generated/tools.json, and optionally runs one CRUD workflow against a
live API:

    python -m apibridge api.yml --run posts_crud_workflow --base-url http://localhost:3000/api
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .catalogue import Catalogue, build_catalogue
from .codegen import OUTPUT_DIR, generate
from .config import DEFAULT_CONFIG_FILE, Settings, load_settings
from .context_store import ContextStore, MaxEntries
from .dispatcher import HttpToolDispatcher
from .engine import ExecutionOptions, WorkflowExecutionEngine
from .errors import ApiBridgeError
from .loader import load_spec

logger = logging.getLogger("apibridge")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="apibridge",
        description="Derive agent tools and CRUD workflows from an OpenAPI document.",
    )
    parser.add_argument("spec", type=Path, help="OpenAPI document (.yml, .yaml or .json)")
    parser.add_argument("-O", "--output", type=Path, default=OUTPUT_DIR, help="Output directory")
    parser.add_argument("-r", "--run", metavar="WORKFLOW", help="Execute a workflow after generating")
    parser.add_argument("-b", "--base-url", help="Target API base URL (env API_BASE_URL)")
    parser.add_argument("-k", "--api-key", help="Bearer token for the target API (env API_KEY)")
    parser.add_argument(
        "-c", "--config", type=Path,
        help=f"JSON settings file (default: {DEFAULT_CONFIG_FILE} when present)",
    )
    parser.add_argument("--continue-on-error", action="store_true", help="Keep running after a failed step")
    parser.add_argument("--merge-all-of", action="store_true", help="Merge allOf members when resolving schemas")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


async def run_workflow(catalogue: Catalogue, settings: Settings, name: str) -> bool:
    """Run one workflow with a fresh context store; returns success."""
    eviction = MaxEntries(settings.context_max_entries) if settings.context_max_entries else None
    context = ContextStore(eviction)
    engine = WorkflowExecutionEngine(catalogue.workflows)
    options = ExecutionOptions(stop_on_error=settings.stop_on_error)

    async with HttpToolDispatcher(catalogue, settings, context=context) as dispatcher:
        report = await engine.execute(name, options, context, dispatcher)
    print(report.render())
    return report.succeeded


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        spec = load_spec(args.spec)
        catalogue = build_catalogue(spec, merge_all_of=args.merge_all_of)
        generate(catalogue, args.output)

        if not args.run:
            return 0

        config_file = args.config
        if config_file is None and DEFAULT_CONFIG_FILE.exists():
            config_file = DEFAULT_CONFIG_FILE
        settings = load_settings(
            config_file,
            base_url=args.base_url,
            api_key=args.api_key,
            stop_on_error=False if args.continue_on_error else None,
        )
        settings.merge_spec_info(catalogue.info, catalogue.servers)
        settings.validate_settings()

        return 0 if asyncio.run(run_workflow(catalogue, settings, args.run)) else 1
    except ApiBridgeError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
