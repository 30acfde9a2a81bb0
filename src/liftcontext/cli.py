# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Lift CLI: check-settings, render, ping, list-agents commands.

Usage:
    python -m liftcontext.cli check-settings --settings lift.yaml
    python -m liftcontext.cli render --settings lift.yaml --node node.yaml [--title T] [--format html|json]
    python -m liftcontext.cli ping --settings lift.yaml
    python -m liftcontext.cli list-agents --settings lift.yaml
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from . import HtmlHead
from .decision_api import DecisionApiClient
from .entities import (
    ImageStyle,
    InMemoryImageStyleStorage,
    InMemoryTermStorage,
    Request,
    Route,
    RouteTitleResolver,
    node_from_dict,
)
from .errors import ConfigurationError, LiftError
from .logging_config import configure
from .page_context import PageContext
from .serializer import render_html_head, to_json
from .settings import LiftSettings, load_settings

DEFAULT_FILES_URL = "/sites/default/files"


def _load_fixture(path_str: str) -> Any:
    path = Path(path_str)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read node fixture {path}: {e}") from e
    try:
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Node fixture {path} is not valid: {e}") from e


def _image_styles_for(settings: LiftSettings, files_url: str) -> InMemoryImageStyleStorage:
    """One style per name referenced by the thumbnail config."""
    names = {config.style for config in settings.thumbnail.values() if config.style}
    return InMemoryImageStyleStorage(ImageStyle(name, public_base_url=files_url) for name in sorted(names))


def cmd_check_settings(args: argparse.Namespace) -> None:
    """Validate a settings file and print a summary."""
    settings = load_settings(args.settings)
    summary = {
        "credential_keys": sorted(settings.credential),
        "field_mappings": len(settings.field_mappings),
        "udf_person_mappings": len(settings.udf_person_mappings),
        "udf_event_mappings": len(settings.udf_event_mappings),
        "udf_touch_mappings": len(settings.udf_touch_mappings),
        "thumbnail_types": sorted(settings.thumbnail),
        "content_replacement_mode": settings.content_replacement_mode,
        "assets_url": settings.assets_url,
    }
    print(json.dumps(summary, indent=2))


def cmd_render(args: argparse.Namespace) -> None:
    """Build a page context from a node fixture and print the HTML head (or JSON)."""
    settings = load_settings(args.settings)
    data = _load_fixture(args.node)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Node fixture {args.node} must be a mapping")
    node = node_from_dict(data)

    term_storage = InMemoryTermStorage()
    term_storage.index_node(node)

    route = Route(path=f"/node/{node.id}", defaults={"_title": args.title} if args.title else {})
    ctx = PageContext(
        settings,
        term_storage,
        _image_styles_for(settings, args.files_url),
        Request(attributes={"node": node}),
        route,
        RouteTitleResolver(),
    )

    if args.format == "json":
        print(to_json(ctx))
        return
    head: HtmlHead = []
    ctx.populate_html_head(head)
    print(render_html_head(head))


def cmd_ping(args: argparse.Namespace) -> None:
    """Check connectivity to the decision API."""
    settings = load_settings(args.settings)
    with DecisionApiClient.from_settings(settings) as api:
        ok = api.ping_test()
        print(f"{api.api_url}: {'ok' if ok else 'unreachable'}")
    if not ok:
        sys.exit(1)


def cmd_list_agents(args: argparse.Namespace) -> None:
    """Print existing agents as JSON, keyed by agent code."""
    settings = load_settings(args.settings)
    with DecisionApiClient.from_settings(settings) as api:
        agents = api.get_existing_agents()
    print(json.dumps(agents, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Lift page context CLI",
        prog="python -m liftcontext.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--log-level", default="WARNING", help="Root log level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _with_settings(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("--settings", required=True, metavar="FILE", help="YAML settings file")
        return p

    _with_settings(subparsers.add_parser("check-settings", help="Validate a settings file"))

    _render_epilog = """\
examples:
  %(prog)s --settings lift.yaml --node node.yaml                Print meta + script tags
  %(prog)s --settings lift.yaml --node node.json --format json  Print the context as JSON
  %(prog)s --settings lift.yaml --node node.yaml --title "Home" Override the resolved title
"""
    p_render = _with_settings(
        subparsers.add_parser(
            "render",
            help="Render the page context for a node fixture",
            epilog=_render_epilog,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
    )
    p_render.add_argument("--node", required=True, metavar="FILE", help="Node fixture (.json or .yaml)")
    p_render.add_argument("--title", type=str, default="", help="Route title")
    p_render.add_argument("--format", choices=["html", "json"], default="html")
    p_render.add_argument(
        "--files-url", default=DEFAULT_FILES_URL, metavar="URL", help="Public files base URL for thumbnails"
    )

    _with_settings(subparsers.add_parser("ping", help="Test the decision API connection"))
    _with_settings(subparsers.add_parser("list-agents", help="List existing agents"))

    commands = {
        "check-settings": cmd_check_settings,
        "render": cmd_render,
        "ping": cmd_ping,
        "list-agents": cmd_list_agents,
    }

    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else args.log_level
    configure(json_output=args.json_logs, level=level)

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except LiftError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
