"""Command-line interface for apk_ledger."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.table import Table

import apk_ledger as al
from apk_ledger import codec
from apk_ledger.config import load_config
from apk_ledger.exceptions import AnalysisFailure, EngineConfigError, NotFound
from apk_ledger.log import configure_logging
from apk_ledger.models import AnalysisResult, FileOrigin, SessionStatus
from apk_ledger.report import print_result, render
from apk_ledger.workspace import Workspace, open_workspace


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apk-ledger",
        description="Analyze APK files and manage the local analysis history.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {al.__version__}")
    parser.add_argument("--data-dir", default=None, help="Directory holding history and last analysis")
    parser.add_argument("--capacity", type=int, default=None, help="Maximum number of history entries")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze an APK and record it in history.")
    analyze.add_argument("path", help="Path to the APK file")
    analyze.add_argument("--engine", default=None, help="Analysis engine as 'module:callable'")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON")

    history = subparsers.add_parser("history", help="List past analyses, newest first.")
    history.add_argument("--json", action="store_true", help="Print history as JSON")

    show = subparsers.add_parser("show", help="Show the current analysis or a history entry.")
    show.add_argument("entry_id", nargs="?", default=None, help="History entry id")
    show.add_argument("--json", action="store_true", help="Print the result as JSON")

    load = subparsers.add_parser("load", help="Make a history entry the current analysis.")
    load.add_argument("entry_id", help="History entry id")

    remove = subparsers.add_parser("remove", help="Delete one history entry.")
    remove.add_argument("entry_id", help="History entry id")

    subparsers.add_parser("clear-history", help="Delete all history entries.")
    subparsers.add_parser("clear", help="Forget the current analysis.")

    report = subparsers.add_parser("report", help="Write an HTML report.")
    report.add_argument("entry_id", nargs="?", default=None, help="History entry id (default: current)")
    report.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--engine", default=None, help="Analysis engine as 'module:callable'")
    return parser


def _print_history(workspace: Workspace, console: Console) -> None:
    if not workspace.history:
        console.print("No analyses recorded yet.")
        return
    table = Table(title="Analysis History", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Analyzed At")
    table.add_column("Dangerous", justify="right", style="red")
    for entry in workspace.history:
        result = entry.result
        table.add_row(
            entry.id,
            result.package_name,
            result.formatted_version_info,
            entry.analyzed_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(result.permission_stats.dangerous),
        )
    console.print(table)


def _select(
    workspace: Workspace, entry_id: Optional[str]
) -> Optional[tuple[AnalysisResult, Optional[FileOrigin]]]:
    if entry_id is not None:
        entry = workspace.ledger.find(entry_id)
        if entry is None:
            raise NotFound(entry_id)
        return entry.result, entry.file_origin or FileOrigin.synthesize(entry.result)
    state = workspace.state
    if state.status != SessionStatus.READY or state.result is None:
        return None
    return state.result, state.file_origin


def _emit_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False))


def _run(args: argparse.Namespace, workspace: Workspace, console: Console) -> int:
    if args.command == "analyze":
        result = asyncio.run(workspace.analyze_path(args.path))
        if result is None:
            return 1
        if args.json:
            _emit_json(codec.result_to_dict(result))
        else:
            print_result(result, workspace.state.file_origin, console)
        return 0

    if args.command == "history":
        if args.json:
            _emit_json(codec.history_to_list(workspace.history))
        else:
            _print_history(workspace, console)
        return 0

    if args.command == "show":
        selected = _select(workspace, args.entry_id)
        if selected is None:
            print("apk-ledger: no current analysis", file=sys.stderr)
            return 1
        result, origin = selected
        if args.json:
            _emit_json(codec.result_to_dict(result))
        else:
            print_result(result, origin, console)
        return 0

    if args.command == "load":
        result = workspace.load_from_history(args.entry_id)
        console.print(f"Loaded {result.package_name} {result.formatted_version_info}")
        return 0

    if args.command == "remove":
        if not workspace.remove_from_history(args.entry_id):
            raise NotFound(args.entry_id)
        console.print(f"Removed {args.entry_id}")
        return 0

    if args.command == "clear-history":
        workspace.clear_history()
        console.print("History cleared.")
        return 0

    if args.command == "clear":
        workspace.clear_current_analysis()
        console.print("Current analysis cleared.")
        return 0

    if args.command == "report":
        selected = _select(workspace, args.entry_id)
        if selected is None:
            print("apk-ledger: no current analysis", file=sys.stderr)
            return 1
        result, origin = selected
        document = render(result, origin)
        if args.output:
            Path(args.output).write_text(document, encoding="utf-8")
            console.print(f"Report written to {args.output}")
        else:
            sys.stdout.write(document)
        return 0

    if args.command == "serve":
        from apk_ledger.server import run_server

        run_server(workspace, host=args.host, port=args.port)
        return 0

    return 2


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    console = Console()

    try:
        config = load_config(
            data_dir=args.data_dir,
            history_capacity=args.capacity,
            log_level=args.log_level,
            engine=getattr(args, "engine", None),
        )
        configure_logging(config.log_level)
        workspace = open_workspace(config)
    except (EngineConfigError, ValueError) as exc:
        print(f"apk-ledger: {exc}", file=sys.stderr)
        return 1

    try:
        code = _run(args, workspace, console)
    except (AnalysisFailure, NotFound, EngineConfigError) as exc:
        print(f"apk-ledger: {exc}", file=sys.stderr)
        return 1

    error = workspace.last_persistence_error
    if error is not None:
        print(f"apk-ledger: warning: {error}", file=sys.stderr)
    return code


if __name__ == "__main__":
    raise SystemExit(main())
