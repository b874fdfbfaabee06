"""
mica-preview CLI entry point.

Previews a view or dashboard source file against a Mica server, either once
or continuously while the file is being edited.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from mica_preview import __version__
from mica_preview.client import EvaluationClient
from mica_preview.config import PreviewConfig, load_config
from mica_preview.document import DocumentKind
from mica_preview.errors import PreviewError
from mica_preview.observability import configure_logging, get_logger
from mica_preview.session import PreviewSession, SessionPhase, SessionState
from mica_preview.watcher import PollingWatcher, attach_to_session

from .errors import CLIError, CLIValidationError, format_cli_error
from .output import print_parameter_form, print_state

logger = get_logger("mica_preview.cli")


class ConsoleNavigator:
    """Tells the user where to log in again after the server answered 401."""

    def redirect_to_login(self, login_url: str) -> None:
        logger.warning("Session expired, redirecting to login")
        print(f"Authentication required, log in at {login_url}", file=sys.stderr)


def parse_parameters(values: Optional[Sequence[str]]) -> Dict[str, str]:
    parameters: Dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise CLIValidationError(
                f"Invalid parameter '{item}'",
                hint="Use --param NAME=VALUE",
            )
        parameters[name] = value
    return parameters


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mica-preview",
        description="Live preview of Mica view and dashboard documents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to mica-preview.toml or mica-preview.json")
    parser.add_argument("--base-url", help="Mica server URL (overrides config)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warn", "warning", "error"],
        help="Logging level (default: info or MICA_PREVIEW_LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    for kind in DocumentKind:
        sub = subparsers.add_parser(kind.value, help=f"Preview a {kind.value} document")
        sub.add_argument("file", help="YAML source file")
        sub.add_argument("--watch", action="store_true", help="Re-preview whenever the file changes")
        if kind is DocumentKind.VIEW:
            sub.add_argument(
                "--param",
                action="append",
                metavar="NAME=VALUE",
                help="View parameter value (repeatable)",
            )
            sub.add_argument(
                "--details",
                action="store_true",
                help="Show the whole rendered view instead of its data",
            )
    return parser


def _print_session(session: PreviewSession, state: SessionState, show_details: bool) -> None:
    if session.kind is DocumentKind.VIEW:
        print_parameter_form(session.parameter_fields(), session.unknown_parameters())
    print_state(state, kind=session.kind, show_details=show_details)


async def _run_once(session: PreviewSession, source: Path, show_details: bool) -> int:
    session.refresh(source.read_text(encoding="utf-8"))
    await session.drain()
    _print_session(session, session.state, show_details)
    return 1 if session.state.active_error is not None else 0


async def _run_watch(session: PreviewSession, source: Path, show_details: bool) -> int:
    loop = asyncio.get_running_loop()
    watcher = PollingWatcher(source)
    attach_to_session(watcher, session, loop)

    printed: List[int] = []

    def _on_state(state: SessionState) -> None:
        # progress indicator updates re-announce an already printed cycle
        if state.phase not in (SessionPhase.SETTLED, SessionPhase.IDLE) or state.sequence in printed:
            return
        printed[:] = [state.sequence]
        print(f"--- preview #{state.sequence} ---")
        _print_session(session, state, show_details)

    session.subscribe(_on_state)
    session.refresh(source.read_text(encoding="utf-8"))
    watcher.start()
    print(f"Watching {source} (Ctrl+C to stop)", file=sys.stderr)
    try:
        await asyncio.Event().wait()
    finally:
        watcher.stop()
    return 0


async def run_preview(
    config: PreviewConfig,
    kind: DocumentKind,
    source: Path,
    *,
    parameters: Optional[Dict[str, str]] = None,
    watch: bool = False,
    show_details: bool = False,
) -> int:
    if not source.exists():
        raise CLIValidationError(f"Source file '{source}' does not exist")

    async with EvaluationClient(
        config.base_url,
        api_key=config.api_key,
        timeout=config.timeout,
        navigator=ConsoleNavigator(),
    ) as client:
        session = PreviewSession.from_config(client, config, kind=kind)
        for name, value in (parameters or {}).items():
            session.parameters.set_value(name, value)
        try:
            if watch:
                return await _run_watch(session, source, show_details)
            return await _run_once(session, source, show_details)
        finally:
            session.close()
            await session.drain()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entrypoint.

    Examples:
        >>> main(['view', 'my-view.yaml', '--param', 'limit=10'])  # doctest: +SKIP
        >>> main(['dashboard', 'board.yaml', '--watch'])  # doctest: +SKIP
    """
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    try:
        config = load_config(Path(args.config) if args.config else None)
        config = config.merged(base_url=args.base_url, log_level=args.log_level)
        configure_logging(config.log_level)
        kind = DocumentKind(args.command)
        return asyncio.run(
            run_preview(
                config,
                kind,
                Path(args.file),
                parameters=parse_parameters(getattr(args, "param", None)),
                watch=args.watch,
                show_details=getattr(args, "details", False),
            )
        )
    except (CLIError, PreviewError) as exc:
        print(format_cli_error(exc), file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 0


__all__ = ["ConsoleNavigator", "build_parser", "main", "parse_parameters", "run_preview"]
