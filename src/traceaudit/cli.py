"""CLI entry point: ``traceaudit audit``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from traceaudit import __version__
from traceaudit.config import Settings
from traceaudit.constants import (
    CATEGORY_TITLES,
    Category,
    ExportFormat,
    StageProgress,
)
from traceaudit.logging_config import set_level, setup_logging
from traceaudit.report.builder import AuditReport
from traceaudit.resilience.errors import MalformedTraceError
from traceaudit.services.events import StageEvent

logger = logging.getLogger(__name__)

EXIT_UNREADABLE = 1
EXIT_MALFORMED = 2


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"traceaudit {__version__}")
        return

    if args.command == "audit":
        _run_audit(args)
    else:
        parser.print_help()


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected an integer, got {value!r}"
        ) from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="traceaudit",
        description=(
            "Audit a browser performance trace for "
            "runtime performance anomalies."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    audit = sub.add_parser(
        "audit",
        help="Audit a trace file",
    )
    audit.add_argument(
        "trace_path",
        type=str,
        help="Path to a JSON trace file",
    )
    audit.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in ExportFormat],
        default=ExportFormat.MARKDOWN.value,
        help="Report format (default: markdown)",
    )
    audit.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the report to this file (default: stdout)",
    )
    audit.add_argument(
        "--window-ms",
        type=_positive_int,
        default=None,
        help="Hotspot window in milliseconds (default: 500)",
    )
    audit.add_argument(
        "--categories",
        "-c",
        type=str,
        default=None,
        help=(
            "Comma-separated categories to run "
            "(default: all 13)"
        ),
    )
    audit.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print stage progress and debug logging",
    )

    return parser


def _parse_categories(raw: str | None) -> list[Category] | None:
    """Parse ``--categories``; exits on unknown names."""
    if not raw:
        return None
    selected: list[Category] = []
    for name in (s.strip() for s in raw.split(",")):
        if not name:
            continue
        try:
            selected.append(Category(name))
        except ValueError:
            print(
                f"Error: unknown category '{name}'. "
                f"Valid: {', '.join(CATEGORY_TITLES)}",
                file=sys.stderr,
            )
            sys.exit(EXIT_UNREADABLE)
    return selected


def _run_audit(args: argparse.Namespace) -> None:
    """Execute the audit command."""
    from traceaudit.services.audit_service import run_audit

    trace_path = Path(args.trace_path)
    if not trace_path.is_file():
        print(f"Error: {trace_path} does not exist", file=sys.stderr)
        sys.exit(EXIT_UNREADABLE)

    categories = _parse_categories(args.categories)

    overrides: dict[str, Any] = {}
    if args.window_ms is not None:
        overrides["hotspot_window_ms"] = args.window_ms
    settings = Settings(**overrides)

    setup_logging(settings.log_level)
    if args.verbose:
        set_level("DEBUG")

    def on_progress(event: StageEvent) -> None:
        if not args.verbose:
            return
        if event.status == StageProgress.RUNNING:
            print(f"  {event.label}...", file=sys.stderr)
        else:
            status = "ok" if event.status == StageProgress.DONE else "FAILED"
            print(
                f"  [{status}] {event.name} "
                f"({event.duration_ms:.0f}ms) {event.message}".rstrip(),
                file=sys.stderr,
            )

    try:
        result = asyncio.run(
            run_audit(
                trace_path,
                settings=settings,
                categories=categories,
                on_progress=on_progress,
            )
        )
    except MalformedTraceError as exc:
        print(f"Error: malformed trace: {exc}", file=sys.stderr)
        sys.exit(EXIT_MALFORMED)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read {trace_path}: {exc}", file=sys.stderr)
        sys.exit(EXIT_UNREADABLE)

    _write_output(result.report, trace_path.name, args.format, args.output)

    if args.verbose:
        flagged = len(result.report.flagged)
        print(
            f"\nDone! {flagged} categories flagged, "
            f"{len(result.hotspots)} hotspots "
            f"({result.total_duration_ms:.0f}ms)",
            file=sys.stderr,
        )


def _write_output(
    report: AuditReport,
    trace_name: str,
    fmt: str,
    output: str | None,
) -> None:
    """Render the report and write it to ``output`` or stdout."""
    from traceaudit.export import export_report

    content = export_report(report, trace_name, fmt)
    if output is None:
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
        return

    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(content, encoding="utf-8")
    logger.info("event=report_written path=%s format=%s", out_path, fmt)


if __name__ == "__main__":
    main()
