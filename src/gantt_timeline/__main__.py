from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from dataclasses import replace
from pathlib import Path

import yaml

from .parse_timeline import load_timeline
from .render_timeline import render_timeline
from .timeline_models import GRANULARITY_ORDER, TimelineData, ViewConfig
from .validation import TimelineValidationError, walk_wbs

logger = logging.getLogger("gantt_timeline")


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number '{value}'") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {value}")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gantt timeline renderer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("timeline", help="Path to timeline YAML")
    parser.add_argument("--out", default="output/timeline.svg", help="Output SVG path")
    parser.add_argument(
        "--pixels-per-day",
        type=_positive_float,
        help="Zoom factor; overrides the file's view.pixelsPerDay",
    )
    parser.add_argument(
        "--granularity",
        action="append",
        choices=GRANULARITY_ORDER,
        help="Header band/gridline granularity; repeat to show several (overrides view.granularities)",
    )
    parser.add_argument("--today", type=_parse_date, help="Date of the current-time line (YYYY-MM-DD)")
    parser.add_argument("--expand", metavar="ROW_ID", help="Render the WBS panel of this row, fully expanded")
    parser.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=True,
        help="Best-effort open the output file after rendering",
    )
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the output file after rendering",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _resolve_view(args: argparse.Namespace, file_view: ViewConfig | None) -> ViewConfig:
    view = file_view or ViewConfig()
    if args.pixels_per_day is not None:
        view = replace(view, pixels_per_day=args.pixels_per_day)
    if args.granularity:
        view = replace(view, granularities=frozenset(args.granularity))
    return view


def _expanded_ids(data: TimelineData, row_id: str | None) -> frozenset[str]:
    for row in data.rows:
        if row.id == row_id:
            return frozenset(node.id for node in walk_wbs(row.wbs) if node.has_sub_tasks)
    return frozenset()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    timeline_path = Path(args.timeline)

    try:
        data, file_view = load_timeline(str(timeline_path))
    except (yaml.YAMLError, TimelineValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: timeline file not found: {timeline_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading timeline: {exc}", file=sys.stderr)
        return 1

    view = _resolve_view(args, file_view)
    if args.expand is not None and args.expand not in data.row_ids():
        print(f"Error: unknown row '{args.expand}'", file=sys.stderr)
        return 2

    try:
        render_timeline(
            data,
            out_path=args.out,
            view=view,
            today=args.today,
            expanded_row_id=args.expand,
            wbs_expanded=_expanded_ids(data, args.expand),
        )
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1
    logger.info("Wrote %s", args.out)

    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except webbrowser.Error as exc:
            logger.debug("Could not open browser: %s", exc)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
