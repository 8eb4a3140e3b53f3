"""
Boundary to the two external services: image-to-timeline parsing and WBS generation.

Both calls are awaited on the event loop and never cancelled. Success replaces
or merges into the store; failure keeps the previous state and, for imports
and crashed generations, sets the store's user-visible error.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Protocol, Sequence, Union

from .parse_timeline import parse_breakdown, parse_timeline_data
from .store import TimelineStore
from .validation import validate_wbs_ids
from .timeline_models import TimelineData, TimelineItem, WBSItem

logger = logging.getLogger(__name__)

IMPORT_ERROR_MESSAGE = "Failed to analyze image. Ensure the image is a clear Gantt chart and try again."
BREAKDOWN_ERROR_MESSAGE = "Failed to generate WBS"


class TimelineImageParser(Protocol):
    async def parse_image_to_timeline(self, image_bytes: bytes) -> Union[TimelineData, Mapping[str, Any]]:
        ...


class BreakdownGenerator(Protocol):
    async def generate_breakdown(
        self, phase_label: str, context_items: Sequence[TimelineItem]
    ) -> Sequence[Union[WBSItem, Mapping[str, Any]]]:
        ...


def describe_context_items(items: Iterable[TimelineItem]) -> str:
    """One-line summary of a row's items for a breakdown prompt, e.g. 'B (2025-03-01 to 2025-04-16)'."""
    parts = []
    for item in items:
        span = item.date.isoformat()
        if item.end_date is not None:
            span += f" to {item.end_date.isoformat()}"
        parts.append(f"{item.label} ({span})")
    return ", ".join(parts)


async def import_timeline(store: TimelineStore, parser: TimelineImageParser, image_bytes: bytes) -> bool:
    """
    Replace the store's timeline with one parsed from an image.

    The result is validated in full before it is applied; any failure
    leaves the current timeline untouched and sets store.error. Concurrent
    imports are not cancelled, the last one to resolve wins.
    """

    store.clear_error()
    store.pending_imports += 1
    try:
        raw = await parser.parse_image_to_timeline(image_bytes)
        data = raw if isinstance(raw, TimelineData) else parse_timeline_data(raw)
        store.replace_data(data)
    except Exception:
        logger.exception("Timeline import failed")
        store.set_error(IMPORT_ERROR_MESSAGE)
        return False
    finally:
        store.pending_imports -= 1
    logger.info("Imported timeline %r with %d rows, %d items", data.title, len(data.rows), len(data.items))
    return True


async def generate_row_breakdown(
    store: TimelineStore, generator: BreakdownGenerator, row_id: str
) -> tuple[WBSItem, ...]:
    """
    Ask the generator for a breakdown of one row and merge it into the store.

    An empty or failed result keeps the row's current WBS. The merge
    happens on completion even if the row's panel has been closed since.
    """

    row = store.get_row(row_id)
    if row is None:
        logger.warning("Cannot generate breakdown for unknown row %r", row_id)
        return ()

    store.generating.add(row_id)
    try:
        raw_nodes = await generator.generate_breakdown(row.label, store.items_for_row(row_id))
        nodes = parse_breakdown(list(raw_nodes) if raw_nodes else None)
        validate_wbs_ids(row_id, nodes)
    except Exception:
        logger.exception("Breakdown generation failed for row %r", row_id)
        store.set_error(BREAKDOWN_ERROR_MESSAGE)
        nodes = ()
    finally:
        store.generating.discard(row_id)

    if not nodes:
        return ()
    if not store.merge_breakdown(row_id, nodes):
        return ()
    logger.info("Merged %d WBS nodes into row %r", len(nodes), row_id)
    return nodes
