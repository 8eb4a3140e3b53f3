from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Literal, Optional

from .date_grid import round_days
from .store import TimelineStore
from .timeline_models import DragMode, DragSession, ViewConfig
from .validation import TimelineValidationError

logger = logging.getLogger(__name__)

DragState = Literal["idle", "dragging"]
DragOutcome = Literal["released", "cancelled"]
Candidate = tuple[dt.date, Optional[dt.date]]
CommitFn = Callable[[str, dt.date, Optional[dt.date]], bool]

ONE_DAY = dt.timedelta(days=1)


def candidate_dates(session: DragSession, pointer_x: float, pixels_per_day: float) -> Candidate:
    """
    New (date, end_date) for a pointer at pointer_x.

    The pixel delta is converted to fractional days and only rounded to a
    whole day here, so a move shifts both ends of a range by the same
    number of days. A resized edge never reaches the opposite edge; it
    stops one day short of it. A zero shift returns the origin dates as-is.
    """

    shift = dt.timedelta(days=round_days((pointer_x - session.pointer_origin_x) / pixels_per_day))
    start, end = session.origin_date, session.origin_end_date

    if not shift:
        return start, end
    if session.mode == "move" or end is None:
        return start + shift, (end + shift if end is not None else None)

    if session.mode == "resize_start":
        new_start = start + shift
        if new_start >= end:
            new_start = end - ONE_DAY
        return new_start, end

    new_end = end + shift
    if new_end <= start:
        new_end = start + ONE_DAY
    return start, new_end


class DragEngine:
    """
    Pointer gesture state machine: idle -> dragging -> idle.

    Pointer x values are content coordinates (callers add their horizontal
    scroll offset). With live=True every move is committed to the store
    straight away; with live=False moves only update `preview` and the
    last candidate is committed on release.
    """

    def __init__(
        self,
        store: TimelineStore,
        view: ViewConfig,
        live: bool = True,
        commit: CommitFn | None = None,
    ) -> None:
        self.store = store
        self.view = view
        self.live = live
        self._commit = commit or store.commit_item_dates
        self.session: DragSession | None = None
        self.preview: Candidate | None = None
        self.last_outcome: DragOutcome | None = None

    @property
    def state(self) -> DragState:
        return "dragging" if self.session is not None else "idle"

    def press(self, item_id: str, pointer_x: float, mode: DragMode = "move") -> bool:
        """Start a gesture on item_id; ignored while another gesture is active."""
        if self.session is not None:
            logger.debug("Ignoring press on %r; already dragging %r", item_id, self.session.target_item_id)
            return False
        item = self.store.get_item(item_id)
        if item is None:
            return False
        if not item.is_range:
            mode = "move"  # points have no edges to resize
        self.session = DragSession(
            active=True,
            target_item_id=item_id,
            pointer_origin_x=pointer_x,
            origin_date=item.date,
            origin_end_date=item.end_date if item.is_range else None,
            mode=mode,
        )
        self.preview = None
        logger.debug("Drag %s started on %r at x=%s", mode, item_id, pointer_x)
        return True

    def move(self, pointer_x: float) -> Candidate | None:
        session = self.session
        if session is None:
            return None
        if not self._target_matches(session):
            self._finish("cancelled")
            return None
        candidate = candidate_dates(session, pointer_x, self.view.pixels_per_day)
        self.preview = candidate
        if self.live and not self._try_commit(session, candidate):
            self._finish("cancelled")
            return None
        return candidate

    def release(self) -> Candidate | None:
        """End the gesture; the last computed position stands."""
        session = self.session
        if session is None:
            return None
        candidate = self.preview
        if not self.live and candidate is not None:
            if not self._target_matches(session) or not self._try_commit(session, candidate):
                self._finish("cancelled")
                return None
        self._finish("released")
        return candidate

    def cancel(self) -> None:
        """Abort the gesture and put the item back where it was pressed."""
        session = self.session
        if session is None:
            return
        if self.live and self._target_matches(session):
            self._try_commit(session, (session.origin_date, session.origin_end_date))
        self._finish("cancelled")

    def _target_matches(self, session: DragSession) -> bool:
        # The store may be replaced mid-gesture; the item must still exist with the same shape.
        item = self.store.get_item(session.target_item_id)
        if item is None:
            logger.debug("Drag target %r vanished; ending session", session.target_item_id)
            return False
        if item.is_range != (session.origin_end_date is not None):
            logger.debug("Drag target %r changed kind; ending session", session.target_item_id)
            return False
        return True

    def _try_commit(self, session: DragSession, candidate: Candidate) -> bool:
        try:
            return self._commit(session.target_item_id, *candidate)
        except TimelineValidationError as exc:
            logger.warning("Drag commit for %r rejected: %s", session.target_item_id, exc)
            return False

    def _finish(self, outcome: DragOutcome) -> None:
        self.session = None
        self.preview = None
        self.last_outcome = outcome
