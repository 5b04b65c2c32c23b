"""Progress counter driven by the resolution and linking phases.

Purely observational. All mutation happens on the event-loop thread, so plain
integer updates are safe without locks.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Counts scheduled and finished units of work for one phase."""

    def __init__(self, label: str, quiet: bool = False):
        self.label = label
        self.quiet = quiet
        self.total = 0
        self.current = 0
        self.failed = False

    def add(self, count: int = 1) -> None:
        """Register newly discovered work."""
        if self.failed:
            return
        self.total += count

    def tick(self, detail: str = "") -> None:
        """Mark one unit of work as finished."""
        if self.failed:
            return
        self.current += 1
        logger.debug("%s %d/%d %s", self.label, self.current, self.total, detail)

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.current >= self.total

    def fail(self) -> None:
        """Freeze the counter; late finishers no longer report."""
        self.failed = True

    def finish(self) -> None:
        if self.quiet or self.failed:
            return
        logger.info("%s: %d/%d done", self.label, self.current, self.total)


@contextmanager
def track_progress(label: str, quiet: bool = False) -> Iterator[ProgressTracker]:
    """Yield a tracker and report its final state on exit."""
    tracker = ProgressTracker(label, quiet=quiet)
    try:
        yield tracker
    except BaseException:
        tracker.fail()
        raise
    finally:
        tracker.finish()
