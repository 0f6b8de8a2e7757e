"""Progress reporting: a callback per stage transition.

Reporters run on the pipeline thread unless wrapped in ``QueuedReporter``,
which the generation service always does.
"""

from __future__ import annotations

import logging
import threading
from queue import Full, Queue
from typing import Protocol

from rich.console import Console

from contentgen.schemas.models import StageStatus

logger = logging.getLogger(__name__)

_STYLES = {
    StageStatus.PENDING: "dim",
    StageStatus.PROCESSING: "cyan",
    StageStatus.COMPLETED: "green",
    StageStatus.FAILED: "red",
    StageStatus.SKIPPED: "yellow",
}


class ProgressReporter(Protocol):
    def on_stage_update(
        self,
        session_id: str,
        stage_id: str,
        status: StageStatus,
        progress: int,
        aggregate: int,
    ) -> None: ...


class LoggingReporter:
    def on_stage_update(self, session_id, stage_id, status, progress, aggregate) -> None:
        logger.info(
            "[%s] %s -> %s (%d%%), overall %d%%",
            session_id, stage_id, status.value, progress, aggregate,
        )


class RichConsoleReporter:
    """One console line per transition; used by the CLI."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def on_stage_update(self, session_id, stage_id, status, progress, aggregate) -> None:
        style = _STYLES.get(status, "white")
        self.console.print(
            f"[bold]{aggregate:>3}%[/bold]  {stage_id:<26} [{style}]{status.value}[/{style}]"
        )


class CompositeReporter:
    """Fan out to several reporters; one failing does not stop the others."""

    def __init__(self, *reporters: ProgressReporter):
        self.reporters = list(reporters)

    def on_stage_update(self, session_id, stage_id, status, progress, aggregate) -> None:
        for reporter in self.reporters:
            try:
                reporter.on_stage_update(session_id, stage_id, status, progress, aggregate)
            except Exception:
                logger.exception("Progress reporter %r failed", reporter)


class QueuedReporter:
    """Deliver events from a daemon thread so a slow sink never stalls a pipeline.

    Events keep their order. When the queue is full new events are dropped
    with a warning. ``close`` delivers whatever is queued, then stops the thread.
    """

    _SENTINEL = object()

    def __init__(self, reporter: ProgressReporter, maxsize: int = 1000):
        self.reporter = reporter
        self._queue: Queue = Queue(maxsize=maxsize)
        self._closed = False
        self._thread = threading.Thread(target=self._drain, name="contentgen-progress", daemon=True)
        self._thread.start()

    def on_stage_update(self, session_id, stage_id, status, progress, aggregate) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait((session_id, stage_id, status, progress, aggregate))
        except Full:
            logger.warning("Progress queue full, dropping %s/%s %s", session_id, stage_id, status.value)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._SENTINEL:
                    return
                self.reporter.on_stage_update(*item)
            except Exception:
                logger.exception("Progress reporter %r failed", self.reporter)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        """Block until every queued event has been delivered."""
        self._queue.join()

    def close(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._SENTINEL)
        self._thread.join(timeout)
