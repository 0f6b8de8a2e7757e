"""Generation service: submit, poll, fetch results, cancel.

Each submitted session runs on a worker thread with its own orchestrator
state; sessions share only the provider gateway. Pollers read deep-copied
snapshots published after every transition, never the live session.

At most ``max_snapshots`` snapshots are kept; the oldest finished ones are
dropped first and are then served from the session store. Running sessions
are never dropped.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import ValidationError

from contentgen.errors import InvalidRequest, NotReady, PipelineFailure, SessionNotFound, StorageError
from contentgen.pipeline.orchestrator import PipelineOrchestrator
from contentgen.pipeline.progress import ProgressReporter, QueuedReporter
from contentgen.providers.base import ProviderGateway
from contentgen.schemas.models import (
    CostEstimate,
    GeneratedArtifact,
    GenerationRequest,
    Session,
    SessionSnapshot,
    SessionStatus,
    SessionSummary,
    StageDescriptor,
    Submission,
)
from contentgen.sessions.store import SessionStore

logger = logging.getLogger(__name__)


def parse_request(request: GenerationRequest | dict[str, Any]) -> GenerationRequest:
    """Validate a request; any problem becomes InvalidRequest."""
    if isinstance(request, GenerationRequest):
        return request
    try:
        return GenerationRequest.model_validate(request)
    except ValidationError as e:
        raise InvalidRequest(str(e)) from e


class GenerationService:
    def __init__(
        self,
        gateway: ProviderGateway,
        store: SessionStore | None = None,
        max_workers: int = 4,
        reporter: ProgressReporter | None = None,
        registry: tuple[StageDescriptor, ...] | None = None,
        prices: dict[str, float] | None = None,
        max_snapshots: int = 200,
    ):
        self.store = store
        self.max_snapshots = max(1, max_snapshots)
        self._reporter = QueuedReporter(reporter) if reporter is not None else None
        self._orchestrator = PipelineOrchestrator(
            gateway,
            store=store,
            reporter=self._reporter,
            registry=registry,
            prices=prices,
            on_change=self._publish,
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="contentgen")
        self._lock = threading.Lock()
        self._snapshots: OrderedDict[str, Session] = OrderedDict()
        self._cancel: dict[str, threading.Event] = {}

    @property
    def orchestrator(self) -> PipelineOrchestrator:
        return self._orchestrator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, request: GenerationRequest | dict[str, Any]) -> Submission:
        """Create a session and start it in the background."""
        req = parse_request(request)
        session = self._orchestrator.create_session(req)
        event = threading.Event()
        with self._lock:
            self._cancel[session.id] = event
        self._publish(session.model_copy(deep=True))
        self._executor.submit(self._run, session, event)
        logger.info("Submitted session %s (estimated cost %.4f)", session.id, session.estimated_cost)
        return Submission(
            session_id=session.id,
            estimate=CostEstimate(items=session.cost_items, total=session.estimated_cost),
            ephemeral=session.ephemeral,
        )

    def run(
        self,
        request: GenerationRequest | dict[str, Any],
        cancel_event: threading.Event | None = None,
    ) -> Session:
        """Create and run a session on the calling thread."""
        req = parse_request(request)
        session = self._orchestrator.create_session(req)
        return self._orchestrator.run(session, cancel_event=cancel_event)

    def poll(self, session_id: str) -> SessionSnapshot:
        return SessionSnapshot.from_session(self._lookup(session_id))

    def result(self, session_id: str) -> GeneratedArtifact:
        session = self._lookup(session_id)
        if session.status == SessionStatus.FAILED:
            raise PipelineFailure(session.failed_stage or "", session.error or "failed")
        if session.status != SessionStatus.COMPLETED or session.artifact is None:
            raise NotReady(f"Session {session_id} is {session.status.value} ({session.progress}%)")
        return session.artifact

    def cancel(self, session_id: str) -> bool:
        """Ask a running session to stop. False if unknown or already finished."""
        with self._lock:
            event = self._cancel.get(session_id)
            snapshot = self._snapshots.get(session_id)
        if event is None or snapshot is None or snapshot.status.is_terminal:
            return False
        event.set()
        logger.info("Cancellation requested for session %s", session_id)
        return True

    def history(self, limit: int = 20) -> list[SessionSummary]:
        """Most recent sessions first, live snapshots merged over the store's records.

        A failing store is logged and the live sessions are still listed.
        """
        with self._lock:
            sessions = {s.id: s for s in self._snapshots.values()}
        if self.store is not None:
            try:
                stored = self.store.list_recent(limit)
            except StorageError as e:
                logger.warning("Session store listing failed: %s", e)
                stored = []
            for session in stored:
                sessions.setdefault(session.id, session)
        recent = sorted(sessions.values(), key=lambda s: s.created_at, reverse=True)
        return [SessionSummary.from_session(s) for s in recent[:limit]]

    def shutdown(self, wait: bool = True) -> None:
        if not wait:
            with self._lock:
                for event in self._cancel.values():
                    event.set()
        self._executor.shutdown(wait=wait)
        if self._reporter is not None:
            self._reporter.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, session: Session, event: threading.Event) -> None:
        try:
            self._orchestrator.run(session, cancel_event=event)
        except Exception as e:
            logger.exception("Session %s crashed", session.id)
            session.status = SessionStatus.FAILED
            session.error = f"{type(e).__name__}: {e}"
            session.touch()
            self._publish(session.model_copy(deep=True))
        finally:
            with self._lock:
                self._cancel.pop(session.id, None)

    def _publish(self, snapshot: Session) -> None:
        with self._lock:
            self._snapshots[snapshot.id] = snapshot
            self._snapshots.move_to_end(snapshot.id)
            self._evict_finished()

    def _evict_finished(self) -> None:
        excess = len(self._snapshots) - self.max_snapshots
        if excess <= 0:
            return
        finished = [sid for sid, s in self._snapshots.items() if s.status.is_terminal]
        for session_id in finished[:excess]:
            del self._snapshots[session_id]

    def _lookup(self, session_id: str) -> Session:
        with self._lock:
            snapshot = self._snapshots.get(session_id)
        if snapshot is not None:
            return snapshot
        if self.store is not None:
            try:
                stored = self.store.get(session_id)
            except StorageError as e:
                logger.warning("Session store lookup failed for %s: %s", session_id, e)
                stored = None
            if stored is not None:
                return stored
        raise SessionNotFound(session_id)
