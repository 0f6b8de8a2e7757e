"""Pipeline orchestrator: runs one session's stages in registry order.

Per stage:
  1. disabled by the request        -> skipped, 100%
  2. a dependency failed            -> optional: skipped; mandatory: session fails
  3. otherwise processing, call the gateway with completed upstream payloads
  4. success                        -> completed, 100%, payload kept
  5. ProviderError                  -> optional: failed, 0%, continue;
                                       mandatory: failed, session fails

Persistence and progress reporting are best effort: neither can change the
outcome of a run.
"""

from __future__ import annotations

import logging
import math
import threading
import uuid
from typing import Callable

from contentgen.errors import CANCELLED, PipelineFailure, ProviderError, StageFailure, StorageError
from contentgen.pipeline.artifact import assemble_artifact
from contentgen.pipeline.cost import estimate
from contentgen.pipeline.progress import ProgressReporter
from contentgen.pipeline.registry import stages as default_stages
from contentgen.pipeline.stages import StageContext, collect_inputs, run_stage
from contentgen.providers.base import ProviderGateway
from contentgen.schemas.models import (
    GenerationRequest,
    Session,
    SessionStatus,
    StageDescriptor,
    StageResult,
    StageStatus,
    utcnow,
)
from contentgen.sessions.store import SessionStore

logger = logging.getLogger(__name__)


def ephemeral_session_id() -> str:
    return f"ephemeral-{uuid.uuid4().hex[:16]}"


def aggregate_progress(session: Session, registry: tuple[StageDescriptor, ...]) -> int:
    """Weighted sum of stage progress; a failed stage counts as done."""
    total = 0
    for stage in registry:
        result = session.stages[stage.id]
        contribution = 100 if result.status == StageStatus.FAILED else result.progress
        total += stage.weight * contribution
    return min(100, math.floor(total / 100))


class PipelineOrchestrator:
    def __init__(
        self,
        gateway: ProviderGateway,
        store: SessionStore | None = None,
        reporter: ProgressReporter | None = None,
        registry: tuple[StageDescriptor, ...] | None = None,
        prices: dict[str, float] | None = None,
        on_change: Callable[[Session], None] | None = None,
    ):
        self.gateway = gateway
        self.store = store
        self.reporter = reporter
        self.registry = registry or default_stages()
        self.prices = prices
        self.on_change = on_change

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def create_session(self, request: GenerationRequest) -> Session:
        """Build a pending session with its cost estimate and try to persist it."""
        request = request.model_copy(deep=True)
        cost = estimate(request, self.prices, self.registry)
        session = Session(
            id="",
            request=request,
            stages={s.id: StageResult(stage_id=s.id) for s in self.registry},
            estimated_cost=cost.total,
            cost_items=cost.items,
        )
        if self.store is None:
            session.id = ephemeral_session_id()
            session.ephemeral = True
            return session
        try:
            session.id = self.store.create(session)
        except StorageError as e:
            session.id = ephemeral_session_id()
            session.ephemeral = True
            logger.warning("Session store unavailable (%s); continuing as %s", e, session.id)
        return session

    def run(
        self,
        session: Session,
        cancel_event: threading.Event | None = None,
        raise_on_failure: bool = False,
    ) -> Session:
        """Drive ``session`` to a terminal status and return it.

        With ``raise_on_failure`` a mandatory-stage failure also raises
        ``PipelineFailure`` after the session has been recorded.
        """
        if session.status.is_terminal:
            return session
        session.status = SessionStatus.RUNNING
        self._save(session)
        logger.info("Session %s started (%d stages)", session.id, len(self.registry))

        for stage in self.registry:
            if session.stage(stage.id).status != StageStatus.PENDING:
                continue
            failure = self._run_one(session, stage, cancel_event)
            if failure is not None:
                self._fail(session, failure)
                if raise_on_failure:
                    raise PipelineFailure(failure.stage_id, failure.message)
                return session

        session.artifact = assemble_artifact(session)
        session.status = SessionStatus.COMPLETED
        session.progress = max(session.progress, aggregate_progress(session, self.registry))
        session.touch()
        self._save(session)
        self._publish(session)
        logger.info("Session %s completed (progress %d%%)", session.id, session.progress)
        return session

    # ------------------------------------------------------------------
    # One stage
    # ------------------------------------------------------------------

    def _run_one(
        self,
        session: Session,
        stage: StageDescriptor,
        cancel_event: threading.Event | None,
    ) -> StageFailure | None:
        """Run a stage; return the failure that ends the session, if any."""
        request = session.request
        if not request.is_enabled(stage.id):
            self._transition(session, stage.id, StageStatus.SKIPPED, 100)
            return None

        failed_deps = sorted(
            d for d in stage.depends_on if session.stage(d).status == StageStatus.FAILED
        )
        if failed_deps:
            if stage.optional:
                logger.info("Skipping %s: dependency %s failed", stage.id, failed_deps[0])
                self._transition(
                    session, stage.id, StageStatus.SKIPPED, 100,
                    error=f"dependency {failed_deps[0]} failed",
                )
                return None
            message = f"dependency {failed_deps[0]} failed"
            self._transition(session, stage.id, StageStatus.SKIPPED, 0, error=message)
            upstream = session.stage(failed_deps[0])
            return StageFailure(failed_deps[0], upstream.error or message, bool(upstream.retryable))

        self._transition(session, stage.id, StageStatus.PROCESSING, stage.start_progress)
        ctx = StageContext(
            request=request,
            session_id=session.id,
            payloads=collect_inputs(stage, session),
            cancel_event=cancel_event,
        )
        try:
            if cancel_event is not None and cancel_event.is_set():
                raise ProviderError(CANCELLED, capability=stage.capability or stage.id)
            payload = run_stage(self.gateway, stage, ctx)
            if cancel_event is not None and cancel_event.is_set():
                raise ProviderError(CANCELLED, capability=stage.capability or stage.id)
        except ProviderError as e:
            return self._stage_failed(session, stage, e)
        except Exception as e:
            logger.exception("Unexpected error in stage %s", stage.id)
            err = ProviderError(f"{type(e).__name__}: {e}", capability=stage.capability or stage.id)
            return self._stage_failed(session, stage, err)

        self._transition(session, stage.id, StageStatus.COMPLETED, 100, payload=payload)
        return None

    def _stage_failed(
        self, session: Session, stage: StageDescriptor, error: ProviderError
    ) -> StageFailure | None:
        self._transition(
            session, stage.id, StageStatus.FAILED, 0,
            error=error.message, retryable=error.retryable,
        )
        if stage.optional:
            logger.warning("Optional stage %s failed, continuing: %s", stage.id, error)
            return None
        logger.error("Mandatory stage %s failed: %s", stage.id, error)
        return StageFailure(stage.id, error.message, error.retryable)

    def _fail(self, session: Session, failure: StageFailure) -> None:
        for result in session.stages.values():
            if result.status == StageStatus.PENDING:
                result.status = StageStatus.SKIPPED
                result.progress = 0
        session.status = SessionStatus.FAILED
        session.failed_stage = failure.stage_id
        session.error = failure.message
        session.touch()
        self._save(session)
        self._publish(session)
        logger.error("Session %s failed at %s: %s", session.id, failure.stage_id, failure.message)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _transition(
        self,
        session: Session,
        stage_id: str,
        status: StageStatus,
        progress: int,
        payload: dict | None = None,
        error: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        result = session.stage(stage_id)
        now = utcnow()
        if status == StageStatus.PROCESSING:
            result.started_at = now
        elif status.is_terminal:
            result.finished_at = now
        result.status = status
        result.progress = progress
        if payload is not None:
            result.payload = payload
        result.error = error
        result.retryable = retryable

        session.progress = max(session.progress, aggregate_progress(session, self.registry))
        session.touch()
        self._save(session)
        self._publish(session)
        self._report(session, stage_id, status, progress)

    def _save(self, session: Session) -> None:
        if self.store is None or session.ephemeral:
            return
        try:
            self.store.update(session)
        except StorageError as e:
            logger.warning("Could not persist session %s: %s", session.id, e)

    def _publish(self, session: Session) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(session.model_copy(deep=True))
        except Exception:
            logger.exception("Session change listener failed for %s", session.id)

    def _report(self, session: Session, stage_id: str, status: StageStatus, progress: int) -> None:
        if self.reporter is None:
            return
        try:
            self.reporter.on_stage_update(session.id, stage_id, status, progress, session.progress)
        except Exception:
            logger.exception("Progress reporter failed for %s/%s", session.id, stage_id)
