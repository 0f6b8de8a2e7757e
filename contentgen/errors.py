"""Error taxonomy for the generation pipeline.

Only ``InvalidRequest`` and ``PipelineFailure`` ever reach a caller of the
service. ``ProviderError`` is raised by gateway adapters and recorded at the
stage boundary, ``StorageError`` by session stores and only ever logged.
"""

from __future__ import annotations


class ContentGenError(Exception):
    """Base class for all pipeline errors."""


class InvalidRequest(ContentGenError):
    """Malformed or empty GenerationRequest; raised before any session exists."""


class ProviderError(ContentGenError):
    """A single external call failed.

    ``retryable`` is advisory: the orchestrator never retries, adapters may.
    """

    def __init__(self, message: str, *, retryable: bool = False, capability: str = ""):
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.capability = capability

    def __str__(self) -> str:
        if self.capability:
            return f"{self.capability}: {self.message}"
        return self.message


# ProviderError message for a session cancelled by its caller
CANCELLED = "cancelled"


class StageFailure(ContentGenError):
    """Record that a stage ended ``failed``."""

    def __init__(self, stage_id: str, message: str, retryable: bool = False):
        super().__init__(f"Stage '{stage_id}' failed: {message}")
        self.stage_id = stage_id
        self.message = message
        self.retryable = retryable


class StorageError(ContentGenError):
    """Session store unavailable or erroring."""


class PipelineFailure(ContentGenError):
    """Session-level terminal failure caused by one mandatory stage."""

    def __init__(self, stage_id: str, message: str):
        super().__init__(f"Pipeline failed at '{stage_id}': {message}")
        self.stage_id = stage_id
        self.message = message


class NotReady(ContentGenError):
    """Result requested for a session that is still running."""


class SessionNotFound(ContentGenError):
    """No live or stored session with the given id."""
