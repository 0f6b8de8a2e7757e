"""Pydantic schemas for requests, sessions, artifacts and provider payloads."""

from contentgen.schemas.models import (
    ContentType,
    CostEstimate,
    CostLineItem,
    GeneratedArtifact,
    GenerationRequest,
    Session,
    SessionSnapshot,
    SessionStatus,
    SessionSummary,
    StageDescriptor,
    StageResult,
    StageStatus,
    Submission,
)

__all__ = [
    "ContentType",
    "CostEstimate",
    "CostLineItem",
    "GeneratedArtifact",
    "GenerationRequest",
    "Session",
    "SessionSnapshot",
    "SessionStatus",
    "SessionSummary",
    "StageDescriptor",
    "StageResult",
    "StageStatus",
    "Submission",
]
