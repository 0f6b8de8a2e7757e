"""Stage registry, cost estimation, orchestration and the generation service."""

from contentgen.pipeline.cost import estimate
from contentgen.pipeline.orchestrator import PipelineOrchestrator
from contentgen.pipeline.progress import (
    CompositeReporter,
    LoggingReporter,
    ProgressReporter,
    QueuedReporter,
    RichConsoleReporter,
)
from contentgen.pipeline.registry import build_registry, get_stage, stage_ids, stages
from contentgen.pipeline.service import GenerationService

__all__ = [
    "CompositeReporter",
    "GenerationService",
    "LoggingReporter",
    "PipelineOrchestrator",
    "ProgressReporter",
    "QueuedReporter",
    "RichConsoleReporter",
    "build_registry",
    "estimate",
    "get_stage",
    "stage_ids",
    "stages",
]
