"""
Tracking aggregation module.
Source adapters, fallback chains, timeline assembly and the deadline orchestrator.
"""

from parceltrack.tracking.adapters import (
    DocumentScrapeAdapter,
    SourceAdapter,
    StructuredApiAdapter,
    SyntheticAdapter,
)
from parceltrack.tracking.chain import build_chain, supports_realtime
from parceltrack.tracking.orchestrator import DeadlineOrchestrator, FallbackRun
from parceltrack.tracking.timeline import assemble
from parceltrack.tracking.vocabulary import classify

__all__ = [
    "SourceAdapter",
    "StructuredApiAdapter",
    "DocumentScrapeAdapter",
    "SyntheticAdapter",
    "build_chain",
    "supports_realtime",
    "DeadlineOrchestrator",
    "FallbackRun",
    "assemble",
    "classify",
]
