# Public surface of the orchestrator package.
from ._types import PhaseStats, SyncSummary
from .facade import Orchestrator, run_sync

__all__ = ["Orchestrator", "run_sync", "PhaseStats", "SyncSummary"]
