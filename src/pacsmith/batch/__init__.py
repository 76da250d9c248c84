"""Batch orchestration over a package list."""

from pacsmith.batch.orchestrator import (
    FAILED_LIST,
    SKIPPED_LIST,
    BatchOrchestrator,
)

__all__ = ["BatchOrchestrator", "FAILED_LIST", "SKIPPED_LIST"]
