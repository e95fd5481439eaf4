"""Sync workflow: options, task runner, scheduler, reconciliation and processing."""

from .options import SyncOptions
from .runner import TaskRunner
from .scheduler import SyncScheduler, SchedulerState, SyncProgress
from .reconciler import Reconciler, ReconcilePlan
from .engine import SyncEngine, BatchResult

__all__ = [
    "SyncOptions",
    "TaskRunner",
    "SyncScheduler",
    "SchedulerState",
    "SyncProgress",
    "Reconciler",
    "ReconcilePlan",
    "SyncEngine",
    "BatchResult",
]
