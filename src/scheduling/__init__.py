"""Scheduling module - periodic jobs and the master data orchestrator."""

from src.scheduling.scheduler import JobStatus, ScheduledJob, Scheduler
from src.scheduling.jobs import MasterDataOrchestrator

__all__ = [
    "JobStatus",
    "ScheduledJob",
    "Scheduler",
    "MasterDataOrchestrator",
]
