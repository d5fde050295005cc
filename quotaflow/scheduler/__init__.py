"""Scheduled background jobs."""

from quotaflow.scheduler.jobs import RECONCILIATION_JOB_ID, scheduler, setup_scheduler

__all__ = ["RECONCILIATION_JOB_ID", "scheduler", "setup_scheduler"]
