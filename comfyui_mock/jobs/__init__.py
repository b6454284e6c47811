"""Prompt queue and background worker."""

from .queue import JobQueue, Job, JobStatus
from .worker import start_worker
from .processors import process_job

__all__ = ["JobQueue", "Job", "JobStatus", "start_worker", "process_job"]
