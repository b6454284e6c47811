import threading
import uuid
import structlog
from dataclasses import dataclass
from typing import Any, Optional

from comfyui_mock.exceptions import JobNotFoundError, OutputProductionError
from comfyui_mock.storage import OutputStorage, build_outputs

logger = structlog.get_logger()

# Output node ids reported for every queue entry.
QUEUE_OUTPUT_NODES = ["9"]

# Node ids reported as cached in the history messages.
CACHED_NODES = ["4", "7", "5", "6"]


class JobStatus:
    """Job status constants."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


@dataclass
class Job:
    """Represents a submitted prompt in the queue."""
    job_id: str
    sequence_number: int
    client_id: str
    payload: Optional[dict[str, Any]] = None
    status: str = JobStatus.PENDING
    result: Optional[dict] = None

    def as_queue_entry(self) -> list:
        """Return the [number, prompt_id, prompt, outputs] queue entry."""
        return [
            self.sequence_number,
            self.job_id,
            self.payload,
            list(QUEUE_OUTPUT_NODES),
        ]


class JobQueue:
    """In-memory prompt queue drained by a single worker.

    Every read and write of the job table and of the running marker happens
    under one lock. The simulated work runs outside the lock, between
    claim_next() and mark_completed().
    """

    def __init__(self, output_storage: Optional[OutputStorage] = None):
        """Initialize job queue.

        Args:
            output_storage: Writes the artifact of each completed job
        """
        self.output_storage = output_storage or OutputStorage()
        self._jobs: dict[str, Job] = {}
        self._running: Optional[Job] = None
        self._sequence = 0
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        logger.info("job_queue_initialized", source="queue")

    def submit(self, client_id: str, payload: Optional[dict[str, Any]]) -> str:
        """Add a new prompt to the queue.

        Args:
            client_id: Caller-supplied client token
            payload: Prompt document, stored as is

        Returns:
            Prompt ID
        """
        job_id = str(uuid.uuid4())

        with self._lock:
            self._sequence += 1
            job = Job(
                job_id=job_id,
                sequence_number=self._sequence,
                client_id=client_id,
                payload=payload,
            )
            self._jobs[job_id] = job

        self._wakeup.set()

        logger.info(
            "job_enqueued",
            job_id=job_id,
            number=job.sequence_number,
            client_id=client_id,
            source="queue",
        )

        return job_id

    def get_history(self, job_id: str) -> dict:
        """Return the history record of a prompt.

        Args:
            job_id: Prompt ID

        Returns:
            Empty dict while the prompt is not completed, otherwise a dict
            keyed by the prompt ID

        Raises:
            JobNotFoundError: If the prompt ID is unknown
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.status != JobStatus.COMPLETED:
                return {}
            payload, result = job.payload, job.result

        return {
            job_id: {
                "prompt": payload,
                "outputs": result,
                "status": {
                    "status_str": "success",
                    "completed": True,
                    "messages": [
                        ["execution_start", {"prompt_id": job_id}],
                        [
                            "execution_cached",
                            {"nodes": list(CACHED_NODES), "prompt_id": job_id},
                        ],
                    ],
                },
            }
        }

    def get_queue_snapshot(self) -> tuple[list, list]:
        """Return the running and pending queue entries.

        Returns:
            (running, pending) lists of queue entries; pending is ordered by
            submission number
        """
        with self._lock:
            running = [self._running.as_queue_entry()] if self._running else []
            pending = [
                job.as_queue_entry()
                for job in sorted(
                    self._jobs.values(), key=lambda j: j.sequence_number
                )
                if job.status == JobStatus.PENDING
            ]

        return running, pending

    def claim_next(self) -> Optional[Job]:
        """Mark the oldest pending prompt as processing.

        Returns:
            The claimed job, or None if a job is already processing or
            nothing is pending
        """
        with self._lock:
            if self._running is not None:
                return None

            pending = [
                job for job in self._jobs.values()
                if job.status == JobStatus.PENDING
            ]
            if not pending:
                return None

            job = min(pending, key=lambda j: j.sequence_number)
            job.status = JobStatus.PROCESSING
            self._running = job

        logger.info(
            "job_marked_processing",
            job_id=job.job_id,
            number=job.sequence_number,
            source="queue",
        )

        return job

    def mark_completed(self, job_id: str) -> None:
        """Complete the running prompt and write its output artifact.

        A failure to write the artifact is logged; the prompt is completed
        regardless.

        Args:
            job_id: ID of the running prompt
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            job.status = JobStatus.COMPLETED
            job.result = build_outputs(job_id)

            try:
                self.output_storage.save(job_id)
            except OutputProductionError as e:
                logger.error(
                    "output_production_failed",
                    job_id=job_id,
                    error=e.reason,
                    source="queue",
                )
            finally:
                if self._running is job:
                    self._running = None

        logger.info(
            "job_completed",
            job_id=job_id,
            source="queue",
        )

    def wait_for_work(self, timeout: Optional[float] = None) -> bool:
        """Block until a submission signals new work or the timeout expires.

        Returns:
            True if woken by a submission
        """
        woken = self._wakeup.wait(timeout)
        self._wakeup.clear()
        return woken

    def get_job(self, job_id: str) -> Optional[Job]:
        """Return a copy of a job, or None if unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            return Job(**vars(job))

    def counts(self) -> dict:
        """Return the number of jobs per status."""
        with self._lock:
            counts = {
                JobStatus.PENDING: 0,
                JobStatus.PROCESSING: 0,
                JobStatus.COMPLETED: 0,
            }
            for job in self._jobs.values():
                counts[job.status] += 1
        return counts
