import asyncio
import structlog

from comfyui_mock.config import settings
from comfyui_mock.jobs.queue import JobQueue
from comfyui_mock.jobs.processors import process_job

logger = structlog.get_logger()


async def start_worker(queue: JobQueue) -> asyncio.Task:
    """Start the worker task for processing prompts.

    This creates a background asyncio task that drains the job queue one
    prompt at a time. The simulated work runs in a thread pool, keeping the
    main event loop responsive.

    Args:
        queue: JobQueue instance to pull jobs from

    Returns:
        asyncio.Task that can be cancelled during shutdown

    Example:
        worker_task = await start_worker(queue)
        # ... application runs ...
        worker_task.cancel()  # Stop worker during shutdown
    """
    task = asyncio.create_task(_worker_loop(queue))
    logger.info("worker_started", source="worker")
    return task


async def _worker_loop(queue: JobQueue) -> None:
    """Internal worker loop that processes prompts.

    This loop:
    1. Claims the oldest pending prompt, if no prompt is running
    2. Runs the simulated work in a thread pool (via asyncio.to_thread)
    3. Completes the prompt and immediately tries to claim the next one
    4. When nothing is pending, waits for a submission to wake it up

    Args:
        queue: JobQueue instance to pull jobs from

    Note:
        This runs indefinitely until the task is cancelled.
    """
    logger.info(
        "worker_loop_started",
        poll_interval=settings.job_poll_interval,
        delay_range=settings.processing_delay_range,
        source="worker",
    )

    while True:
        try:
            job = queue.claim_next()

            if job:
                logger.info(
                    "worker_processing_job",
                    job_id=job.job_id,
                    number=job.sequence_number,
                    source="worker",
                )

                try:
                    processing_time = await asyncio.to_thread(process_job, job)
                except Exception as job_error:
                    # No failure state: a prompt always runs to completion
                    processing_time = None
                    logger.error(
                        "worker_job_error",
                        job_id=job.job_id,
                        error=f"{type(job_error).__name__}: {job_error}",
                        source="worker",
                        exc_info=True,
                    )

                await asyncio.to_thread(queue.mark_completed, job.job_id)

                logger.info(
                    "worker_job_completed",
                    job_id=job.job_id,
                    processing_time_seconds=processing_time,
                    source="worker",
                )

            else:
                # Nothing to claim, wait for the next submission
                await asyncio.to_thread(
                    queue.wait_for_work, settings.job_poll_interval
                )

        except asyncio.CancelledError:
            # Worker is being shut down
            logger.info("worker_shutting_down", source="worker")
            raise

        except Exception as loop_error:
            # Unexpected error in worker loop itself
            logger.error(
                "worker_loop_error",
                error=str(loop_error),
                error_type=type(loop_error).__name__,
                source="worker",
                exc_info=True,
            )

            # Wait a bit before continuing to avoid tight error loops
            await asyncio.sleep(5)
