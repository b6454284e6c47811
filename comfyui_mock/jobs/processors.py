import random
import time
import structlog
from typing import TYPE_CHECKING, Optional

from comfyui_mock.config import settings

if TYPE_CHECKING:
    from comfyui_mock.jobs.queue import Job

logger = structlog.get_logger()


def process_job(job: "Job", delay_range: Optional[tuple[float, float]] = None) -> float:
    """Simulate executing a prompt.

    Sleeps for a random duration drawn uniformly from the configured range.
    Runs synchronously in a thread pool via asyncio.to_thread(), so the event
    loop keeps serving requests meanwhile. There is no real computation and
    nothing here can fail.

    Args:
        job: Job being processed
        delay_range: (min, max) seconds. Uses settings if not provided.

    Returns:
        Simulated processing time in seconds
    """
    low, high = delay_range or settings.processing_delay_range
    processing_time = random.uniform(low, high)

    logger.info(
        "processing_job",
        job_id=job.job_id,
        number=job.sequence_number,
        processing_time_seconds=round(processing_time, 2),
        source="processor",
    )

    time.sleep(processing_time)

    return processing_time
