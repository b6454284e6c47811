import shutil
import structlog
from pathlib import Path
from typing import Optional

from comfyui_mock.config import settings
from comfyui_mock.exceptions import OutputProductionError

logger = structlog.get_logger()

# Node that "produces" the image in the simulated workflow.
OUTPUT_NODE_ID = "9"


def short_id(job_id: str) -> str:
    """Return the 8-character prefix used to name a job's artifacts."""
    return job_id[:8]


def build_outputs(job_id: str) -> dict:
    """Build the outputs document reported for a completed job.

    Args:
        job_id: ID of the completed job

    Returns:
        Outputs dict keyed by output node id
    """
    return {
        OUTPUT_NODE_ID: {
            "images": [
                {
                    "filename": f"{short_id(job_id)}.png",
                    "subfolder": "",
                    "type": "output",
                }
            ]
        }
    }


class OutputStorage:
    """Writes the image artifact of each completed job to the output directory."""

    def __init__(
        self,
        source_image: Optional[str] = None,
        output_dir: Optional[str] = None,
    ) -> None:
        """Initialize output storage.

        Args:
            source_image: Asset copied for every job. Uses settings if not provided.
            output_dir: Directory receiving the copies. Uses settings if not provided.
        """
        self.source_image = Path(source_image or settings.source_image)
        self.output_dir = Path(output_dir or settings.output_dir)

        logger.info(
            "output_storage_initialized",
            source_image=str(self.source_image),
            output_dir=str(self.output_dir),
            source="storage",
        )

    def output_path(self, job_id: str) -> Path:
        """Return the destination path of a job's artifact."""
        return self.output_dir / f"output_{short_id(job_id)}.jpg"

    def save(self, job_id: str) -> Path:
        """Copy the source asset to the job's output file.

        Args:
            job_id: ID of the completed job

        Returns:
            Path of the written file

        Raises:
            OutputProductionError: If the directory cannot be created, the
                source asset is missing, or the copy fails
        """
        dest = self.output_path(job_id)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputProductionError(
                job_id, f"cannot create output directory: {e}"
            ) from e

        try:
            source_exists = self.source_image.is_file()
        except OSError as e:
            raise OutputProductionError(
                job_id, f"cannot access source image: {e}"
            ) from e

        if not source_exists:
            raise OutputProductionError(
                job_id, f"source image not found: {self.source_image}"
            )

        try:
            shutil.copyfile(self.source_image, dest)
        except OSError as e:
            raise OutputProductionError(job_id, f"copy failed: {e}") from e

        logger.info(
            "output_saved",
            job_id=job_id,
            path=str(dest),
            source="storage",
        )

        return dest
