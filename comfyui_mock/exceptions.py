"""Error types raised by the mock server."""


class ComfyMockError(Exception):
    """Base class for all mock server errors."""


class BadRequestError(ComfyMockError):
    """Submission body could not be parsed."""


class JobNotFoundError(ComfyMockError):
    """No job exists for the requested prompt id."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Prompt not found: {job_id}")
        self.job_id = job_id


class OutputProductionError(ComfyMockError):
    """Copying the output artifact for a completed job failed."""

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(f"Output production failed for {job_id}: {reason}")
        self.job_id = job_id
        self.reason = reason
