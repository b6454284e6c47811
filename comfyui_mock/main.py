"""Main entry point for ComfyUI Mock - FastAPI Server."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from comfyui_mock import __version__
from comfyui_mock.config import settings
from comfyui_mock.exceptions import BadRequestError, JobNotFoundError
from comfyui_mock.jobs import JobQueue, JobStatus, start_worker


# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(structlog.stdlib.logging, settings.log_level.upper())
    ),
)

logger = structlog.get_logger()


class PromptRequest(BaseModel):
    """Request body of POST /prompt."""
    client_id: Optional[str] = None
    prompt: Optional[dict[str, Any]] = None


class PromptResponse(BaseModel):
    """Response body of POST /prompt."""
    prompt_id: str


class QueueResponse(BaseModel):
    """Response body of GET /queue."""
    queue_running: list
    queue_pending: list


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    queue_running: int
    queue_pending: int


def get_queue(request: Request) -> JobQueue:
    """Return the job queue owned by the application."""
    return request.app.state.queue


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid request body"


async def _parse_prompt_request(request: Request) -> PromptRequest:
    """Parse a POST /prompt body.

    Raises:
        BadRequestError: If the body is not JSON or has the wrong shape
    """
    try:
        raw = await request.json()
    except ValueError as e:
        raise BadRequestError(f"invalid JSON body: {e}") from e

    if raw is None:
        return PromptRequest()

    try:
        return PromptRequest.model_validate(raw)
    except ValidationError as e:
        raise BadRequestError(_format_validation_error(e)) from e


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info(
        "comfyui_mock_starting",
        version=__version__,
        port=settings.port,
        output_dir=settings.output_dir,
    )

    worker_task = await start_worker(app.state.queue)

    yield

    worker_task.cancel()
    try:
        await worker_task
    except asyncio.CancelledError:
        pass

    logger.info("comfyui_mock_shutdown")


def create_app(queue: Optional[JobQueue] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        queue: Job queue served by the app. A new one is created if not provided.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="ComfyUI Mock",
        description="Simulated ComfyUI prompt queue for exercising API clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.queue = queue or JobQueue()

    _register_exception_handlers(app)
    _register_routes(app)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BadRequestError)
    async def bad_request_handler(request: Request, exc: BadRequestError):
        logger.warning("bad_request", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(JobNotFoundError)
    async def not_found_handler(request: Request, exc: JobNotFoundError):
        logger.info("prompt_not_found", prompt_id=exc.job_id)
        return JSONResponse(status_code=404, content={"error": "Prompt not found"})


def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "ComfyUI Mock",
            "version": __version__,
            "endpoints": {
                "submit_prompt": "POST /prompt",
                "history": "/history/{prompt_id}",
                "queue": "/queue",
                "health": "/health",
            },
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(queue: JobQueue = Depends(get_queue)):
        """Health check endpoint."""
        counts = queue.counts()
        return HealthResponse(
            status="healthy",
            version=__version__,
            queue_running=counts[JobStatus.PROCESSING],
            queue_pending=counts[JobStatus.PENDING],
        )

    @app.post("/prompt", response_model=PromptResponse)
    async def submit_prompt(
        request: Request, queue: JobQueue = Depends(get_queue)
    ):
        """Queue a prompt for simulated execution."""
        body = await _parse_prompt_request(request)
        prompt_id = queue.submit(body.client_id or "", body.prompt)
        return PromptResponse(prompt_id=prompt_id)

    @app.get("/history/{prompt_id}")
    async def get_history(prompt_id: str, queue: JobQueue = Depends(get_queue)):
        """Return the history of a prompt, or {} while it is not completed."""
        return queue.get_history(prompt_id)

    @app.get("/queue", response_model=QueueResponse)
    async def get_queue_state(queue: JobQueue = Depends(get_queue)):
        """Return the running and pending prompts."""
        running, pending = queue.get_queue_snapshot()
        return QueueResponse(queue_running=running, queue_pending=pending)


# Create FastAPI app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "comfyui_mock.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
