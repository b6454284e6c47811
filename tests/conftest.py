import time

import pytest
from fastapi.testclient import TestClient

from comfyui_mock.config import settings
from comfyui_mock.jobs import JobQueue
from comfyui_mock.main import create_app
from comfyui_mock.storage import OutputStorage


@pytest.fixture
def source_image(tmp_path):
    path = tmp_path / "resources" / "image.jpg"
    path.parent.mkdir()
    path.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9")
    return path


@pytest.fixture
def output_dir(tmp_path):
    # Not created up front: saving must create it
    return tmp_path / "outputs"


@pytest.fixture
def storage(source_image, output_dir):
    return OutputStorage(source_image=str(source_image), output_dir=str(output_dir))


@pytest.fixture
def queue(storage):
    return JobQueue(output_storage=storage)


@pytest.fixture
def fast_processing(monkeypatch):
    """Make the simulated work instantaneous and the worker responsive."""
    monkeypatch.setattr(settings, "processing_min_seconds", 0.0)
    monkeypatch.setattr(settings, "processing_max_seconds", 0.01)
    monkeypatch.setattr(settings, "job_poll_interval", 0.05)


@pytest.fixture
def client(queue, fast_processing):
    app = create_app(queue)
    with TestClient(app) as test_client:
        yield test_client


def _wait_until(predicate, timeout=5.0, interval=0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = predicate()
        if value:
            return value
        time.sleep(interval)
    raise AssertionError("condition not met before timeout")


@pytest.fixture
def wait_until():
    """Poll a predicate until it returns a truthy value or the timeout expires."""
    return _wait_until

