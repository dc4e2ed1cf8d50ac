"""
Tests for the HTTP surface.
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils

from gallery_tagger import __version__
from gallery_tagger.server import TaggingServer
from gallery_tagger.tagging_queue import TaggingQueue
from gallery_tagger.worker import TaggingWorker


@pytest_asyncio.fixture
async def service(engine, session_factory, fake_generator):
    queue = TaggingQueue()
    worker = TaggingWorker(queue, session_factory, generator=fake_generator())
    server = TaggingServer(queue, worker, engine)

    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        yield client, queue, worker

    await worker.stop()


@pytest.mark.asyncio
async def test_root_lists_endpoints(service):
    client, _, _ = service

    response = await client.get("/")
    body = await response.json()

    assert response.status == 200
    assert body["version"] == __version__
    assert "POST /api/tagging-jobs" in body["endpoints"]


@pytest.mark.asyncio
async def test_enqueue_accepts_job_without_processing(service):
    client, queue, _ = service

    response = await client.post("/api/tagging-jobs", json={"photo_id": 5, "file_path": "/photos/5.jpg"})
    body = await response.json()

    assert response.status == 202
    assert body == {"photo_id": 5, "queued": True, "queue_depth": 1}
    job = await queue.get()
    assert job.photo_id == 5
    assert job.absolute_file_path == "/photos/5.jpg"


@pytest.mark.asyncio
async def test_enqueue_blank_path_is_accepted_but_not_queued(service):
    client, queue, _ = service

    response = await client.post("/api/tagging-jobs", json={"photo_id": 5, "file_path": "  "})
    body = await response.json()

    assert response.status == 202
    assert body["queued"] is False
    assert queue.qsize() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"file_path": "/photos/1.jpg"},
        {"photo_id": 0, "file_path": "/photos/1.jpg"},
        {"photo_id": "abc", "file_path": "/photos/1.jpg"},
        {"photo_id": 1},
    ],
)
async def test_enqueue_rejects_invalid_body(service, payload):
    client, queue, _ = service

    response = await client.post("/api/tagging-jobs", json=payload)

    assert response.status == 400
    assert queue.qsize() == 0


@pytest.mark.asyncio
async def test_enqueue_rejects_non_json(service):
    client, _, _ = service

    response = await client.post("/api/tagging-jobs", data="photo_id=1")

    assert response.status == 400


@pytest.mark.asyncio
async def test_health_reflects_worker_state(service):
    client, _, worker = service

    response = await client.get("/health")
    body = await response.json()
    assert response.status == 503
    assert body["status"] == "unhealthy"
    assert body["metrics"]["database"] == "ok"
    assert body["metrics"]["worker"] == "stopped"

    worker.start()
    response = await client.get("/health")
    body = await response.json()
    assert response.status == 200
    assert body["status"] == "healthy"
    assert body["metrics"]["queue_depth"] == 0


@pytest.mark.asyncio
async def test_metrics(service):
    client, queue, _ = service
    queue.enqueue(1, "/photos/1.jpg")

    response = await client.get("/metrics")
    body = await response.json()

    assert response.status == 200
    assert body["progress"]["queue_depth"] == 1
    assert set(body["jobs"]) >= {"jobs_applied", "jobs_noop", "jobs_failed"}
    assert "model_calls_total" in body["performance"]
    assert "memory_percent" in body["system"]
