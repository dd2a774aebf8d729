"""HTTP surface tests with FastAPI's TestClient and in-memory services."""

import json

import pytest
from fastapi.testclient import TestClient

from comic_video.auth.supabase_auth import current_user_id
from comic_video.config import Settings
from comic_video.jobs.in_process_queue import InProcessQueue
from comic_video.jobs.models import MaterialRecord, ProjectRecord
from comic_video.main import create_app
from comic_video.narrative.pipeline import NarrativePipeline
from comic_video.render.engine import RenderEngine
from comic_video.services import Services

from conftest import (
    FakeImageGenerator,
    FakeSpeechSynthesizer,
    MemoryMaterialRepository,
    MemoryProjectRepository,
    MemoryRenderRepository,
    ScriptedTextGenerator,
)

TIMELINE = {"tracks": [{"type": "video", "clips": [{"material_id": "m1", "start": 0, "end": 2}]}]}


@pytest.fixture
def services(status_store, artifacts, compositor, scratch):
    settings = Settings(status_backend="memory", _env_file=None)
    render_queue = InProcessQueue(2, name="render", enqueue_timeout=0)
    narrative_queue = InProcessQueue(2, name="narrative", enqueue_timeout=0)

    projects = MemoryProjectRepository()
    projects.add(ProjectRecord(id="p1", user_id="u1", name="Demo", config=json.dumps(TIMELINE)))
    materials = MemoryMaterialRepository()
    materials.add(MaterialRecord(id="m1", user_id="u1", file_name="a.mp4", file_path="u1/a.mp4"))
    artifacts.objects["u1/a.mp4"] = b"\x00video"

    engine = RenderEngine(
        renders=MemoryRenderRepository(),
        projects=projects,
        materials=materials,
        artifacts=artifacts,
        compositor=compositor,
        scratch=scratch,
        queue=render_queue,
    )
    narrative = NarrativePipeline(
        status_store=status_store,
        queue=narrative_queue,
        text_gen=ScriptedTextGenerator(['["one"]']),
        image_gen=FakeImageGenerator(),
        speech=FakeSpeechSynthesizer(),
        compositor=compositor,
        artifacts=artifacts,
        scratch=scratch,
        sleep=lambda s: None,
    )
    return Services(
        settings=settings,
        status_store=status_store,
        render_queue=render_queue,
        narrative_queue=narrative_queue,
        render_engine=engine,
        narrative=narrative,
        scratch=scratch,
    )


@pytest.fixture
def client(services):
    """Client without lifespan: workers stay stopped and tasks stay queued."""
    app = create_app(services=services)
    app.dependency_overrides[current_user_id] = lambda: "u1"
    return TestClient(app)


def test_health_reports_queues(client):
    for path in ("/health", "/api/v1/health"):
        response = client.get(path)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["queues"]["render"] == {"depth": 0, "capacity": 2, "workers": 0}


def test_novel_to_video_returns_pending_task(client):
    response = client.post("/api/v1/ai/novel-to-video", json={"novel": "Once upon a time"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "pending"

    task = client.get(f"/api/v1/tasks/{body['task_id']}").json()
    assert task["status"] == "pending"
    assert task["type"] == "ai-video"
    assert task["progress"] == 0


@pytest.mark.parametrize("payload", [{}, {"novel": ""}, {"novel": "   "}])
def test_novel_to_video_requires_text(client, payload):
    assert client.post("/api/v1/ai/novel-to-video", json=payload).status_code == 400


def test_full_queue_returns_503_and_records_failure(client, services):
    for _ in range(2):
        assert client.post("/api/v1/ai/novel-to-video", json={"novel": "x"}).status_code == 200
    response = client.post("/api/v1/ai/novel-to-video", json={"novel": "x"})
    assert response.status_code == 503
    assert services.narrative_queue.depth() == 2


def test_generate_novel_creates_text_task(client):
    response = client.post(
        "/api/v1/ai/generate-novel", json={"novel_prompt": "a fox", "title": "Lantern"}
    )
    assert response.status_code == 200
    task = client.get(f"/api/v1/tasks/{response.json()['task_id']}/status").json()
    assert task["type"] == "ai-text"
    assert task["params"] == {"novel": "a fox", "title": "Lantern"}


def test_unknown_task_is_404(client):
    assert client.get("/api/v1/tasks/does-not-exist").status_code == 404


def test_completed_task_exposes_result(client, services):
    task_id = services.narrative.submit("Once")
    services.narrative.dispatch(services.narrative_queue._queue.get_nowait())
    body = client.get(f"/api/v1/tasks/{task_id}").json()
    assert body["status"] == "completed"
    assert body["result"]["panels"] == ["one"]
    assert body["result"]["url"].endswith(f"narratives/{task_id}/video.mp4")


def test_render_lifecycle_over_http(client, services):
    response = client.post("/api/v1/renders", json={"project_id": "p1", "name": "Cut"})
    assert response.status_code == 200
    render_id = response.json()["task_id"]
    assert response.json()["id"] == render_id

    status = client.get(f"/api/v1/renders/{render_id}/status").json()
    assert status == {"id": render_id, "status": "pending", "progress": 0, "error": None}
    assert client.get(f"/api/v1/renders/{render_id}/download").status_code == 409

    services.render_engine.handle(services.render_queue._queue.get_nowait())

    render = client.get(f"/api/v1/renders/{render_id}").json()
    assert render["status"] == "completed"
    assert render["output_path"] == f"u1/{render_id}.mp4"

    download = client.get(f"/api/v1/renders/{render_id}/download").json()
    assert download["url"].startswith(f"https://artifacts.test/u1/{render_id}.mp4")

    listing = client.get("/api/v1/renders", params={"status": "completed"}).json()
    assert listing["total"] == 1
    assert listing["renders"][0]["id"] == render_id

    assert client.delete(f"/api/v1/renders/{render_id}").status_code == 204
    assert client.get(f"/api/v1/renders/{render_id}").status_code == 404


def test_render_for_foreign_project_is_403(client, services):
    services.render_engine._projects.add(ProjectRecord(id="p2", user_id="u2", config=TIMELINE))
    response = client.post("/api/v1/renders", json={"project_id": "p2", "name": "Cut"})
    assert response.status_code == 403


def test_render_for_unknown_project_is_404(client):
    response = client.post("/api/v1/renders", json={"project_id": "nope", "name": "Cut"})
    assert response.status_code == 404


def test_render_list_rejects_bad_status(client):
    assert client.get("/api/v1/renders", params={"status": "exploded"}).status_code == 400


def test_render_routes_require_bearer_token(services):
    client = TestClient(create_app(services=services))
    assert client.get("/api/v1/renders").status_code == 401


@pytest.mark.parametrize("payload", [
    {"name": "Cut"},
    {"project_id": "p1"},
    {"project_id": "p1", "name": "Cut", "quality": "ultra"},
])
def test_invalid_render_request_is_400(client, payload):
    response = client.post("/api/v1/renders", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"]


def test_non_json_body_is_400(client):
    response = client.post(
        "/api/v1/ai/novel-to-video",
        content="just some text",
        headers={"Content-Type": "text/plain"},
    )
    assert response.status_code == 400


def test_novel_to_all_queues_titled_video_task(client, services):
    response = client.post(
        "/api/v1/ai/novel-to-all", json={"novel_prompt": "a fox", "title": "Lantern"}
    )
    assert response.status_code == 200
    task = client.get(f"/api/v1/tasks/{response.json()['task_id']}").json()
    assert task["type"] == "ai-video"
    assert task["params"] == {"novel": "a fox", "title": "Lantern"}
    assert services.narrative_queue.depth() == 1


def test_novel_to_all_requires_prompt(client):
    assert client.post("/api/v1/ai/novel-to-all", json={"title": "x"}).status_code == 400
