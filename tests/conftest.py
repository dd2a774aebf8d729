"""Shared fakes for the external collaborators: database, object storage,
queue, compositor and generative backends. Nothing here touches the network,
ffmpeg, Redis or Supabase."""

import io
import os
from typing import Dict, List, Optional

import pytest
from PIL import Image

from comic_video.db.repositories import MaterialRepository, ProjectRepository, RenderRepository
from comic_video.errors import BackendError, CompositorError, QueueFullError
from comic_video.jobs.dispatcher import TaskQueue
from comic_video.jobs.models import MaterialRecord, ProjectRecord, RenderRecord, TaskRecord
from comic_video.models.base import ImageGenerator, SpeechSynthesizer, TextGenerator
from comic_video.storage.artifact_store import ArtifactStore
from comic_video.storage.scratch import ScratchSpace
from comic_video.storage.status_store import MemoryStatusStore


def png_bytes(size=(64, 48), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class MemoryRenderRepository(RenderRepository):
    def __init__(self):
        self.items: Dict[str, RenderRecord] = {}
        # (status, progress) after every write, for ordering assertions
        self.history: List[tuple] = []

    def _write(self, render: RenderRecord) -> None:
        self.items[render.id] = render.model_copy(deep=True)
        self.history.append((render.status.value, render.progress))

    def create(self, render):
        self._write(render)

    def get(self, render_id):
        render = self.items.get(render_id)
        return render.model_copy(deep=True) if render else None

    def update(self, render):
        self._write(render)

    def delete(self, render_id):
        self.items.pop(render_id, None)

    def list(self, user_id, page, page_size, project_id=None, status=None):
        rows = [
            r for r in self.items.values()
            if r.user_id == user_id
            and (project_id is None or r.project_id == project_id)
            and (status is None or r.status.value == status)
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        offset = (page - 1) * page_size
        return rows[offset:offset + page_size], len(rows)


class MemoryProjectRepository(ProjectRepository):
    def __init__(self):
        self.items: Dict[str, ProjectRecord] = {}

    def add(self, project: ProjectRecord) -> ProjectRecord:
        self.items[project.id] = project
        return project

    def get(self, project_id):
        return self.items.get(project_id)


class MemoryMaterialRepository(MaterialRepository):
    def __init__(self):
        self.items: Dict[str, MaterialRecord] = {}

    def add(self, material: MaterialRecord) -> MaterialRecord:
        self.items[material.id] = material
        return material

    def get(self, material_id):
        return self.items.get(material_id)


class MemoryArtifactStore(ArtifactStore):
    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.fail_uploads = False
        self.deleted: List[str] = []

    def upload(self, key, data, content_type):
        if self.fail_uploads:
            raise OSError("storage unavailable")
        self.objects[key] = data
        self.content_types[key] = content_type
        return f"https://artifacts.test/{key}"

    def download(self, key):
        if key not in self.objects:
            raise FileNotFoundError(key)
        return self.objects[key]

    def delete(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)

    def signed_url(self, key, expires_in):
        return f"https://artifacts.test/{key}?expires_in={expires_in}"


class RecordingQueue(TaskQueue):
    """Collects enqueued tasks instead of running them."""

    def __init__(self, full: bool = False):
        self.tasks: List[TaskRecord] = []
        self.full = full

    def enqueue(self, task, timeout=None):
        if self.full:
            raise QueueFullError("tasks queue is full (1 tasks buffered)")
        self.tasks.append(task)

    def start(self, worker_count, handler):
        pass

    def stop(self):
        pass

    def depth(self):
        return len(self.tasks)


class FakeCompositor:
    """Stands in for MediaCompositor: records calls and writes output files."""

    def __init__(self, duration: Optional[float] = 12.5):
        self.runs: List[List[str]] = []
        self.slideshows: List[dict] = []
        self.duration = duration
        self.fail_run = False
        self.fail_slideshow = False

    def run(self, args, cwd=None):
        self.runs.append(list(args))
        if self.fail_run:
            raise CompositorError(
                "ffmpeg exited with status 1: Invalid data found", returncode=1,
                output="Invalid data found",
            )
        with open(args[-1], "wb") as f:
            f.write(b"\x00rendered-video")
        return ""

    def media_duration(self, path):
        if self.duration is None:
            raise CompositorError("ffprobe returned no duration: ''")
        return self.duration

    def compose_slideshow(self, image_paths, audio_path, output_path, seconds_per_image, workdir):
        self.slideshows.append({
            "images": list(image_paths),
            "audio": audio_path,
            "seconds_per_image": seconds_per_image,
            "frames_exist": all(os.path.exists(p) for p in image_paths),
        })
        if self.fail_slideshow:
            raise CompositorError("ffmpeg exited with status 1: concat failed", returncode=1)
        with open(output_path, "wb") as f:
            f.write(b"\x00slideshow")


class ScriptedTextGenerator(TextGenerator):
    """Replies from a list in order; Exception entries are raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def _next(self, request):
        self.calls.append(request)
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def chat(self, messages, **opts):
        return self._next(messages)

    def generate(self, prompt, **opts):
        return self._next(prompt)


class FakeImageGenerator(ImageGenerator):
    def __init__(self, fail_on: Optional[int] = None):
        self.prompts: List[str] = []
        self.fail_on = fail_on

    def txt2img(self, prompt, **opts):
        self.prompts.append(prompt)
        if self.fail_on is not None and len(self.prompts) == self.fail_on:
            raise BackendError("Stable Diffusion returned status 500")
        return png_bytes()


class FakeSpeechSynthesizer(SpeechSynthesizer):
    def __init__(self, fail: bool = False):
        self.texts: List[str] = []
        self.fail = fail

    def synthesize(self, text, **opts):
        self.texts.append(text)
        if self.fail:
            raise BackendError("TTS returned status 503")
        return b"RIFF\x00\x00\x00\x00WAVE"


@pytest.fixture
def scratch(tmp_path):
    return ScratchSpace(str(tmp_path / "scratch"))


@pytest.fixture
def artifacts():
    return MemoryArtifactStore()


@pytest.fixture
def compositor():
    return FakeCompositor()


@pytest.fixture
def status_store():
    return MemoryStatusStore()
