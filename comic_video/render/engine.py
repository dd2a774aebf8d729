"""Render engine: project timeline -> compositor run -> uploaded video.

``create_render`` runs on the request path; ``process`` runs on a render
worker and is the only writer of a render's status while it executes.

Progress checkpoints:
    0   processing started
    30  materials downloaded
    50  compositor invocation built
    80  compositor finished
    100 output uploaded
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from comic_video.db.repositories import MaterialRepository, ProjectRepository, RenderRepository
from comic_video.errors import (
    CompositorError,
    NotFoundError,
    PermissionDeniedError,
    QueueFullError,
    ResolutionError,
    StageFailed,
    TaskStateError,
)
from comic_video.io.compositor import MediaCompositor
from comic_video.jobs.dispatcher import TaskQueue
from comic_video.jobs.models import (
    RenderFormat,
    RenderQuality,
    RenderRecord,
    TaskRecord,
    TaskStatus,
)
from comic_video.jobs.stages import stage
from comic_video.processing.filter_graph import build_render_invocation
from comic_video.render.timeline import ProjectTimeline
from comic_video.storage.artifact_store import ArtifactStore
from comic_video.storage.scratch import ScratchSpace

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class CreateRenderRequest(BaseModel):
    project_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    quality: RenderQuality = RenderQuality.MEDIUM
    format: RenderFormat = RenderFormat.MP4
    resolution: str = ""


class RenderEngine:
    def __init__(
        self,
        renders: RenderRepository,
        projects: ProjectRepository,
        materials: MaterialRepository,
        artifacts: ArtifactStore,
        compositor: MediaCompositor,
        scratch: ScratchSpace,
        queue: TaskQueue,
        download_url_ttl_seconds: int = 24 * 3600,
    ):
        self._renders = renders
        self._projects = projects
        self._materials = materials
        self._artifacts = artifacts
        self._compositor = compositor
        self._scratch = scratch
        self._queue = queue
        self.download_url_ttl_seconds = download_url_ttl_seconds

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    def create_render(self, user_id: str, request: CreateRenderRequest) -> RenderRecord:
        """Validate ownership, persist a pending render and enqueue it."""
        project = self._projects.get(request.project_id)
        if project is None:
            raise NotFoundError(f"project {request.project_id} not found")
        if project.user_id != user_id:
            raise PermissionDeniedError("no access to this project")

        render = RenderRecord(
            user_id=user_id,
            project_id=request.project_id,
            name=request.name,
            quality=request.quality,
            format=request.format,
            resolution=request.resolution,
        )
        self._renders.create(render)
        try:
            self._queue.enqueue(render.envelope())
        except QueueFullError as e:
            render.fail(str(e))
            self._renders.update(render)
            raise
        logger.info("Render %s queued for project %s", render.id, render.project_id)
        return render

    def get_render(self, user_id: str, render_id: str) -> RenderRecord:
        render = self._renders.get(render_id)
        if render is None:
            raise NotFoundError(f"render {render_id} not found")
        if render.user_id != user_id:
            raise PermissionDeniedError("no access to this render")
        return render

    def list_renders(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[RenderRecord], int, int, int]:
        """Returns (renders, total, page, page_size)."""
        page = page if page > 0 else 1
        page_size = page_size if page_size > 0 else DEFAULT_PAGE_SIZE
        page_size = min(page_size, MAX_PAGE_SIZE)
        status_value = TaskStatus(status).value if status else None
        renders, total = self._renders.list(
            user_id, page, page_size, project_id=project_id, status=status_value
        )
        return renders, total, page, page_size

    def delete_render(self, user_id: str, render_id: str) -> None:
        render = self.get_render(user_id, render_id)
        if render.status == TaskStatus.COMPLETED and render.output_path:
            try:
                self._artifacts.delete(render.output_path)
            except Exception as e:
                logger.warning("Could not delete artifact %s: %s", render.output_path, e)
        self._renders.delete(render_id)

    def download_url(self, user_id: str, render_id: str) -> str:
        render = self.get_render(user_id, render_id)
        if render.status != TaskStatus.COMPLETED:
            raise TaskStateError("render has not completed")
        if not render.output_path:
            raise NotFoundError("render has no output file")
        return self._artifacts.signed_url(render.output_path, self.download_url_ttl_seconds)

    # ------------------------------------------------------------------
    # Worker path
    # ------------------------------------------------------------------

    def handle(self, task: TaskRecord) -> None:
        """Queue handler: unwraps the envelope and processes the render."""
        render_id = task.params.get("render_id") or task.id
        self.process(render_id)

    def process(self, render_id: str) -> Optional[RenderRecord]:
        render = self._renders.get(render_id)
        if render is None:
            logger.error("Render %s vanished before processing", render_id)
            return None
        if render.is_terminal:
            logger.warning("Render %s already %s, skipping", render_id, render.status.value)
            return render

        render.start()
        self._renders.update(render)
        logger.info("Render %s processing", render_id)

        try:
            self._run(render)
        except StageFailed as e:
            render.fail(str(e))
            self._renders.update(render)
            logger.error("Render %s failed: %s", render_id, e)
            return render
        except Exception as e:
            logger.exception("Render %s crashed", render_id)
            if not render.is_terminal:
                render.fail(f"internal error: {e}")
                self._renders.update(render)
            return render

        logger.info(
            "Render %s completed: %s (%d bytes, %.2fs)",
            render_id, render.output_path, render.output_size, render.duration,
        )
        return render

    def _checkpoint(self, render: RenderRecord, progress: int) -> None:
        render.advance(progress)
        self._renders.update(render)

    def _run(self, render: RenderRecord) -> None:
        with self._scratch.job_dir("render", render.id) as workdir:
            with stage("failed to load project"):
                project = self._projects.get(render.project_id)
                if project is None:
                    raise NotFoundError(f"project {render.project_id} not found")
                timeline = ProjectTimeline.from_config(project.config)

            with stage("failed to download project materials"):
                material_paths = self._download_materials(render.user_id, timeline, workdir)
            self._checkpoint(render, 30)

            output_file = os.path.join(workdir, f"output.{render.format.value}")
            with stage("failed to build compositor command"):
                invocation = build_render_invocation(
                    timeline,
                    material_paths,
                    output_file,
                    quality=render.quality,
                    resolution=render.resolution,
                )
            self._checkpoint(render, 50)

            with stage("compositor failed"):
                self._compositor.run(invocation.args, cwd=workdir)
            self._checkpoint(render, 80)

            try:
                duration = self._compositor.media_duration(output_file)
            except CompositorError as e:
                logger.warning("Render %s: could not read duration (%s)", render.id, e)
                duration = 0.0

            object_key = f"{render.user_id}/{render.id}.{render.format.value}"
            with stage("failed to upload output"):
                output_size = os.path.getsize(output_file)
                with open(output_file, "rb") as f:
                    self._artifacts.upload(object_key, f.read(), render.format.content_type)

            render.complete(object_key, output_size, duration)
            self._renders.update(render)

    def _download_materials(
        self, user_id: str, timeline: ProjectTimeline, workdir: str
    ) -> Dict[str, str]:
        """Fetch each distinct material once. Returns material id -> local path.

        Materials owned by another user are treated as unresolvable.
        """
        materials_dir = os.path.join(workdir, "materials")
        os.makedirs(materials_dir, exist_ok=True)
        paths: Dict[str, str] = {}
        for material_id in timeline.material_ids():
            material = self._materials.get(material_id)
            if material is None:
                raise ResolutionError(f"material {material_id} not found")
            if material.user_id and material.user_id != user_id:
                raise ResolutionError(f"material {material_id} is not accessible")
            ext = os.path.splitext(material.file_name)[1]
            local_path = os.path.join(materials_dir, f"{material_id}{ext}")
            data = self._artifacts.download(material.file_path)
            with open(local_path, "wb") as f:
                f.write(data)
            paths[material_id] = local_path
        return paths
