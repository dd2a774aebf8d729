"""Narrative pipeline: story text -> script -> images -> narration -> video.

Tasks live only in the status store (TTL'd JSON records); the pipeline is
their single writer once a worker picks them up.

Progress checkpoints for ai-video tasks:
    20      script accepted
    20..60  one step per generated panel image
    70      narration synthesized
    90      slideshow composed
    100     frames and video published
"""

import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from comic_video.errors import QueueFullError, StageFailed
from comic_video.io.compositor import MediaCompositor
from comic_video.io.frames import write_frame
from comic_video.jobs.dispatcher import TaskQueue
from comic_video.jobs.models import TaskRecord, TaskType
from comic_video.jobs.stages import stage
from comic_video.models.base import ImageGenerator, Message, SpeechSynthesizer, TextGenerator
from comic_video.narrative.script import build_narration, generate_script, parse_panels
from comic_video.storage.artifact_store import ArtifactStore
from comic_video.storage.scratch import ScratchSpace
from comic_video.storage.status_store import StatusStore

logger = logging.getLogger(__name__)

STORY_SYSTEM_PROMPT = (
    "You are a fiction writer. Write a complete short story in plain prose "
    "from the user's idea. Do not add headings or commentary."
)


class NarrativePipeline:
    def __init__(
        self,
        status_store: StatusStore,
        queue: TaskQueue,
        text_gen: TextGenerator,
        image_gen: ImageGenerator,
        speech: SpeechSynthesizer,
        compositor: MediaCompositor,
        artifacts: ArtifactStore,
        scratch: ScratchSpace,
        status_ttl_seconds: int = 24 * 3600,
        script_max_attempts: int = 3,
        script_retry_delay: float = 1.0,
        seconds_per_image: float = 3.0,
        frame_size: Tuple[int, int] = (1280, 720),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = status_store
        self._queue = queue
        self._text_gen = text_gen
        self._image_gen = image_gen
        self._speech = speech
        self._compositor = compositor
        self._artifacts = artifacts
        self._scratch = scratch
        self._ttl = status_ttl_seconds
        self._script_max_attempts = script_max_attempts
        self._script_retry_delay = script_retry_delay
        self._seconds_per_image = seconds_per_image
        self._frame_size = frame_size
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    def submit(self, text: str, title: str = "") -> str:
        """Persist a pending ai-video task, enqueue it and return its id."""
        params = {"novel": text}
        if title:
            params["title"] = title
        return self._submit(TaskRecord(type=TaskType.AI_VIDEO, params=params))

    def submit_text(self, prompt: str, title: str = "") -> str:
        """Persist a pending ai-text (story writing) task and enqueue it."""
        return self._submit(
            TaskRecord(type=TaskType.AI_TEXT, params={"novel": prompt, "title": title})
        )

    def get_task(self, task_id: str) -> Optional[TaskRecord]:
        return self._store.get(task_id)

    def _submit(self, task: TaskRecord) -> str:
        self._save(task)
        try:
            self._queue.enqueue(task)
        except QueueFullError as e:
            task.fail(str(e))
            self._save(task)
            raise
        logger.info("Task %s (%s) queued", task.id, task.type.value)
        return task.id

    def _save(self, task: TaskRecord) -> None:
        self._store.put(task, self._ttl)

    # ------------------------------------------------------------------
    # Worker path
    # ------------------------------------------------------------------

    def dispatch(self, task: TaskRecord) -> None:
        """Queue handler: route a task to its runner by type."""
        logger.info("Task %s (%s) received", task.id, task.type.value)
        if task.type == TaskType.AI_VIDEO:
            self.run(task)
        elif task.type == TaskType.AI_TEXT:
            self.run_text(task)
        else:
            task.fail(f"unsupported task type: {task.type.value}")
            self._save(task)
            logger.error("Task %s has unsupported type %s", task.id, task.type.value)

    def run(self, task: TaskRecord) -> TaskRecord:
        task.start()
        self._save(task)
        try:
            with self._scratch.job_dir("narrative", task.id) as workdir:
                self._run(task, workdir)
        except StageFailed as e:
            task.fail(str(e))
            self._save(task)
            logger.error("Task %s failed: %s", task.id, e)
        except Exception as e:
            logger.exception("Task %s crashed", task.id)
            if not task.is_terminal:
                task.fail(f"internal error: {e}")
                self._save(task)
        return task

    def run_text(self, task: TaskRecord) -> TaskRecord:
        task.start()
        self._save(task)
        title = task.params.get("title", "")
        try:
            with stage("story generation failed"):
                text = self._text_gen.chat([
                    Message("system", STORY_SYSTEM_PROMPT),
                    Message("user", task.params.get("novel", "")),
                ])
        except StageFailed as e:
            task.fail(str(e))
            self._save(task)
            logger.error("Task %s failed: %s", task.id, e)
            return task

        task.complete({"title": title, "text": text})
        self._save(task)
        logger.info("Task %s completed (%d chars)", task.id, len(text))
        return task

    def _checkpoint(self, task: TaskRecord, progress: int) -> None:
        task.advance(progress)
        self._save(task)

    def _run(self, task: TaskRecord, workdir: str) -> None:
        text = task.params.get("novel", "")

        with stage("failed to generate script"):
            reply = generate_script(
                self._text_gen,
                text,
                max_attempts=self._script_max_attempts,
                retry_delay=self._script_retry_delay,
                sleep=self._sleep,
            )
        self._checkpoint(task, 20)

        panels = parse_panels(reply)
        if not panels:
            raise StageFailed("script produced no panels")
        logger.info("Task %s: script has %d panels", task.id, len(panels))

        frames = self._generate_frames(task, panels, workdir)

        audio_path = os.path.join(workdir, "narration.wav")
        with stage("speech synthesis failed"):
            audio = self._speech.synthesize(build_narration(panels))
            with open(audio_path, "wb") as f:
                f.write(audio)
        self._checkpoint(task, 70)

        video_path = os.path.join(workdir, "video.mp4")
        with stage("video composition failed"):
            self._compositor.compose_slideshow(
                [path for path, _ in frames],
                audio_path,
                video_path,
                self._seconds_per_image,
                workdir,
            )
        self._checkpoint(task, 90)

        try:
            result = self._publish(task, panels, frames, video_path)
        except Exception:
            # Nothing rolls back here: the task stays at processing until its
            # record expires.
            logger.exception("Task %s: publishing failed, left at %s", task.id, task.status.value)
            return

        task.complete(result)
        self._save(task)
        logger.info("Task %s completed: %s", task.id, result["url"])

    def _generate_frames(
        self, task: TaskRecord, panels: List[str], workdir: str
    ) -> List[Tuple[str, bytes]]:
        """One PNG frame per panel, in order. Returns (path, png bytes) pairs."""
        frames = []
        for i, panel in enumerate(panels, start=1):
            path = os.path.join(workdir, f"panel_{i}.png")
            with stage(f"image generation failed for panel {i}"):
                data = self._image_gen.txt2img(panel)
                png = write_frame(data, path, self._frame_size)
            frames.append((path, png))
            self._checkpoint(task, 20 + 40 * i // len(panels))
        return frames

    def _publish(
        self,
        task: TaskRecord,
        panels: List[str],
        frames: List[Tuple[str, bytes]],
        video_path: str,
    ) -> Dict[str, Any]:
        prefix = f"narratives/{task.id}"
        images = [
            self._artifacts.upload(f"{prefix}/panel_{i}.png", png, "image/png")
            for i, (_, png) in enumerate(frames, start=1)
        ]
        with open(video_path, "rb") as f:
            url = self._artifacts.upload(f"{prefix}/video.mp4", f.read(), "video/mp4")
        return {"url": url, "images": images, "panels": panels}
