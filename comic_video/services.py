"""Construction of the long-lived service objects shared by API and workers."""

from dataclasses import dataclass

from comic_video.config import Settings
from comic_video.db.repositories import (
    SupabaseMaterialRepository,
    SupabaseProjectRepository,
    SupabaseRenderRepository,
)
from comic_video.db.supabase_client import create_supabase
from comic_video.io.compositor import MediaCompositor
from comic_video.io.frames import parse_frame_size
from comic_video.jobs.in_process_queue import InProcessQueue
from comic_video.models.ollama import OllamaClient
from comic_video.models.stable_diffusion import StableDiffusionClient
from comic_video.models.tts import TTSClient
from comic_video.narrative.pipeline import NarrativePipeline
from comic_video.render.engine import RenderEngine
from comic_video.storage.artifact_store import SupabaseArtifactStore
from comic_video.storage.scratch import ScratchSpace
from comic_video.storage.status_store import MemoryStatusStore, RedisStatusStore, StatusStore


@dataclass
class Services:
    settings: Settings
    status_store: StatusStore
    render_queue: InProcessQueue
    narrative_queue: InProcessQueue
    render_engine: RenderEngine
    narrative: NarrativePipeline
    scratch: ScratchSpace


def build_status_store(settings: Settings) -> StatusStore:
    if settings.status_backend == "memory":
        return MemoryStatusStore()
    if settings.status_backend == "redis":
        return RedisStatusStore.from_url(settings.redis_url)
    raise ValueError(f"unknown status backend {settings.status_backend!r}")


def build_services(settings: Settings, supabase=None) -> Services:
    """Wire every collaborator from settings. Workers are not started here."""
    supabase = supabase or create_supabase(settings)
    artifacts = SupabaseArtifactStore(supabase, settings.artifact_bucket)
    scratch = ScratchSpace(settings.scratch_dir, ttl_hours=settings.scratch_ttl_hours)
    compositor = MediaCompositor(
        settings.ffmpeg_path,
        settings.ffprobe_path,
        timeout=settings.compositor_timeout_seconds,
    )
    status_store = build_status_store(settings)

    render_queue = InProcessQueue(
        settings.render_queue_capacity,
        name="render",
        enqueue_timeout=settings.enqueue_timeout_seconds,
    )
    narrative_queue = InProcessQueue(
        settings.narrative_queue_capacity,
        name="narrative",
        enqueue_timeout=settings.enqueue_timeout_seconds,
    )

    render_engine = RenderEngine(
        renders=SupabaseRenderRepository(supabase),
        projects=SupabaseProjectRepository(supabase),
        materials=SupabaseMaterialRepository(supabase),
        artifacts=artifacts,
        compositor=compositor,
        scratch=scratch,
        queue=render_queue,
        download_url_ttl_seconds=settings.download_url_ttl_hours * 3600,
    )

    timeout = settings.backend_timeout_seconds
    narrative = NarrativePipeline(
        status_store=status_store,
        queue=narrative_queue,
        text_gen=OllamaClient(
            settings.ollama_endpoint,
            settings.ollama_model,
            api_key=settings.ollama_api_key,
            timeout=timeout,
        ),
        image_gen=StableDiffusionClient(settings.sd_endpoint, timeout=timeout),
        speech=TTSClient(settings.tts_endpoint, timeout=timeout),
        compositor=compositor,
        artifacts=artifacts,
        scratch=scratch,
        status_ttl_seconds=settings.status_ttl_seconds,
        script_max_attempts=settings.script_max_attempts,
        script_retry_delay=settings.script_retry_delay_seconds,
        seconds_per_image=settings.narrative_seconds_per_image,
        frame_size=parse_frame_size(settings.narrative_frame_size),
    )

    return Services(
        settings=settings,
        status_store=status_store,
        render_queue=render_queue,
        narrative_queue=narrative_queue,
        render_engine=render_engine,
        narrative=narrative,
        scratch=scratch,
    )


def start_workers(services: Services) -> None:
    settings = services.settings
    services.render_queue.start(settings.render_workers, services.render_engine.handle)
    services.narrative_queue.start(settings.narrative_workers, services.narrative.dispatch)


def stop_workers(services: Services) -> None:
    services.render_queue.stop()
    services.narrative_queue.stop()
