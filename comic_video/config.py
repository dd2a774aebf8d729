"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Supabase (relational store + artifact storage)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""
    artifact_bucket: str = "comic-video"

    # Task status store
    status_backend: str = "redis"  # "redis" or "memory"
    redis_url: str = "redis://localhost:6379/0"
    status_ttl_hours: int = 24

    # Worker pools
    render_workers: int = 4
    render_queue_capacity: int = 100
    narrative_workers: int = 4
    narrative_queue_capacity: int = 100
    enqueue_timeout_seconds: float = 5.0

    # Compositor
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    compositor_timeout_seconds: Optional[float] = None

    # Scratch space
    scratch_dir: Optional[str] = None
    scratch_ttl_hours: int = 2
    download_url_ttl_hours: int = 24

    # Generative backends
    sd_endpoint: str = "http://127.0.0.1:7860"
    ollama_endpoint: str = "http://127.0.0.1:11434"
    ollama_model: str = "llama2"
    ollama_api_key: Optional[str] = None
    tts_endpoint: str = "http://127.0.0.1:50021"
    backend_timeout_seconds: Optional[float] = 300.0

    # Narrative pipeline
    script_max_attempts: int = 3
    script_retry_delay_seconds: float = 1.0
    narrative_seconds_per_image: float = 3.0
    narrative_frame_size: str = "1280x720"

    # Service
    port: int = 8080
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def status_ttl_seconds(self) -> int:
        return self.status_ttl_hours * 3600
