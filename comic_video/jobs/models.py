"""Task and render records for async processing."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator
import uuid

from comic_video.errors import TaskStateError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskType(str, Enum):
    RENDER = "render"
    AI_TEXT = "ai-text"
    AI_VIDEO = "ai-video"


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class RenderFormat(str, Enum):
    MP4 = "mp4"
    AVI = "avi"
    MOV = "mov"
    MKV = "mkv"

    @classmethod
    def _missing_(cls, value):
        # Unknown containers fall back to mp4.
        return cls.MP4

    @property
    def content_type(self) -> str:
        return {
            RenderFormat.MP4: "video/mp4",
            RenderFormat.AVI: "video/x-msvideo",
            RenderFormat.MOV: "video/quicktime",
            RenderFormat.MKV: "video/x-matroska",
        }[self]


class RenderQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def crf(self) -> int:
        return {RenderQuality.HIGH: 18, RenderQuality.MEDIUM: 23, RenderQuality.LOW: 28}[self]


class LifecycleRecord(BaseModel):
    """Status/progress state machine shared by tasks and renders.

    pending -> processing -> {completed, failed}. Terminal records reject
    every further mutation, and progress never moves backwards.
    """

    status: TaskStatus = TaskStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _ensure_open(self) -> None:
        if self.is_terminal:
            raise TaskStateError(
                f"{type(self).__name__} {getattr(self, 'id', '?')} is already {self.status.value}"
            )

    def _touch(self) -> None:
        self.updated_at = utcnow()

    def start(self) -> None:
        self._ensure_open()
        self.status = TaskStatus.PROCESSING
        self._touch()

    def advance(self, progress: int) -> None:
        self._ensure_open()
        progress = max(0, min(100, int(progress)))
        if progress > self.progress:
            self.progress = progress
        self._touch()

    def fail(self, message: str) -> None:
        self._ensure_open()
        self.status = TaskStatus.FAILED
        self.error = message or "unknown error"
        self._touch()

    def _finish(self) -> None:
        self._ensure_open()
        self.status = TaskStatus.COMPLETED
        self.progress = 100
        self.error = None
        self._touch()


class TaskRecord(LifecycleRecord):
    """A unit of asynchronous work as persisted in the status store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: TaskType
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None

    def complete(self, result: Dict[str, Any]) -> None:
        self._finish()
        self.result = result


class RenderRecord(LifecycleRecord):
    """Durable record of one timeline-to-video compositing job."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    project_id: str
    name: str
    output_path: str = ""
    output_size: int = 0
    duration: float = 0.0
    resolution: str = ""
    format: RenderFormat = RenderFormat.MP4
    quality: RenderQuality = RenderQuality.MEDIUM
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value):
        if isinstance(value, str):
            return RenderFormat(value.strip().lower() or "mp4")
        return value

    def start(self) -> None:
        super().start()
        self.started_at = self.updated_at

    def fail(self, message: str) -> None:
        super().fail(message)
        self.completed_at = self.updated_at

    def complete(self, output_path: str, output_size: int, duration: float) -> None:
        self._finish()
        self.output_path = output_path
        self.output_size = output_size
        self.duration = duration
        self.completed_at = self.updated_at

    def envelope(self) -> TaskRecord:
        """Queue envelope referencing this render."""
        return TaskRecord(
            id=self.id,
            type=TaskType.RENDER,
            params={"render_id": self.id},
        )


class ProjectRecord(BaseModel):
    id: str
    user_id: str
    name: str = ""
    # Timeline JSON, stored as text or already decoded.
    config: Any = None


class MaterialRecord(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str = ""
    file_name: str
    file_path: str
