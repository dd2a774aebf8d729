"""Project timeline: ordered tracks of clips, each with ordered effects.

Parsed once from the project's stored config. Effects outside the supported
set are dropped at parse time, so everything downstream only ever sees the
closed set below.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)


class TrackType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"


class EffectType(str, Enum):
    FILTER = "filter"
    TRANSITION = "transition"


class EffectName(str, Enum):
    GRAYSCALE = "grayscale"
    BOXBLUR = "boxblur"
    NEGATE = "negate"
    FADE = "fade"


class FadePosition(str, Enum):
    IN = "in"
    OUT = "out"


SUPPORTED_EFFECTS = {
    (EffectType.FILTER, EffectName.GRAYSCALE),
    (EffectType.FILTER, EffectName.BOXBLUR),
    (EffectType.FILTER, EffectName.NEGATE),
    (EffectType.TRANSITION, EffectName.FADE),
}


class Effect(BaseModel):
    type: EffectType
    name: EffectName
    params: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _supported(self):
        if (self.type, self.name) not in SUPPORTED_EFFECTS:
            raise ValueError(f"unsupported effect {self.type.value}:{self.name.value}")
        return self


class Clip(BaseModel):
    material_id: str = Field(min_length=1)
    start: float = Field(default=0.0, ge=0)
    end: float
    effects: List[Effect] = Field(default_factory=list)

    @field_validator("effects", mode="before")
    @classmethod
    def _drop_unknown_effects(cls, value):
        if not value:
            return []
        kept = []
        for raw in value:
            try:
                kept.append(Effect.model_validate(raw))
            except ValidationError:
                logger.debug("Dropping unknown effect %r", raw)
        return kept

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end <= self.start:
            raise ValueError(f"clip end ({self.end}) must be greater than start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class Track(BaseModel):
    type: TrackType
    clips: List[Clip] = Field(default_factory=list)

    @property
    def is_visual(self) -> bool:
        return self.type in (TrackType.VIDEO, TrackType.IMAGE)


class ProjectTimeline(BaseModel):
    tracks: List[Track] = Field(default_factory=list)
    resolution: str = ""
    frame_rate: Optional[int] = None

    @classmethod
    def from_config(cls, config: Any) -> "ProjectTimeline":
        """Parse a stored project config (JSON text or decoded dict).

        Raises ValueError on malformed input.
        """
        if config is None or config == "":
            return cls()
        if isinstance(config, (str, bytes)):
            try:
                config = json.loads(config)
            except json.JSONDecodeError as e:
                raise ValueError(f"project config is not valid JSON: {e}") from e
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ValueError(f"invalid project timeline: {e}") from e

    def material_ids(self) -> List[str]:
        """Distinct material ids across all tracks, in first-use order."""
        seen: Dict[str, None] = {}
        for track in self.tracks:
            for clip in track.clips:
                seen.setdefault(clip.material_id, None)
        return list(seen)

    def visual_clips(self) -> List[Tuple[TrackType, Clip]]:
        """Clips of video and image tracks, in track order then clip order."""
        return [
            (track.type, clip)
            for track in self.tracks
            if track.is_visual
            for clip in track.clips
        ]
