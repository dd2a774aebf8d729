"""Compile a project timeline into a single ffmpeg invocation.

One input per visual clip (video and image tracks, in track order). Clips
with effects get a labelled filter chain; two or more clips are joined by a
single concat stage, a lone clip is mapped directly. When a resolution is
known, concatenated clips are first fitted to it.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from comic_video.jobs.models import RenderQuality
from comic_video.processing.effects import build_clip_filter
from comic_video.render.timeline import ProjectTimeline, TrackType

_RESOLUTION = re.compile(r"^\d{2,5}x\d{2,5}$")

ENCODE_PROFILE = ["-c:v", "libx264", "-preset", "fast", "-pix_fmt", "yuv420p"]


def _seconds(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".") or "0"


def fit_filter(resolution: str) -> str:
    """Scale into WxH keeping aspect, pad to exactly WxH, square pixels."""
    width, height = resolution.split("x")
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1"
    )


@dataclass
class CompositorInvocation:
    """Arguments for one compositor run (without the binary and -y)."""
    inputs: List[str]
    input_args: List[str]
    filter_graph: Optional[str]
    maps: List[str]
    output_args: List[str]
    output_path: str
    clip_filters: List[str] = field(default_factory=list)

    @property
    def has_concat(self) -> bool:
        return bool(self.filter_graph) and "concat=" in self.filter_graph

    @property
    def args(self) -> List[str]:
        args = list(self.input_args)
        if self.filter_graph:
            args += ["-filter_complex", self.filter_graph]
        for stream in self.maps:
            args += ["-map", stream]
        return args + self.output_args + [self.output_path]


def build_render_invocation(
    timeline: ProjectTimeline,
    material_paths: Dict[str, str],
    output_path: str,
    quality: RenderQuality = RenderQuality.MEDIUM,
    resolution: str = "",
) -> CompositorInvocation:
    """Synthesize the compositor invocation for a timeline.

    material_paths maps material id -> local file. Raises ValueError when the
    timeline has no visual clips or references an unknown material.
    """
    clips = timeline.visual_clips()
    if not clips:
        raise ValueError("timeline has no video or image clips")

    resolution = resolution or timeline.resolution
    if not _RESOLUTION.match(resolution or ""):
        resolution = ""
    # concat needs identical frame size and SAR on every input
    fit = fit_filter(resolution) if resolution and len(clips) > 1 else ""

    inputs: List[str] = []
    input_args: List[str] = []
    chains: List[str] = []
    clip_filters: List[str] = []
    streams: List[str] = []

    for idx, (track_type, clip) in enumerate(clips):
        path = material_paths.get(clip.material_id)
        if path is None:
            raise ValueError(f"material {clip.material_id} was not downloaded")
        inputs.append(path)
        if track_type is TrackType.IMAGE:
            input_args += ["-loop", "1", "-t", _seconds(clip.duration), "-i", path]
        else:
            input_args += ["-ss", _seconds(clip.start), "-t", _seconds(clip.duration), "-i", path]

        chain = ",".join(f for f in (build_clip_filter(clip.effects, clip.duration), fit) if f)
        clip_filters.append(chain)
        label_in = f"[{idx}:v]"
        if chain:
            label_out = f"[v{idx}]"
            chains.append(f"{label_in}{chain}{label_out}")
            streams.append(label_out)
        else:
            streams.append(label_in)

    if len(streams) > 1:
        chains.append("".join(streams) + f"concat=n={len(streams)}:v=1:a=0[vout]")
        maps = ["[vout]"]
    elif chains:
        maps = [streams[0]]
    else:
        maps = ["0:v"]

    output_args = ENCODE_PROFILE + ["-crf", str(quality.crf)]
    if resolution:
        output_args += ["-s", resolution]
    if timeline.frame_rate:
        output_args += ["-r", str(timeline.frame_rate)]

    return CompositorInvocation(
        inputs=inputs,
        input_args=input_args,
        filter_graph=";".join(chains) or None,
        maps=maps,
        output_args=output_args,
        output_path=output_path,
        clip_filters=clip_filters,
    )
