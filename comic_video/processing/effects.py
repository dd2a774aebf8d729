"""Translate a clip's ordered effects into an ffmpeg filter chain."""

from typing import List

from comic_video.render.timeline import Effect, EffectName, EffectType, FadePosition

DEFAULT_FADE_SECONDS = 1.0

_FILTERS = {
    EffectName.GRAYSCALE: "hue=s=0",
    EffectName.BOXBLUR: "boxblur=2:1",
    EffectName.NEGATE: "negate",
}


def _seconds(value: float) -> str:
    return f"{value:.2f}"


def _fade_duration(effect: Effect) -> float:
    try:
        duration = float(effect.params.get("duration", DEFAULT_FADE_SECONDS))
    except (TypeError, ValueError):
        return DEFAULT_FADE_SECONDS
    return duration if duration > 0 else DEFAULT_FADE_SECONDS


def fade_filter(effect: Effect, clip_duration: float) -> str:
    """Fade in from t=0, or fade out ending at the clip end.

    Returns "" when the effect has no usable position.
    """
    try:
        position = FadePosition(effect.params.get("position"))
    except ValueError:
        return ""
    duration = _fade_duration(effect)
    if position is FadePosition.IN:
        return f"fade=t=in:st=0:d={_seconds(duration)}"
    start = max(0.0, clip_duration - duration)
    return f"fade=t=out:st={_seconds(start)}:d={_seconds(duration)}"


def build_clip_filter(effects: List[Effect], clip_duration: float) -> str:
    """Comma-joined filter chain in effect order; "" when nothing applies."""
    filters = []
    for effect in effects:
        if effect.type is EffectType.FILTER:
            expr = _FILTERS.get(effect.name, "")
        elif effect.name is EffectName.FADE:
            expr = fade_filter(effect, clip_duration)
        else:
            expr = ""
        if expr:
            filters.append(expr)
    return ",".join(filters)
