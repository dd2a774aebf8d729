"""Script stage: narrative text -> ordered one-line shot descriptions."""

import json
import logging
import re
import time
from typing import Callable, List, Optional

from comic_video.errors import BackendError, ScriptFormatError
from comic_video.models.base import Message, TextGenerator

logger = logging.getLogger(__name__)

SCRIPT_SYSTEM_PROMPT = """You are a storyboard writer for short narrated videos.

RULES:
1. Split the user's story into a sequence of shots, in story order.
2. Each shot is ONE line describing what is seen and what happens.
3. Your response MUST BE ONLY a JSON array of strings. No keys, no numbering, no markdown, no commentary.
"""

SCRIPT_EXAMPLE_USER = "A fox finds a lost lantern in the snow and carries it home."
SCRIPT_EXAMPLE_ASSISTANT = (
    '["A red fox walks through a snowy forest at dusk.", '
    '"The fox noses a glowing brass lantern half-buried in snow.", '
    '"The fox trots home with the lantern swinging from its mouth."]'
)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def script_messages(text: str) -> List[Message]:
    return [
        Message("system", SCRIPT_SYSTEM_PROMPT),
        Message("user", SCRIPT_EXAMPLE_USER),
        Message("assistant", SCRIPT_EXAMPLE_ASSISTANT),
        Message("user", text),
    ]


def extract_json_array(reply: str) -> Optional[list]:
    """The outermost JSON array in ``reply``, or None if there isn't one.

    Tolerates markdown fences and prose around the array.
    """
    cleaned = _FENCE.sub("", reply or "").strip()
    start, end = cleaned.find("["), cleaned.rfind("]")
    if start == -1 or end <= start:
        return None
    try:
        value = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None


def parse_panels(reply: str) -> List[str]:
    """Panels from a validated reply.

    When the reply holds a JSON array its non-blank string items are the
    panels. Without one, each non-empty line of the reply is a panel.
    """
    items = extract_json_array(reply)
    if items is not None:
        return [item.strip() for item in items if isinstance(item, str) and item.strip()]
    cleaned = _FENCE.sub("", reply or "")
    return [line.strip() for line in cleaned.splitlines() if line.strip()]


def generate_script(
    text_gen: TextGenerator,
    text: str,
    max_attempts: int = 3,
    retry_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Ask the text backend for a JSON array script, retrying bad replies.

    Backend errors and unparseable replies both consume an attempt. Raises
    ScriptFormatError once ``max_attempts`` are exhausted.
    """
    last_error = "no attempts made"
    for attempt in range(1, max_attempts + 1):
        try:
            reply = text_gen.chat(script_messages(text))
        except BackendError as e:
            last_error = str(e)
        else:
            if extract_json_array(reply) is not None:
                return reply
            last_error = f"reply is not a JSON array: {reply[:200]!r}"

        logger.warning("Script attempt %d/%d failed: %s", attempt, max_attempts, last_error)
        if attempt < max_attempts:
            sleep(retry_delay)

    raise ScriptFormatError(
        f"script generation failed after {max_attempts} attempts: {last_error}"
    )


def build_narration(panels: List[str]) -> str:
    """Join panel texts, each terminated with a full stop."""
    sentences = []
    for panel in panels:
        panel = panel.strip()
        if not panel.endswith((".", "。", "!", "?", "！", "？")):
            panel += "."
        sentences.append(panel)
    return " ".join(sentences)
