"""Normalize generated images into same-sized PNG frames for the slideshow."""

import io
from typing import Tuple

from PIL import Image


def parse_frame_size(value: str) -> Tuple[int, int]:
    """Parse "WxH" into (width, height)."""
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError:
        raise ValueError(f"invalid frame size {value!r}, expected WxH") from None
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid frame size {value!r}")
    return width, height


def write_frame(data: bytes, path: str, size: Tuple[int, int]) -> bytes:
    """Decode image bytes, letterbox onto a black canvas of ``size``, save as PNG.

    Returns the PNG bytes written. Raises OSError if the bytes are not an image.
    """
    width, height = size
    with Image.open(io.BytesIO(data)) as src:
        img = src.convert("RGB")
    scale = min(width / img.width, height / img.height)
    resized = img.resize(
        (max(1, int(img.width * scale)), max(1, int(img.height * scale))),
        Image.LANCZOS,
    )
    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    canvas.paste(resized, ((width - resized.width) // 2, (height - resized.height) // 2))

    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    png = buf.getvalue()
    with open(path, "wb") as f:
        f.write(png)
    return png
