"""Stable Diffusion WebUI txt2img client."""

import base64
import binascii
from typing import Any

from comic_video.errors import BackendError
from comic_video.models.base import ImageGenerator
from comic_video.models.http_backend import HttpBackend


class StableDiffusionClient(HttpBackend, ImageGenerator):
    name = "Stable Diffusion"

    def txt2img(self, prompt: str, **opts: Any) -> bytes:
        data = self._post_json("/sdapi/v1/txt2img", {"prompt": prompt, **opts})
        images = data.get("images") or []
        if not images:
            raise BackendError("no image returned")
        encoded = images[0]
        # Some builds prefix a data URI.
        if encoded.startswith("data:") and "," in encoded:
            encoded = encoded.split(",", 1)[1]
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BackendError(f"image payload is not valid base64: {e}") from e
