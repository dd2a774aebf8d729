"""Speech-synthesis client: POST text, receive audio bytes."""

from typing import Any

from comic_video.errors import BackendError
from comic_video.models.base import SpeechSynthesizer
from comic_video.models.http_backend import HttpBackend


class TTSClient(HttpBackend, SpeechSynthesizer):
    name = "TTS"

    def synthesize(self, text: str, **opts: Any) -> bytes:
        audio = self._post("/tts", {"text": text, **opts}).content
        if not audio:
            raise BackendError("TTS returned empty audio")
        return audio
