"""Ollama text-generation client."""

from typing import Any, List, Optional

import httpx

from comic_video.errors import BackendError
from comic_video.models.base import Message, TextGenerator
from comic_video.models.http_backend import HttpBackend


class OllamaClient(HttpBackend, TextGenerator):
    name = "Ollama"

    def __init__(
        self,
        endpoint: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = 300.0,
        client: Optional[httpx.Client] = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        super().__init__(endpoint, timeout=timeout, headers=headers, client=client)
        self.model = model

    def chat(self, messages: List[Message], **opts: Any) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
        }
        if opts:
            payload["options"] = opts
        data = self._post_json("/api/chat", payload)
        content = (data.get("message") or {}).get("content") or data.get("response")
        if content is None:
            raise BackendError("Ollama chat response has no content")
        return content

    def generate(self, prompt: str, **opts: Any) -> str:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        if opts:
            payload["options"] = opts
        data = self._post_json("/api/generate", payload)
        if "response" not in data:
            raise BackendError("Ollama generate response has no content")
        return data["response"]
