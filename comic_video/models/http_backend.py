"""Shared HTTP plumbing for the generative backend clients."""

from typing import Any, Dict, Optional

import httpx

from comic_video.errors import BackendError


class HttpBackend:
    """Blocking JSON-over-HTTP client for one backend endpoint.

    The timeout applies per request; None waits indefinitely.
    """

    name = "backend"

    def __init__(
        self,
        endpoint: str,
        timeout: Optional[float] = 300.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout, headers=headers or {})

    def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.endpoint}{path}"
        try:
            response = self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"{self.name} request failed: {e}") from e
        if response.status_code != 200:
            raise BackendError(
                f"{self.name} API error: {response.status_code} {response.reason_phrase}"
            )
        return response

    def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._post(path, payload)
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{self.name} returned invalid JSON: {e}") from e

    def close(self) -> None:
        self._client.close()
