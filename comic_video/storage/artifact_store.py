"""Object storage for materials and rendered artifacts (Supabase Storage)."""

from abc import ABC, abstractmethod

from supabase import Client


class ArtifactStore(ABC):
    """Abstract object store keyed by path-like object names."""

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under ``key`` and return a retrievable URL."""
        ...

    @abstractmethod
    def download(self, key: str) -> bytes:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def signed_url(self, key: str, expires_in: int) -> str:
        """Time-limited download URL valid for ``expires_in`` seconds."""
        ...


class SupabaseArtifactStore(ArtifactStore):
    """Artifact store backed by one Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str):
        self._client = client
        self.bucket = bucket

    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        self._bucket().upload(
            key,
            data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return self._bucket().get_public_url(key)

    def download(self, key: str) -> bytes:
        return self._bucket().download(key)

    def delete(self, key: str) -> None:
        self._bucket().remove([key])

    def signed_url(self, key: str, expires_in: int) -> str:
        response = self._bucket().create_signed_url(key, expires_in)
        url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            raise RuntimeError(f"Storage returned no signed URL for {key}")
        return url
