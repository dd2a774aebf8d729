"""Per-job scratch directories with cleanup on exit and a TTL sweep."""

import os
import shutil
import tempfile
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class ScratchSpace:
    """Hands out exclusive working directories for render and narrative jobs.

    A job's directory is removed when its ``job_dir`` block exits, whether the
    job succeeded or failed. ``cleanup_expired`` sweeps directories left
    behind by a crashed process.
    """

    def __init__(self, base_dir: Optional[str] = None, ttl_hours: int = 2):
        if base_dir:
            self._base_dir = base_dir
        else:
            self._base_dir = os.path.join(tempfile.gettempdir(), "comic_video_scratch")
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    @contextmanager
    def job_dir(self, kind: str, job_id: str) -> Iterator[str]:
        """Create ``<base>/<kind>_<job_id>_XXXX`` and remove it on exit."""
        path = tempfile.mkdtemp(prefix=f"{kind}_{job_id}_", dir=self._base_dir)
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)

    def cleanup_expired(self) -> int:
        """Remove job directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            job_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(job_dir):
                continue
            if now - os.path.getmtime(job_dir) > self._ttl_seconds:
                shutil.rmtree(job_dir, ignore_errors=True)
                removed += 1
        return removed
