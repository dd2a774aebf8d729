"""ffmpeg/ffprobe subprocess wrapper.

Every call blocks the calling worker for the full run. No timeout is applied
unless one is configured.
"""

import logging
import os
import subprocess
from typing import List, Optional

from comic_video.errors import CompositorError

logger = logging.getLogger(__name__)


def _concat_entry(path: str) -> str:
    escaped = os.path.abspath(path).replace("'", "'\\''")
    return f"file '{escaped}'\n"


class MediaCompositor:
    """Runs the external compositor binary and ffprobe."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout: Optional[float] = None,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def run(self, args: List[str], cwd: Optional[str] = None) -> str:
        """Run ffmpeg with ``args`` (overwriting outputs). Returns its output.

        Raises CompositorError on a missing binary, timeout or non-zero exit,
        carrying the combined stdout/stderr verbatim.
        """
        command = [self.ffmpeg_path, "-y", *args]
        logger.info("Running compositor: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CompositorError(f"compositor binary not found: {self.ffmpeg_path}") from e
        except OSError as e:
            raise CompositorError(f"compositor could not start: {e}") from e
        except subprocess.TimeoutExpired as e:
            output = e.output if isinstance(e.output, str) else ""
            raise CompositorError(
                f"compositor timed out after {self.timeout}s", output=output
            ) from e

        if result.returncode != 0:
            raise CompositorError(
                f"ffmpeg exited with status {result.returncode}: {result.stdout}",
                returncode=result.returncode,
                output=result.stdout,
            )
        return result.stdout

    def media_duration(self, path: str) -> float:
        """Container duration in seconds via ffprobe."""
        command = [
            self.ffprobe_path, "-v", "quiet",
            "-show_entries", "format=duration",
            "-of", "csv=p=0",
            path,
        ]
        try:
            result = subprocess.run(
                command, capture_output=True, text=True, timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CompositorError(f"ffprobe failed: {e}") from e
        if result.returncode != 0:
            raise CompositorError(
                f"ffprobe exited with status {result.returncode}: {result.stderr}",
                returncode=result.returncode,
                output=result.stderr,
            )
        try:
            return float(result.stdout.strip())
        except ValueError as e:
            raise CompositorError(f"ffprobe returned no duration: {result.stdout!r}") from e

    def compose_slideshow(
        self,
        image_paths: List[str],
        audio_path: str,
        output_path: str,
        seconds_per_image: float,
        workdir: str,
    ) -> None:
        """Show each image for a fixed time over the audio, cut to the shorter."""
        if not image_paths:
            raise ValueError("slideshow needs at least one image")
        list_path = os.path.join(workdir, "frames.txt")
        with open(list_path, "w", encoding="utf-8") as f:
            for path in image_paths:
                f.write(_concat_entry(path))
                f.write(f"duration {seconds_per_image}\n")
            # The concat demuxer ignores the last duration unless the final
            # file is listed again.
            f.write(_concat_entry(image_paths[-1]))

        self.run(
            [
                "-f", "concat", "-safe", "0", "-i", list_path,
                "-i", audio_path,
                "-c:v", "libx264", "-pix_fmt", "yuv420p", "-r", "25",
                "-c:a", "aac",
                "-shortest",
                output_path,
            ],
            cwd=workdir,
        )
