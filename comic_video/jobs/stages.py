"""Stage wrapper shared by the render and narrative workers."""

from contextlib import contextmanager

from comic_video.errors import StageFailed


@contextmanager
def stage(description: str):
    """Re-raise any error in the block as StageFailed("<description>: <error>")."""
    try:
        yield
    except StageFailed:
        raise
    except Exception as e:
        raise StageFailed(f"{description}: {e}") from e
