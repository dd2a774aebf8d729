"""Exception types shared by the queue, render engine and narrative pipeline."""


class ComicVideoError(Exception):
    """Base class for all service errors."""


class QueueFullError(ComicVideoError):
    """The task buffer stayed full for the whole enqueue timeout."""


class TaskStateError(ComicVideoError):
    """An illegal lifecycle transition was attempted on a task record."""


class NotFoundError(ComicVideoError):
    """A render, project or material does not exist."""


class PermissionDeniedError(ComicVideoError):
    """The caller does not own the requested resource."""


class ResolutionError(ComicVideoError):
    """A referenced project or material could not be resolved or fetched."""


class BackendError(ComicVideoError):
    """A generative backend call failed or returned an unusable response."""


class ScriptFormatError(ComicVideoError):
    """Model output could not be parsed into panels."""


class CompositorError(ComicVideoError):
    """The compositor subprocess failed.

    ``output`` carries the combined stdout/stderr verbatim.
    """

    def __init__(self, message: str, returncode: int = -1, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class StageFailed(ComicVideoError):
    """A fatal worker step; the message is written to the failed record."""
