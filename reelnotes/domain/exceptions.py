"""Domain exceptions for the application."""


class AnnotationError(Exception):
    """Base exception for annotation document errors."""

    pass


class DocumentWriteError(AnnotationError):
    """Raised when a sidecar document could not be written to disk.

    Attributes:
        path: The sidecar path that failed to write
        reason: Description of the underlying failure
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write annotation document {path}: {reason}")
