from abc import ABC, abstractmethod

from ..domain.models import AnnotationDocument


class AnnotationRepository(ABC):
    """Abstract repository interface for sidecar annotation documents."""

    @abstractmethod
    def sidecar_path(self, media_path: str) -> str:
        """Derive the document path for a media file."""
        pass

    @abstractmethod
    def init(self, media_path: str) -> str:
        """Create an empty document if none exists; return its path."""
        pass

    @abstractmethod
    def read(self, media_path: str) -> AnnotationDocument | None:
        """Load the document, or None if missing or unreadable."""
        pass

    @abstractmethod
    def write(self, media_path: str, document: AnnotationDocument) -> None:
        """Overwrite the whole document."""
        pass
