"""JSON file implementation of AnnotationRepository.

Each media file gets a sidecar document in the same directory, named after
the media file with its extension replaced.
"""

import json
import logging
import os
import re
import tempfile

from ..config.settings import Settings
from ..domain.exceptions import DocumentWriteError
from ..domain.models import AnnotationDocument
from .interfaces import AnnotationRepository

logger = logging.getLogger(__name__)

# Characters that are not allowed in file names on at least one platform
UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


class JsonDocumentRepository(AnnotationRepository):
    """Stores one JSON document per media file, next to the media file."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def sidecar_path(self, media_path: str) -> str:
        """Derive the document path for a media file.

        Example:
            ``/videos/My: Film.mp4`` -> ``/videos/My_ Film.json``
        """
        directory = os.path.dirname(media_path)
        base, _ext = os.path.splitext(os.path.basename(media_path))
        safe_base = UNSAFE_FILENAME_CHARS.sub(self.settings.unsafe_placeholder, base)
        filename = f"{safe_base}{self.settings.document_extension}"
        return os.path.join(directory, filename)

    def init(self, media_path: str) -> str:
        """Create an empty document for ``media_path`` unless one exists.

        The containing directory is created if needed. Never overwrites an
        existing document.

        Raises:
            DocumentWriteError: If the directory or document cannot be created
        """
        path = self.sidecar_path(media_path)
        if os.path.exists(path):
            logger.debug(f"Annotation document already exists: {path}")
            return path

        self._write_document(path, AnnotationDocument.empty())
        logger.info(f"Created annotation document {path}")
        return path

    def read(self, media_path: str) -> AnnotationDocument | None:
        """Load the document for ``media_path``.

        Returns None if the file is missing, is not valid JSON or does not hold
        a JSON object.
        """
        path = self.sidecar_path(media_path)
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No annotation document at {path}")
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable annotation document {path}: {e}")
            return None

        if not isinstance(raw, dict):
            logger.warning(
                f"Annotation document {path} holds {type(raw).__name__}, "
                f"expected an object"
            )
            return None

        return AnnotationDocument.from_dict(raw)

    def write(self, media_path: str, document: AnnotationDocument) -> None:
        """Replace the whole document for ``media_path``.

        Raises:
            DocumentWriteError: If the document cannot be written
        """
        self._write_document(self.sidecar_path(media_path), document)

    def _write_document(self, path: str, document: AnnotationDocument) -> None:
        try:
            text = json.dumps(
                document.to_dict(),
                indent=self.settings.json_indent,
                ensure_ascii=False,
                allow_nan=False,
            )
            self._atomic_write_text(path, text + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write annotation document {path}: {e}")
            raise DocumentWriteError(path, str(e)) from e

    @staticmethod
    def _atomic_write_text(path: str, text: str) -> None:
        # Write next to the target and rename, so readers never see half a file
        directory = os.path.dirname(path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
