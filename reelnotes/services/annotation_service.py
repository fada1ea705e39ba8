"""Service layer for annotation document operations.

Every operation is one read-transform-write sequence on a single sidecar
document, run while holding that document's lock.

Malformed requests and unreadable documents produce None instead of an
exception. A failed write raises DocumentWriteError so callers can tell the
user that the change was not saved.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..domain import cascade
from ..domain.intervals import find_by_key
from ..domain.models import (
    AnnotationDocument,
    IntervalKind,
    IntervalPatch,
    is_number,
    now_ms,
)
from ..repositories.interfaces import AnnotationRepository
from .document_locks import DocumentLockRegistry

logger = logging.getLogger(__name__)

Transform = Callable[[AnnotationDocument, float], AnnotationDocument]


def _valid_media_path(media_path: Any) -> bool:
    return isinstance(media_path, str) and bool(media_path.strip())


class AnnotationService:
    """Service layer for annotating a media file's timeline."""

    def __init__(
        self,
        repository: AnnotationRepository,
        locks: DocumentLockRegistry | None = None,
        clock: Callable[[], float] = now_ms,
    ):
        self.repository = repository
        self.locks = locks or DocumentLockRegistry()
        self.clock = clock

    def init(self, media_path: Any) -> str | None:
        """Make sure a document exists for the media file; return its path."""
        if not _valid_media_path(media_path):
            logger.warning("init called without a media path")
            return None
        path = self.repository.sidecar_path(media_path)
        with self.locks.hold(path):
            return self.repository.init(media_path)

    def read(self, media_path: Any) -> AnnotationDocument | None:
        """Get the document for a media file, or None if it cannot be read."""
        if not _valid_media_path(media_path):
            logger.warning("read called without a media path")
            return None
        with self.locks.hold(self.repository.sidecar_path(media_path)):
            return self.repository.read(media_path)

    # Appending

    def add_act(self, media_path: Any, time: Any) -> AnnotationDocument | None:
        """Start an act at ``time``, closing any open section and shot."""
        return self.add_interval(IntervalKind.ACT, media_path, time)

    def add_section(self, media_path: Any, time: Any) -> AnnotationDocument | None:
        """Start a section at ``time``, closing any open shot."""
        return self.add_interval(IntervalKind.SECTION, media_path, time)

    def add_shot(self, media_path: Any, time: Any) -> AnnotationDocument | None:
        """Start a shot at ``time``."""
        return self.add_interval(IntervalKind.SHOT, media_path, time)

    def add_interval(
        self, kind: IntervalKind, media_path: Any, time: Any
    ) -> AnnotationDocument | None:
        if not _valid_media_path(media_path) or not is_number(time):
            logger.warning(
                f"Rejected add to {kind.value}: media_path={media_path!r}, "
                f"time={time!r}"
            )
            return None
        return self._mutate(
            media_path,
            lambda document, now: cascade.add_interval(document, kind, time, now=now),
        )

    # Updating

    def update_act(
        self, media_path: Any, created_at: Any, fields: Mapping[str, Any]
    ) -> AnnotationDocument | None:
        return self.update_interval(IntervalKind.ACT, media_path, created_at, fields)

    def update_section(
        self, media_path: Any, created_at: Any, fields: Mapping[str, Any]
    ) -> AnnotationDocument | None:
        return self.update_interval(
            IntervalKind.SECTION, media_path, created_at, fields
        )

    def update_shot(
        self, media_path: Any, created_at: Any, fields: Mapping[str, Any]
    ) -> AnnotationDocument | None:
        return self.update_interval(IntervalKind.SHOT, media_path, created_at, fields)

    def update_interval(
        self,
        kind: IntervalKind,
        media_path: Any,
        created_at: Any,
        fields: Mapping[str, Any],
    ) -> AnnotationDocument | None:
        """Merge ``fields`` into the interval identified by ``created_at``.

        ``fields`` may hold ``start``, ``end``, ``title`` and ``note``. A
        missing key leaves the value alone, None clears it (reopens for
        ``end``), and a value of the wrong type is ignored.

        Returns None if the request is malformed or the document cannot be
        read. An unknown ``created_at`` leaves the collection unchanged.
        """
        if (
            not _valid_media_path(media_path)
            or not is_number(created_at)
            or not isinstance(fields, Mapping)
        ):
            logger.warning(
                f"Rejected update of {kind.value}: media_path={media_path!r}, "
                f"created_at={created_at!r}"
            )
            return None

        patch = IntervalPatch.from_fields(fields)
        if patch.is_empty():
            logger.debug(
                f"Update of {kind.value} createdAt={created_at} changes no fields"
            )

        def transform(document: AnnotationDocument, now: float) -> AnnotationDocument:
            if find_by_key(document.collection(kind), created_at) is None:
                logger.info(f"No {kind.value} entry with createdAt={created_at}")
            return cascade.update_interval(document, kind, created_at, patch)

        return self._mutate(media_path, transform, require_existing=True)

    # Deleting

    def delete_act(self, media_path: Any, created_at: Any) -> AnnotationDocument | None:
        return self.delete_interval(IntervalKind.ACT, media_path, created_at)

    def delete_section(
        self, media_path: Any, created_at: Any
    ) -> AnnotationDocument | None:
        return self.delete_interval(IntervalKind.SECTION, media_path, created_at)

    def delete_shot(self, media_path: Any, created_at: Any) -> AnnotationDocument | None:
        return self.delete_interval(IntervalKind.SHOT, media_path, created_at)

    def delete_interval(
        self, kind: IntervalKind, media_path: Any, created_at: Any
    ) -> AnnotationDocument | None:
        """Remove the interval identified by ``created_at``.

        Returns None if the request is malformed or the document cannot be
        read. An unknown ``created_at`` leaves the collection unchanged.
        """
        if not _valid_media_path(media_path) or not is_number(created_at):
            logger.warning(
                f"Rejected delete from {kind.value}: media_path={media_path!r}, "
                f"created_at={created_at!r}"
            )
            return None
        return self._mutate(
            media_path,
            lambda document, now: cascade.delete_interval(document, kind, created_at),
            require_existing=True,
        )

    # Generic patch

    def patch(
        self, media_path: Any, fields: Mapping[str, Any]
    ) -> AnnotationDocument | None:
        """Shallow-merge arbitrary root fields (e.g. ``notes``) into the document."""
        if not _valid_media_path(media_path) or not isinstance(fields, Mapping):
            logger.warning(f"Rejected patch: media_path={media_path!r}")
            return None
        return self._mutate(
            media_path,
            lambda document, now: cascade.merge_fields(document, fields, now=now),
        )

    def _mutate(
        self, media_path: str, transform: Transform, require_existing: bool = False
    ) -> AnnotationDocument | None:
        path = self.repository.sidecar_path(media_path)
        with self.locks.hold(path):
            document = self.repository.read(media_path)
            if document is None:
                if require_existing:
                    logger.warning(f"Annotation document not found: {path}")
                    return None
                document = AnnotationDocument.empty(created_at=self.clock())

            now = self.clock()
            updated = transform(document, now).touched(now)
            self.repository.write(media_path, updated)
            return updated
