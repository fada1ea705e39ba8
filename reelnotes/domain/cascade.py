"""Cross-granularity rules for annotation documents.

Starting an interval at one granularity ends whatever is still open at the
same or a finer granularity: a new act closes the open section and shot, a
new section closes the open shot. Updates and deletes stay local to their
own collection.
"""

from collections.abc import Mapping
from typing import Any

from .intervals import append, close_open, delete_by_key, update_by_key
from .models import AnnotationDocument, IntervalKind, IntervalPatch

# Finer collections closed when an interval of the key kind starts
CASCADE_CLOSES: dict[IntervalKind, tuple[IntervalKind, ...]] = {
    IntervalKind.ACT: (IntervalKind.SECTION, IntervalKind.SHOT),
    IntervalKind.SECTION: (IntervalKind.SHOT,),
    IntervalKind.SHOT: (),
}


def add_interval(
    document: AnnotationDocument,
    kind: IntervalKind,
    at_time: float,
    now: float | None = None,
) -> AnnotationDocument:
    """Append an interval of ``kind`` at ``at_time`` and close finer ones."""
    result = document.with_collection(
        kind, append(document.collection(kind), at_time, now=now)
    )
    for finer in CASCADE_CLOSES[kind]:
        result = result.with_collection(
            finer, close_open(result.collection(finer), at_time)
        )
    return result


def add_act(
    document: AnnotationDocument, at_time: float, now: float | None = None
) -> AnnotationDocument:
    return add_interval(document, IntervalKind.ACT, at_time, now=now)


def add_section(
    document: AnnotationDocument, at_time: float, now: float | None = None
) -> AnnotationDocument:
    return add_interval(document, IntervalKind.SECTION, at_time, now=now)


def add_shot(
    document: AnnotationDocument, at_time: float, now: float | None = None
) -> AnnotationDocument:
    return add_interval(document, IntervalKind.SHOT, at_time, now=now)


def update_interval(
    document: AnnotationDocument,
    kind: IntervalKind,
    key: float,
    patch: IntervalPatch,
) -> AnnotationDocument:
    """Apply ``patch`` to one interval; other collections are untouched."""
    return document.with_collection(
        kind, update_by_key(document.collection(kind), key, patch)
    )


def delete_interval(
    document: AnnotationDocument, kind: IntervalKind, key: float
) -> AnnotationDocument:
    """Remove one interval; other collections are untouched."""
    return document.with_collection(kind, delete_by_key(document.collection(kind), key))


def merge_fields(
    document: AnnotationDocument, fields: Mapping[str, Any], now: float | None = None
) -> AnnotationDocument:
    """Shallow-merge ``fields`` into the document root.

    The merged mapping goes back through the document deserializer, so
    collections are re-normalized and unknown keys are kept as they are.
    """
    merged = {**document.to_dict(), **fields}
    return AnnotationDocument.from_dict(merged, now=now)
