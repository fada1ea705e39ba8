"""Domain models for timeline annotation documents - pure business objects."""

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class IntervalKind(Enum):
    """Granularity of an interval, coarsest first.

    The value is the key the collection is stored under in the document.
    """

    ACT = "acts"
    SECTION = "sections"
    SHOT = "shots"


class _Unset(Enum):
    """Marker for a patch field that was not provided at all."""

    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def is_number(value: Any) -> bool:
    """True for finite JSON numbers. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large to convert to float
        return False


@dataclass(frozen=True)
class Interval:
    """A time range on the media timeline.

    ``created_at`` is the identity key used to target updates and deletes.
    ``end`` of None means the interval is still open (in progress).
    """

    start: float
    created_at: float
    end: float | None = None
    title: str | None = None
    note: str | None = None

    def is_open(self) -> bool:
        """Check if the interval has no end yet."""
        return self.end is None

    def close(self, at_time: float) -> "Interval":
        """Return a copy of this interval ending at ``at_time``."""
        return replace(self, end=at_time)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"start": self.start}
        if self.end is not None:
            data["end"] = self.end
        data["createdAt"] = self.created_at
        if self.title is not None:
            data["title"] = self.title
        if self.note is not None:
            data["note"] = self.note
        return data


@dataclass(frozen=True)
class IntervalPatch:
    """Partial update for a single interval.

    Every field is three-valued: ``UNSET`` leaves the stored value alone,
    ``None`` clears it (for ``end`` that reopens the interval) and any other
    value replaces it. ``start`` cannot be cleared.
    """

    start: float | _Unset = UNSET
    end: float | None | _Unset = UNSET
    title: str | None | _Unset = UNSET
    note: str | None | _Unset = UNSET

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "IntervalPatch":
        """Build a patch from untyped request fields.

        Keys that are missing, or whose value has the wrong type, are
        treated as not provided.
        """
        values: dict[str, Any] = {}

        start = fields.get("start", UNSET)
        if is_number(start):
            values["start"] = start

        if "end" in fields:
            end = fields["end"]
            if end is None or is_number(end):
                values["end"] = end

        for name in ("title", "note"):
            if name in fields:
                value = fields[name]
                if value is None or isinstance(value, str):
                    values[name] = value

        return cls(**values)

    def is_empty(self) -> bool:
        return all(
            value is UNSET for value in (self.start, self.end, self.title, self.note)
        )

    def apply(self, interval: Interval) -> Interval:
        """Return ``interval`` with this patch merged in."""
        changes: dict[str, Any] = {}
        if self.start is not UNSET:
            changes["start"] = self.start
        if self.end is not UNSET:
            changes["end"] = self.end
        if self.title is not UNSET:
            changes["title"] = self.title
        if self.note is not UNSET:
            changes["note"] = self.note
        return replace(interval, **changes) if changes else interval


# Root keys of the document with a typed meaning; everything else is kept
# verbatim in AnnotationDocument.extra.
DOCUMENT_KEYS = ("createdAt", "updatedAt", "notes", "acts", "sections", "shots")


@dataclass(frozen=True)
class AnnotationDocument:
    """The sidecar document for one media file."""

    created_at: float
    updated_at: float | None = None
    notes: list = field(default_factory=list)
    acts: list[Interval] = field(default_factory=list)
    sections: list[Interval] = field(default_factory=list)
    shots: list[Interval] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, created_at: float | None = None) -> "AnnotationDocument":
        """Create a document with no notes and no intervals."""
        return cls(created_at=now_ms() if created_at is None else created_at)

    @classmethod
    def from_dict(
        cls, raw: Mapping[str, Any], now: float | None = None
    ) -> "AnnotationDocument":
        """Deserialize a document, repairing malformed parts.

        Interval collections go through ``normalize``; a non-numeric
        ``createdAt`` is replaced with ``now``; non-list notes become empty.
        Unknown root keys are preserved.
        """
        from .intervals import normalize

        stamp = now_ms() if now is None else now
        created_at = raw.get("createdAt")
        updated_at = raw.get("updatedAt")
        notes = raw.get("notes")

        return cls(
            created_at=created_at if is_number(created_at) else stamp,
            updated_at=updated_at if is_number(updated_at) else None,
            notes=list(notes) if isinstance(notes, list) else [],
            acts=normalize(raw.get("acts"), now=stamp),
            sections=normalize(raw.get("sections"), now=stamp),
            shots=normalize(raw.get("shots"), now=stamp),
            extra={k: v for k, v in raw.items() if k not in DOCUMENT_KEYS},
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"createdAt": self.created_at}
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        data["notes"] = list(self.notes)
        for kind in IntervalKind:
            data[kind.value] = [item.to_dict() for item in self.collection(kind)]
        data.update(self.extra)
        return data

    def collection(self, kind: IntervalKind) -> list[Interval]:
        """Get the interval collection for a granularity."""
        return getattr(self, _FIELD_BY_KIND[kind])

    def with_collection(
        self, kind: IntervalKind, items: list[Interval]
    ) -> "AnnotationDocument":
        """Return a copy with one collection replaced."""
        return replace(self, **{_FIELD_BY_KIND[kind]: items})

    def touched(self, at: float) -> "AnnotationDocument":
        """Return a copy with ``updated_at`` set to ``at``."""
        return replace(self, updated_at=at)


_FIELD_BY_KIND = {
    IntervalKind.ACT: "acts",
    IntervalKind.SECTION: "sections",
    IntervalKind.SHOT: "shots",
}
