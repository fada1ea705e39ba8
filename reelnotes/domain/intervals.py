"""Operations on an ordered collection of intervals of one granularity.

All functions are pure: they take a list of intervals and return a new list,
leaving the input untouched. Order is append order, not ``start`` order.

``normalize`` is the only entry point for untyped data; every other function
assumes its input already went through it.
"""

import logging
from collections.abc import Iterable
from typing import Any

from .models import Interval, IntervalPatch, is_number, now_ms

logger = logging.getLogger(__name__)


def _max_key(items: Iterable[Interval]) -> float | None:
    keys = [item.created_at for item in items]
    return max(keys) if keys else None


def next_key(items: list[Interval], now: float | None = None) -> float:
    """Generate a ``created_at`` key unique within ``items``.

    Uses the current time unless a key at or after it is already taken, in
    which case the key just after the newest existing one is used.
    """
    stamp = now_ms() if now is None else now
    newest = _max_key(items)
    if newest is not None and stamp <= newest:
        return newest + 1
    return stamp


def normalize(raw: Any, now: float | None = None) -> list[Interval]:
    """Sanitize untyped data (e.g. parsed JSON) into a list of intervals.

    Elements without a numeric ``start`` (or legacy ``time``) are dropped.
    ``end`` is copied only when numeric, ``title`` and ``note`` only when
    strings. Elements without a numeric ``createdAt`` get a freshly
    generated one that does not collide with any key in the result.
    """
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning(
                f"Expected a list of intervals, got {type(raw).__name__}; ignoring"
            )
        return []

    candidates: list[tuple[dict, Any]] = []
    dropped = 0
    for element in raw:
        if not isinstance(element, dict):
            dropped += 1
            continue
        start = element.get("start")
        if not is_number(start):
            start = element.get("time")
        if not is_number(start):
            dropped += 1
            continue
        candidates.append((element, start))

    if dropped:
        logger.info(f"Dropped {dropped} interval(s) without a usable start")

    explicit = [
        element["createdAt"]
        for element, _ in candidates
        if is_number(element.get("createdAt"))
    ]
    fresh = now_ms() if now is None else now
    if explicit and fresh <= max(explicit):
        fresh = max(explicit) + 1

    result: list[Interval] = []
    for element, start in candidates:
        created_at = element.get("createdAt")
        if not is_number(created_at):
            created_at = fresh
            fresh += 1

        end = element.get("end")
        title = element.get("title")
        note = element.get("note")
        result.append(
            Interval(
                start=start,
                created_at=created_at,
                end=end if is_number(end) else None,
                title=title if isinstance(title, str) else None,
                note=note if isinstance(note, str) else None,
            )
        )
    return result


def close_open(items: list[Interval], at_time: float) -> list[Interval]:
    """Close the last interval at ``at_time`` if it is open.

    Returns the collection unchanged otherwise, so repeated calls are
    harmless.
    """
    if not items or not items[-1].is_open():
        return list(items)
    return [*items[:-1], items[-1].close(at_time)]


def append(
    items: list[Interval], at_time: float, now: float | None = None
) -> list[Interval]:
    """Start a new open interval at ``at_time``.

    A still-open last interval is closed at ``at_time`` first. The result is
    always exactly one element longer than ``items``.
    """
    closed = close_open(items, at_time)
    created = Interval(start=at_time, created_at=next_key(closed, now))
    return [*closed, created]


def update_by_key(
    items: list[Interval], key: float, patch: IntervalPatch
) -> list[Interval]:
    """Merge ``patch`` into the interval whose ``created_at`` equals ``key``.

    An unknown key leaves the collection unchanged.
    """
    return [patch.apply(item) if item.created_at == key else item for item in items]


def delete_by_key(items: list[Interval], key: float) -> list[Interval]:
    """Remove the interval whose ``created_at`` equals ``key``, if any."""
    return [item for item in items if item.created_at != key]


def find_by_key(items: list[Interval], key: float) -> Interval | None:
    for item in items:
        if item.created_at == key:
            return item
    return None
