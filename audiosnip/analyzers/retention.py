"""Retention analyzer — turns deletion ranges into the ranges to keep."""

import logging

from audiosnip.models import TimeRange

logger = logging.getLogger(__name__)

MODES = ("merged", "cursor")


def merge_ranges(
    ranges: list[TimeRange], duration: float | None = None
) -> list[TimeRange]:
    """Sort ranges and fuse any that overlap or touch.

    When ``duration`` is given each range is first clamped to ``[0, duration]``.
    Ranges that end up empty or inverted are dropped.
    """
    cleaned: list[TimeRange] = []
    for r in ranges:
        start, end = r.start, r.end
        if duration is not None:
            start = min(max(start, 0.0), duration)
            end = min(max(end, 0.0), duration)
        if end > start:
            cleaned.append(TimeRange(start=start, end=end))

    cleaned.sort(key=lambda r: (r.start, r.end))

    merged: list[TimeRange] = []
    for r in cleaned:
        if merged and r.start <= merged[-1].end:
            merged[-1].end = max(merged[-1].end, r.end)
        else:
            merged.append(r)
    return merged


def _walk(duration: float, deletions: list[TimeRange]) -> list[TimeRange]:
    keep: list[TimeRange] = []
    cursor = 0.0

    for d in deletions:
        if d.start > cursor:
            keep.append(TimeRange(start=cursor, end=d.start))
        # Unconditional: an earlier-ending deletion moves the cursor back
        cursor = d.end

    if cursor < duration:
        keep.append(TimeRange(start=cursor, end=duration))
    return keep


def resolve(
    duration: float, deletions: list[TimeRange], mode: str = "merged"
) -> list[TimeRange]:
    """Return the ranges of ``[0, duration)`` that survive the deletions.

    Modes:
        ``"merged"``: deletions are clamped, sorted and merged first, so the
        result is always ascending, disjoint and inside ``[0, duration]``.
        ``"cursor"``: deletions are walked exactly in the order given. Unsorted
        or overlapping input can then yield retention ranges that overlap each
        other or run past ``duration``; kept for callers that depend on the
        legacy cut-audio behaviour.
    """
    if duration < 0:
        raise ValueError(f"duration must be non-negative, got {duration}")
    if mode not in MODES:
        raise ValueError(f"Unknown resolve mode {mode!r}; expected one of {MODES}")

    if mode == "merged":
        keep = _walk(duration, merge_ranges(deletions, duration))
    else:
        keep = _walk(duration, list(deletions))
        if any(b.start < a.end for a, b in zip(keep, keep[1:])) or (
            keep and keep[-1].end > duration
        ):
            logger.warning(
                "cursor mode produced overlapping or out-of-bounds retention ranges: %s",
                keep,
            )

    logger.debug("resolved %d deletions into %d retention ranges", len(deletions), len(keep))
    return keep


def removed_duration(duration: float, retention: list[TimeRange]) -> float:
    """Seconds of source audio not covered by ``retention``."""
    return max(duration - sum(r.duration for r in retention), 0.0)
