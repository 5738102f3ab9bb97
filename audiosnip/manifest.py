"""JSON manifest schema — the contract between CLI/API and engine."""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from audiosnip.errors import InvalidTimelineError
from audiosnip.models import TimeRange


@dataclass
class CutConfig:
    """Configuration for resolving deletions and running ffmpeg."""

    mode: str = "merged"
    allow_empty: bool = False
    timeout: float | None = 300.0
    max_workers: int = 4
    audio_codec: str | None = None


@dataclass
class Manifest:
    """Top-level cut manifest."""

    input: Path
    output: Path
    deletions: list[TimeRange] = field(default_factory=list)
    version: str = "1"
    cut: CutConfig = field(default_factory=CutConfig)


def _to_seconds(value: Any, key: str, index: int) -> float:
    if isinstance(value, bool) or value is None:
        raise InvalidTimelineError(f"Timeline {index}: '{key}' must be a number")
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise InvalidTimelineError(f"Timeline {index}: '{key}' must be a number") from None
    if not math.isfinite(seconds):
        raise InvalidTimelineError(f"Timeline {index}: '{key}' must be finite")
    return seconds


def parse_timelines(data: Any) -> list[TimeRange]:
    """Decode a list of ``{"start": s, "end": e}`` objects into TimeRanges.

    ``data`` may be the already-decoded list or its JSON text. Only the shape
    is checked here; ordering and bounds are the resolver's business.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidTimelineError(f"Timelines are not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise InvalidTimelineError("Timelines must be a JSON list")

    ranges: list[TimeRange] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or "start" not in item or "end" not in item:
            raise InvalidTimelineError(f"Timeline {i} must have 'start' and 'end'")
        ranges.append(
            TimeRange(
                start=_to_seconds(item["start"], "start", i),
                end=_to_seconds(item["end"], "end", i),
            )
        )
    return ranges


def load_manifest(path: str | Path) -> Manifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    cut = CutConfig(**data["cut"]) if "cut" in data else CutConfig()

    return Manifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        deletions=parse_timelines(data.get("deletions", [])),
        cut=cut,
    )
