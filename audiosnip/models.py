"""Shared data types used across AudioSnip."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass
class TimeRange:
    """A start/end time pair in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class ProbeResult:
    """Metadata extracted from an audio file via ffprobe."""

    duration: float
    codec_audio: str
    sample_rate: int
    channels: int
    format_name: str
    bit_rate: int | None = None


class MediaBackend(Protocol):
    """The external capabilities the cut pipeline relies on."""

    def probe(self, source: Path) -> ProbeResult: ...

    def extract(self, source: Path, start: float, duration: float, dest: Path) -> None: ...

    def concat(self, clips: list[Path], list_path: Path, dest: Path) -> None: ...
