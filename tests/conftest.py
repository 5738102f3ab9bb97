"""Shared test fixtures."""

import threading
from pathlib import Path

import pytest

from audiosnip.errors import ExtractionError
from audiosnip.models import ProbeResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeBackend:
    """In-process stand-in for ffmpeg.

    Each clip is written as a text line naming its source range, and concat
    joins the clip files byte for byte, so the output shows exactly which
    ranges were kept and in what order.
    """

    def __init__(
        self,
        duration: float = 10.0,
        fail_extract_at: float | None = None,
        probe_error: Exception | None = None,
        concat_error: Exception | None = None,
    ):
        self.duration = duration
        self.fail_extract_at = fail_extract_at
        self.probe_error = probe_error
        self.concat_error = concat_error
        self.extracted: list[tuple[float, float, Path]] = []
        self.concat_calls: list[list[Path]] = []
        self._lock = threading.Lock()

    def probe(self, source: Path) -> ProbeResult:
        if self.probe_error is not None:
            raise self.probe_error
        return ProbeResult(
            duration=self.duration,
            codec_audio="mp3",
            sample_rate=44100,
            channels=2,
            format_name="mp3",
        )

    def extract(self, source: Path, start: float, duration: float, dest: Path) -> None:
        if self.fail_extract_at is not None and start == self.fail_extract_at:
            raise ExtractionError(f"simulated read error at {start}")
        dest.write_text(f"{start:g}-{start + duration:g}\n")
        with self._lock:
            self.extracted.append((start, duration, dest))

    def concat(self, clips: list[Path], list_path: Path, dest: Path) -> None:
        self.concat_calls.append(list(clips))
        list_path.write_text("\n".join(f"file '{c}'" for c in clips))
        if self.concat_error is not None:
            raise self.concat_error
        dest.write_bytes(b"".join(c.read_bytes() for c in clips))


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    p = tmp_path / "input.mp3"
    p.write_bytes(b"ID3 fake audio")
    return p


@pytest.fixture
def work_root(tmp_path: Path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root
