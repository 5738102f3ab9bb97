"""Orchestrator — probes, resolves, extracts and merges one cut request."""

import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

from audiosnip import ffutil
from audiosnip.analyzers.retention import merge_ranges, removed_duration, resolve
from audiosnip.editors.cut import concat_clips, extract_clips
from audiosnip.errors import (
    AudioSnipError,
    CleanupError,
    DeliveryError,
    InputMissingError,
    InvalidTimelineError,
    MetadataError,
    NothingToKeepError,
)
from audiosnip.manifest import CutConfig, Manifest
from audiosnip.models import MediaBackend, TimeRange
from audiosnip.workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".mp3"

# Extensions ffmpeg maps to a muxer that can hold a single audio stream
AUDIO_SUFFIXES = frozenset({
    ".aac", ".aif", ".aiff", ".flac", ".m4a", ".mka", ".mp3",
    ".mp4", ".oga", ".ogg", ".opus", ".wav", ".webm", ".wma",
})


class Stage(str, Enum):
    UPLOADED = "uploaded"
    PROBED = "probed"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    CONCATENATING = "concatenating"
    READY = "ready"
    DELIVERED = "delivered"
    CLEANED_UP = "cleaned_up"
    FAILED = "failed"


@dataclass
class CutResult:
    """State of one cut invocation; ``output_path`` is valid inside the session."""

    source: Path
    scope_id: str
    stage: Stage = Stage.UPLOADED
    output_path: Path | None = None
    duration_original: float = 0.0
    retention: list[TimeRange] = field(default_factory=list)
    error: Exception | None = None
    cleanup_errors: list[CleanupError] = field(default_factory=list)
    failed_at: Stage | None = None

    @property
    def segments_kept(self) -> int:
        return len(self.retention)

    @property
    def duration_final(self) -> float:
        return sum(r.duration for r in self.retention)

    @property
    def duration_removed(self) -> float:
        return removed_duration(self.duration_original, self.retention)

    def fail(self, error: Exception) -> None:
        if self.stage is not Stage.FAILED:
            self.failed_at = self.stage
        self.stage = Stage.FAILED
        self.error = error


@dataclass
class EngineResult:
    output_path: Path
    segments_kept: int = 0
    segments_removed: int = 0
    duration_original: float = 0.0
    duration_final: float = 0.0
    duration_removed: float = 0.0


def container_suffix(filename: str | Path) -> str:
    """Lower-cased extension of ``filename`` if ffmpeg can write it, else ``.mp3``."""
    suffix = Path(filename).suffix.lower()
    return suffix if suffix in AUDIO_SUFFIXES else DEFAULT_SUFFIX


@contextmanager
def cut_session(
    source: Path | None,
    deletions: list[TimeRange] | None,
    config: CutConfig | None = None,
    backend: MediaBackend | None = None,
    workspace: Workspace | None = None,
    work_root: Path | None = None,
    on_progress: Callable[[str, float], None] | None = None,
) -> Iterator[CutResult]:
    """Run the cut pipeline and hand the merged audio to the caller.

    The yielded result's ``output_path`` is only valid inside the ``with``
    block. On exit, normal or not, the workspace and everything in it is
    removed. If ``workspace`` is given the session takes ownership of it,
    which lets a caller stage the source file in the same scratch space.

    Args:
        source: Audio file to cut.
        deletions: Ranges to remove, in caller order.
        config: Resolve mode, timeouts and parallelism.
        backend: Probe/extract/concat capabilities; ffmpeg when omitted.
        on_progress: Optional callback(stage_name, fraction_complete).
    """
    if source is None:
        raise InputMissingError("Audio file is missing.")
    if deletions is None:
        raise InputMissingError("Timeline is missing.")

    config = config or CutConfig()
    if backend is None:
        backend = ffutil.FFmpegBackend(timeout=config.timeout, audio_codec=config.audio_codec)
    ws = workspace or Workspace(work_root)
    source = Path(source)
    result = CutResult(source=source, scope_id=ws.scope_id)

    def _progress(stage: Stage, frac: float) -> None:
        result.stage = stage
        logger.debug("[%s] %s (%.0f%%)", ws.scope_id, stage.value, frac * 100)
        if on_progress:
            on_progress(stage.value, frac)

    def _sub_progress(stage: Stage, base: float, span: float):
        def cb(frac: float) -> None:
            _progress(stage, base + frac * span)
        return cb

    def _fail(error: Exception) -> None:
        result.fail(error)
        kind = getattr(error, "kind", type(error).__name__)
        logger.error(
            "[%s] cut failed at %s (%s): %s", ws.scope_id, result.failed_at.value, kind, error
        )

    try:
        with ws:
            try:
                _progress(Stage.UPLOADED, 0.0)
                # A failed probe fails the probed stage
                result.stage = Stage.PROBED
                try:
                    probe_result = backend.probe(source)
                except AudioSnipError:
                    raise
                except Exception as e:
                    raise MetadataError(f"Error getting audio metadata: {e}") from e
                result.duration_original = probe_result.duration
                _progress(Stage.PROBED, 0.1)

                try:
                    result.retention = resolve(probe_result.duration, deletions, mode=config.mode)
                except ValueError as e:
                    raise InvalidTimelineError(str(e)) from e
                suffix = container_suffix(source)
                output_path = ws.path(f"output{suffix}")

                if not result.retention:
                    if not config.allow_empty:
                        raise NothingToKeepError(
                            "The deletions cover the whole audio; nothing is left to keep."
                        )
                    output_path.write_bytes(b"")
                else:
                    _progress(Stage.EXTRACTING, 0.1)
                    clips = extract_clips(
                        backend,
                        source,
                        result.retention,
                        ws,
                        suffix,
                        max_workers=config.max_workers,
                        on_progress=_sub_progress(Stage.EXTRACTING, 0.1, 0.7),
                    )
                    _progress(Stage.EXTRACTED, 0.8)

                    _progress(Stage.CONCATENATING, 0.85)
                    concat_clips(backend, clips, ws, output_path)

                result.output_path = output_path
                _progress(Stage.READY, 0.95)
            except Exception as e:
                _fail(e)
                raise

            try:
                yield result
            except Exception as e:
                _fail(e)
                raise

            if result.stage is not Stage.FAILED:
                _progress(Stage.DELIVERED, 1.0)
    finally:
        result.cleanup_errors = list(ws.cleanup_errors)
        if result.stage is not Stage.FAILED:
            _progress(Stage.CLEANED_UP, 1.0)
            logger.info(
                "[%s] cut %.2fs -> %.2fs in %d segment(s)",
                ws.scope_id, result.duration_original, result.duration_final, result.segments_kept,
            )


def process(
    manifest: Manifest,
    backend: MediaBackend | None = None,
    on_progress: Callable[[str, float], None] | None = None,
    work_root: Path | None = None,
) -> EngineResult:
    """Execute a manifest and write the cut audio to ``manifest.output``."""
    if backend is None:
        ffutil.check_ffmpeg()
    if not manifest.input.exists():
        raise InputMissingError(f"Input file not found: {manifest.input}")

    with cut_session(
        manifest.input,
        manifest.deletions,
        config=manifest.cut,
        backend=backend,
        work_root=work_root,
        on_progress=on_progress,
    ) as result:
        try:
            manifest.output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(result.output_path, manifest.output)
        except OSError as e:
            err = DeliveryError(f"Could not write {manifest.output}: {e}")
            result.fail(err)
            raise err from e

    return EngineResult(
        output_path=manifest.output,
        segments_kept=result.segments_kept,
        segments_removed=len(merge_ranges(manifest.deletions, result.duration_original)),
        duration_original=result.duration_original,
        duration_final=result.duration_final,
        duration_removed=result.duration_removed,
    )
