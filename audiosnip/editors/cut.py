"""Cut editor — extracts retention ranges as clips and joins them in order."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable

from audiosnip.errors import (
    AudioSnipError,
    ConcatenationError,
    ExtractionError,
    FFmpegNotFoundError,
)
from audiosnip.models import MediaBackend, TimeRange
from audiosnip.workspace import Workspace

logger = logging.getLogger(__name__)


def extract_clips(
    backend: MediaBackend,
    source: Path,
    ranges: list[TimeRange],
    workspace: Workspace,
    suffix: str,
    max_workers: int = 4,
    on_progress: Callable[[float], None] | None = None,
) -> list[Path]:
    """Extract every range to its own workspace file, concurrently.

    All-or-nothing: the first failure cancels extractions that have not
    started yet, waits for running ones, and raises ExtractionError. The clip
    paths are reserved in the workspace before any work starts, so whatever
    was written is removed when the workspace closes.
    """
    clip_paths = [workspace.path(f"clip-{i:04d}{suffix}") for i in range(len(ranges))]
    if not ranges:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(ranges)))) as executor:
        futures = {
            executor.submit(backend.extract, source, r.start, r.duration, clip_paths[i]): i
            for i, r in enumerate(ranges)
        }
        for done_count, fut in enumerate(as_completed(futures), start=1):
            exc = fut.exception()
            if exc is not None:
                for other in futures:
                    other.cancel()
                idx = futures[fut]
                logger.error("extraction of clip %d %s failed: %s", idx, ranges[idx], exc)
                if isinstance(exc, (ExtractionError, FFmpegNotFoundError)):
                    raise exc
                raise ExtractionError(
                    f"Error processing audio segment {idx}: {exc}"
                ) from exc
            if on_progress:
                on_progress(done_count / len(ranges))

    return clip_paths


def concat_clips(
    backend: MediaBackend,
    clips: list[Path],
    workspace: Workspace,
    output_path: Path,
) -> Path:
    """Join ``clips`` in the given order into ``output_path`` with stream copy."""
    if not clips:
        raise ConcatenationError("concat_clips called with empty clip list")

    list_path = workspace.path("concat-list.txt")
    try:
        backend.concat(clips, list_path, output_path)
    except (ConcatenationError, FFmpegNotFoundError):
        raise
    except AudioSnipError as e:
        raise ConcatenationError(str(e)) from e
    except OSError as e:
        raise ConcatenationError(f"Error merging audio: {e}") from e
    return output_path
