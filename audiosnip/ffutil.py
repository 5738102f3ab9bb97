"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

from audiosnip.errors import (
    ConcatenationError,
    ExtractionError,
    FFmpegNotFoundError,
    MetadataError,
)
from audiosnip.models import ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0
EXECUTABLES = ("ffmpeg", "ffprobe")


class NoAudioStreamError(MetadataError):
    """Raised when the input file has no audio stream."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in EXECUTABLES:
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path, timeout: float | None = DEFAULT_TIMEOUT) -> ProbeResult:
    """Extract audio metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(
        cmd, capture_output=True, text=True, check=True, timeout=timeout
    )
    data = json.loads(result.stdout)

    audio_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "audio"), None
    )
    if audio_stream is None:
        raise NoAudioStreamError(f"No audio stream found in {input_path}")

    fmt = data.get("format", {})
    # Some containers only report duration on the stream
    raw_duration = fmt.get("duration", audio_stream.get("duration"))
    if raw_duration is None:
        raise MetadataError(f"ffprobe reported no duration for {input_path}")

    bit_rate = fmt.get("bit_rate")
    return ProbeResult(
        duration=float(raw_duration),
        codec_audio=audio_stream["codec_name"],
        sample_rate=int(audio_stream.get("sample_rate", 0)),
        channels=int(audio_stream.get("channels", 0)),
        format_name=fmt.get("format_name", ""),
        bit_rate=int(bit_rate) if bit_rate is not None else None,
    )


def extract_clip(
    input_path: Path,
    start: float,
    duration: float,
    output_path: Path,
    timeout: float | None = DEFAULT_TIMEOUT,
    audio_codec: str | None = None,
) -> Path:
    """Decode ``duration`` seconds of audio starting at ``start`` into its own file.

    The output container follows the suffix of ``output_path``; every clip of
    one job is written with the same settings so they can be joined with
    stream copy afterwards.
    """
    cmd = [
        "ffmpeg", "-y",
        "-i", str(input_path),
        "-ss", f"{start:.6f}",
        "-t", f"{duration:.6f}",
        "-vn",
        "-map_metadata", "-1",
    ]
    if audio_codec:
        cmd += ["-c:a", audio_codec]
    cmd.append(str(output_path))
    subprocess.run(cmd, capture_output=True, check=True, timeout=timeout)
    return output_path


def _quote_concat_path(path: Path) -> str:
    # concat demuxer syntax: single quotes, embedded quotes as '\''
    return "'" + path.resolve().as_posix().replace("'", "'\\''") + "'"


def write_concat_list(clips: list[Path], list_path: Path) -> Path:
    """Write an ffmpeg concat-demuxer list referencing ``clips`` in order."""
    lines = [f"file {_quote_concat_path(p)}" for p in clips]
    list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return list_path


def concat_clips(
    list_path: Path, output_path: Path, timeout: float | None = DEFAULT_TIMEOUT
) -> None:
    """Join the clips named in a concat list without re-encoding."""
    cmd = [
        "ffmpeg", "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(list_path),
        "-c", "copy",
        str(output_path),
    ]
    subprocess.run(cmd, capture_output=True, check=True, timeout=timeout)


def describe_failure(exc: BaseException) -> str:
    """Short human-readable reason for a failed subprocess call."""
    if isinstance(exc, subprocess.TimeoutExpired):
        return f"timed out after {exc.timeout:g}s"
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr if isinstance(exc.stderr, str) else (exc.stderr or b"").decode(errors="replace")
        return f"ffmpeg failed: {stderr.strip()[-500:]}" if stderr.strip() else str(exc)
    return str(exc)


def _raise_if_not_installed(exc: Exception) -> None:
    """Report a missing ffmpeg/ffprobe binary as a server-side failure."""
    if isinstance(exc, FileNotFoundError) and exc.filename in EXECUTABLES:
        raise FFmpegNotFoundError(f"{exc.filename} not found on PATH") from exc


class FFmpegBackend:
    """Runs the probe/extract/concat capabilities as ffmpeg processes.

    Subprocess failures are translated into the AudioSnip error taxonomy so
    the pipeline never has to know it is talking to ffmpeg.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT, audio_codec: str | None = None):
        self.timeout = timeout
        self.audio_codec = audio_codec

    def probe(self, source: Path) -> ProbeResult:
        try:
            return probe(source, timeout=self.timeout)
        except MetadataError:
            raise
        except (subprocess.SubprocessError, OSError, ValueError, KeyError) as e:
            _raise_if_not_installed(e)
            raise MetadataError(
                f"Error getting audio metadata: {describe_failure(e)}"
            ) from e

    def extract(self, source: Path, start: float, duration: float, dest: Path) -> None:
        logger.debug("extracting %.3fs at %.3fs -> %s", duration, start, dest.name)
        try:
            extract_clip(
                source, start, duration, dest,
                timeout=self.timeout, audio_codec=self.audio_codec,
            )
        except (subprocess.SubprocessError, OSError) as e:
            _raise_if_not_installed(e)
            raise ExtractionError(
                f"Error extracting {start:.3f}s+{duration:.3f}s: {describe_failure(e)}"
            ) from e

    def concat(self, clips: list[Path], list_path: Path, dest: Path) -> None:
        try:
            write_concat_list(clips, list_path)
            concat_clips(list_path, dest, timeout=self.timeout)
        except (subprocess.SubprocessError, OSError) as e:
            _raise_if_not_installed(e)
            raise ConcatenationError(f"Error merging audio: {describe_failure(e)}") from e
