"""Error taxonomy surfaced by the cut pipeline.

Each error carries a ``kind`` string and an HTTP ``status_code`` so callers
can tell bad input apart from processing and delivery failures.
"""


class AudioSnipError(Exception):
    kind = "error"
    status_code = 500


class InputMissingError(AudioSnipError):
    """No source audio or no deletion list was supplied."""

    kind = "input_missing"
    status_code = 400


class InvalidTimelineError(InputMissingError):
    """The deletion list could not be decoded into time ranges."""

    kind = "invalid_timeline"


class NothingToKeepError(InputMissingError):
    """The deletions cover the whole source, leaving nothing to output."""

    kind = "nothing_to_keep"


class MetadataError(AudioSnipError):
    """Probing the source failed (corrupt or unsupported container)."""

    kind = "metadata"
    status_code = 422


class ExtractionError(AudioSnipError):
    """One or more clip extractions failed."""

    kind = "extraction"


class ConcatenationError(AudioSnipError):
    """Merging the clips failed, e.g. because of incompatible streams."""

    kind = "concatenation"


class DeliveryError(AudioSnipError):
    """The merged audio could not be handed to the requester."""

    kind = "delivery"


class CleanupError(AudioSnipError):
    """Releasing a temporary artifact failed. Logged, never raised."""

    kind = "cleanup"


class FFmpegNotFoundError(AudioSnipError):
    """ffmpeg or ffprobe is not installed on the server."""

    kind = "ffmpeg_missing"
    status_code = 503
