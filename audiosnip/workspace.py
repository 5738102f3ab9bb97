"""Per-invocation scratch space for intermediate audio files."""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path

from audiosnip.errors import CleanupError

logger = logging.getLogger(__name__)


class Workspace:
    """A directory owned by exactly one cut invocation.

    The directory name is a generated scope id, so concurrent invocations
    sharing the same root never collide. Every path handed out by
    :meth:`path` is tracked and removed by :meth:`close`, whether or not the
    file was ever written.
    """

    def __init__(self, root: Path | None = None, scope_id: str | None = None):
        self.scope_id = scope_id or uuid.uuid4().hex[:12]
        self.root = Path(root) if root is not None else Path(tempfile.gettempdir())
        self.dir = self.root / f"audiosnip-{self.scope_id}"
        self.artifacts: list[Path] = []
        self.cleanup_errors: list[CleanupError] = []
        self.closed = False

    def __enter__(self) -> "Workspace":
        self.dir.mkdir(parents=True, exist_ok=True)
        logger.debug("workspace %s created at %s", self.scope_id, self.dir)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def path(self, name: str) -> Path:
        """Reserve a path for an artifact inside the workspace."""
        p = self.dir / name
        self.artifacts.append(p)
        return p

    def close(self) -> None:
        """Remove every tracked artifact and the directory itself.

        Failures are logged and recorded on ``cleanup_errors``; they never
        propagate, so they cannot mask the error that triggered cleanup.
        """
        if self.closed:
            return
        self.closed = True

        for p in reversed(self.artifacts):
            try:
                p.unlink(missing_ok=True)
            except OSError as e:
                self._record(CleanupError(f"could not remove {p}: {e}"))

        try:
            shutil.rmtree(self.dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            self._record(CleanupError(f"could not remove {self.dir}: {e}"))

        logger.debug("workspace %s cleaned up", self.scope_id)

    def _record(self, err: CleanupError) -> None:
        self.cleanup_errors.append(err)
        logger.warning("cleanup failed in workspace %s: %s", self.scope_id, err)
