"""Ownership tracking for the ephemeral files a job creates."""

import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ArtifactLifecycleManager:
    """Deletes every registered path exactly once when the job ends.

    Paths are registered as soon as they are allocated, before anything is
    written, so a half-written file is still cleaned up. ``release`` hands a
    path over to another owner (the download endpoint for a delivered output).
    Deletion failures are logged and never raised.
    """

    def __init__(self) -> None:
        # dict keeps registration order and deduplicates
        self._paths: dict[Path, None] = {}
        self._cleaned = False

    @property
    def tracked(self) -> list[Path]:
        return list(self._paths)

    def register(self, path: PathLike) -> Path:
        """Take ownership of a path. Returns it as a Path."""
        path = Path(path)
        if self._cleaned:
            # Too late for the end-of-job sweep; delete right away instead.
            logger.warning(f"[CLEANUP] Path registered after cleanup: {path}")
            self._delete(path)
            return path
        self._paths[path] = None
        return path

    def release(self, path: PathLike) -> None:
        """Stop tracking a path without deleting it."""
        self._paths.pop(Path(path), None)

    def cleanup(self) -> list[Path]:
        """Delete all tracked paths.

        Safe to call more than once; only the first call deletes anything.

        Returns:
            Paths that were actually removed from disk
        """
        if self._cleaned:
            return []
        self._cleaned = True

        removed = []
        paths, self._paths = list(self._paths), {}
        for path in paths:
            if self._delete(path):
                removed.append(path)
        if removed:
            logger.info(f"[CLEANUP] Removed {len(removed)} temporary file(s)")
        return removed

    def _delete(self, path: Path) -> bool:
        try:
            if not path.exists():
                return False
            path.unlink()
            return True
        except OSError as e:
            logger.warning(f"[CLEANUP] Failed to delete {path}: {e}")
            return False

    def __enter__(self) -> "ArtifactLifecycleManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
