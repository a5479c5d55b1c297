"""Scratch directories for uploads, intermediate assets and rendered videos."""

import re
import time
import uuid
from pathlib import Path
from typing import Optional

from doctor_video.config import get_settings

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def unique_token() -> str:
    """Millisecond timestamp plus a random suffix.

    The timestamp keeps names sortable; the suffix keeps concurrent jobs
    that start in the same millisecond apart.
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def safe_filename(filename: str, default: str = "upload") -> str:
    """Reduce a client-supplied file name to a safe basename."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or default


class WorkspaceProvider:
    """Hands out unique scratch paths inside the configured directories.

    Directories are shared across jobs; every file name carries a unique
    token, so jobs never collide.
    """

    def __init__(self, uploads_dir: Path, temp_dir: Path, output_dir: Path) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        for directory in (self.uploads_dir, self.temp_dir, self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls) -> "WorkspaceProvider":
        settings = get_settings()
        return cls(
            uploads_dir=Path(settings.uploads_dir),
            temp_dir=Path(settings.temp_dir),
            output_dir=Path(settings.output_dir),
        )

    def upload_path(self, original_filename: str) -> Path:
        return self.uploads_dir / f"{unique_token()}-{safe_filename(original_filename)}"

    def temp_path(self, prefix: str, suffix: str = ".png") -> Path:
        return self.temp_dir / f"{prefix}-{unique_token()}{suffix}"

    def output_path(self, suffix: str = ".mp4") -> Path:
        return self.output_dir / f"video-{unique_token()}{suffix}"

    def resolve_output(self, filename: str) -> Optional[Path]:
        """Map a download file name to a path inside the output directory.

        Returns None for anything that is not a plain file name, so a request
        can never reach outside the output directory.
        """
        if not filename or filename in (".", "..") or "/" in filename or "\\" in filename:
            return None
        if filename != Path(filename).name:
            return None
        return self.output_dir / filename
