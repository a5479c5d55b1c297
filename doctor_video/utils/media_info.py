"""Media file information utilities using FFprobe."""

import json
import subprocess

from doctor_video.config import get_settings


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise RuntimeError(f"ffprobe could not be started: {e}")
    if result.returncode != 0:
        raise RuntimeError(f"ffprobe failed: {result.stderr}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse ffprobe output: {e}")


def probe_duration_seconds(file_path: str) -> float:
    """
    Get media file duration in seconds.

    Args:
        file_path: Path to media file

    Returns:
        Duration in seconds (always > 0)

    Raises:
        RuntimeError: If ffprobe fails or no usable duration is reported
    """
    data = _run_ffprobe(file_path, "-show_format")
    format_info = data.get("format", {})

    if "duration" not in format_info:
        raise RuntimeError(f"Duration not found in: {file_path}")

    try:
        duration = float(format_info["duration"])
    except (TypeError, ValueError):
        raise RuntimeError(f"Invalid duration {format_info['duration']!r} in: {file_path}")
    if duration <= 0:
        raise RuntimeError(f"Non-positive duration in: {file_path}")
    return duration
