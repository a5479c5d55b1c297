"""FFmpeg invocation for one composition graph.

Progress comes from ``-progress pipe:1``: ffmpeg prints ``key=value`` lines
on stdout, and ``out_time_us`` gives the encoded timestamp. Percentages are
computed against an assumed base video duration (``assumed_video_duration_s``),
not the real file, unless duration probing is enabled.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from doctor_video.config import get_settings
from doctor_video.exceptions import DoctorVideoError, RenderFailedError
from doctor_video.render.assets import AssetSet
from doctor_video.render.composition import CompositionGraph
from doctor_video.utils.media_info import probe_duration_seconds

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Lines of ffmpeg stderr kept as the failure diagnostic
STDERR_TAIL_LINES = 5


@dataclass(frozen=True)
class OutputProfile:
    """Encoding settings for the final MP4."""

    video_codec: str = "libx264"
    preset: str = "ultrafast"
    pixel_format: str = "yuv420p"
    movflags: str = "+faststart"
    audio_codec: str = "aac"

    @classmethod
    def from_settings(cls) -> "OutputProfile":
        settings = get_settings()
        return cls(
            video_codec=settings.video_codec,
            preset=settings.video_preset,
            pixel_format=settings.pixel_format,
            movflags=settings.movflags,
            audio_codec=settings.audio_codec,
        )

    def to_args(self) -> list[str]:
        return [
            "-c:v", self.video_codec,
            "-preset", self.preset,
            "-pix_fmt", self.pixel_format,
            "-movflags", self.movflags,
            "-c:a", self.audio_codec,
        ]


@dataclass
class RenderResult:
    """Outcome of a render: an output path or a typed failure."""

    output_path: Optional[Path] = None
    error: Optional[DoctorVideoError] = None
    used_fallback: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.output_path is not None

    @classmethod
    def success(cls, output_path: Path, used_fallback: bool = False) -> "RenderResult":
        return cls(output_path=output_path, used_fallback=used_fallback)

    @classmethod
    def failure(cls, error: DoctorVideoError, used_fallback: bool = False) -> "RenderResult":
        return cls(error=error, used_fallback=used_fallback)


def parse_timemark(timemark: str) -> Optional[float]:
    """Convert an ``HH:MM:SS.ms`` timemark to seconds."""
    parts = timemark.strip().lstrip("-").split(":")
    if len(parts) != 3:
        return None
    try:
        hours, minutes, seconds = int(parts[0]), int(parts[1]), float(parts[2])
    except ValueError:
        return None
    return hours * 3600 + minutes * 60 + seconds


def parse_progress_seconds(line: str) -> Optional[float]:
    """Extract encoded time in seconds from one ``-progress`` line.

    Returns None for lines that carry no time (or ``N/A``).
    """
    key, sep, value = line.strip().partition("=")
    if not sep:
        return None
    # out_time_ms is in microseconds too (long-standing ffmpeg quirk)
    if key in ("out_time_us", "out_time_ms"):
        try:
            return max(0, int(value)) / 1_000_000
        except ValueError:
            return None
    if key == "out_time":
        return parse_timemark(value)
    return None


class ProgressEstimator:
    """Maps elapsed encoded time to a percentage that never goes backwards."""

    def __init__(self, total_duration_s: float):
        self.total_duration_s = total_duration_s
        self.last_percent = -1

    def update(self, elapsed_s: float) -> Optional[int]:
        """Return the new percentage, or None when it did not increase."""
        if self.total_duration_s <= 0:
            return None
        percent = min(100, round(max(0.0, elapsed_s) / self.total_duration_s * 100))
        if percent <= self.last_percent:
            return None
        self.last_percent = percent
        return percent


def build_command(
    ffmpeg_path: str,
    base_video: Path,
    graph: CompositionGraph,
    assets: AssetSet,
    output_path: Path,
    profile: OutputProfile,
) -> list[str]:
    """Build the ffmpeg command line for a composition graph."""
    cmd = [ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error", "-i", str(base_video)]
    for role in graph.inputs:
        cmd.extend(["-i", str(assets.path(role))])

    cmd.extend([
        "-filter_complex", graph.to_filter_complex(),
        "-map", f"[{graph.terminal}]",
        # Base video audio, if it has any
        "-map", "0:a?",
        *profile.to_args(),
        "-progress", "pipe:1",
        "-nostats",
        str(output_path),
    ])
    return cmd


class RenderExecutor:
    """Runs ffmpeg once per call and reports progress."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        profile: Optional[OutputProfile] = None,
        total_duration_s: float = 152.0,
        probe_duration: bool = False,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.profile = profile or OutputProfile()
        self.total_duration_s = total_duration_s
        self.probe_duration = probe_duration
        self._probed: dict[Path, float] = {}

    @classmethod
    def from_settings(cls) -> "RenderExecutor":
        settings = get_settings()
        return cls(
            ffmpeg_path=settings.ffmpeg_path,
            profile=OutputProfile.from_settings(),
            total_duration_s=settings.assumed_video_duration_s,
            probe_duration=settings.probe_video_duration,
        )

    async def render(
        self,
        base_video: Path,
        graph: CompositionGraph,
        assets: AssetSet,
        output_path: Path,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RenderResult:
        """Encode the base video through ``graph`` into ``output_path``.

        Encoder failures are returned as a failed RenderResult, never raised.
        No partial output file is left behind on failure.
        """
        cmd = build_command(self.ffmpeg_path, base_video, graph, assets, output_path, self.profile)
        mode = "text" if graph.includes_text else "fallback"
        logger.info(f"[RENDER] FFmpeg start ({mode})")
        logger.info(f"[RENDER] filter_complex: {graph.to_filter_complex()}")

        estimator = ProgressEstimator(await self._duration_for(base_video))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return self._failed(output_path, f"Could not start ffmpeg: {e}")

        # Drain stderr concurrently so a chatty encoder cannot block on a full pipe
        stderr_task = asyncio.create_task(proc.stderr.read())
        try:
            try:
                async for raw_line in proc.stdout:
                    elapsed = parse_progress_seconds(raw_line.decode("utf-8", errors="replace"))
                    if elapsed is None or on_progress is None:
                        continue
                    percent = estimator.update(elapsed)
                    if percent is not None:
                        on_progress(percent)
            except (OSError, ValueError) as e:
                logger.warning(f"[RENDER] Error reading FFmpeg progress: {e}")
                _kill(proc)
                await proc.wait()
                stderr_task.cancel()
                return self._failed(output_path, f"Encoder stream error: {e}")

            stderr_output = await stderr_task
            returncode = await proc.wait()
        except asyncio.CancelledError:
            _kill(proc)
            stderr_task.cancel()
            raise

        if returncode != 0:
            diagnostic = _stderr_tail(stderr_output) or f"ffmpeg exited with code {returncode}"
            logger.error(f"[RENDER] FFmpeg failed ({mode}, code {returncode}): {diagnostic}")
            return self._failed(output_path, diagnostic)

        if not output_path.exists():
            return self._failed(output_path, "ffmpeg finished without writing an output file")

        logger.info(f"[RENDER] FFmpeg finished ({mode}): {output_path}")
        return RenderResult.success(output_path)

    async def _duration_for(self, base_video: Path) -> float:
        if not self.probe_duration:
            return self.total_duration_s
        if base_video not in self._probed:
            try:
                self._probed[base_video] = await asyncio.to_thread(probe_duration_seconds, str(base_video))
            except RuntimeError as e:
                logger.warning(f"[RENDER] Duration probe failed, using estimate: {e}")
                return self.total_duration_s
        return self._probed[base_video]

    def _failed(self, output_path: Path, diagnostic: str) -> RenderResult:
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[RENDER] Could not remove partial output {output_path}: {e}")
        return RenderResult.failure(RenderFailedError(diagnostic))


def _stderr_tail(stderr_output: bytes) -> str:
    lines = [line for line in stderr_output.decode("utf-8", errors="replace").splitlines() if line.strip()]
    return "\n".join(lines[-STDERR_TAIL_LINES:])


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            # Exited between the check and the signal
            pass
