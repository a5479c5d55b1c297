"""End-to-end render with the real ffmpeg binary."""

import subprocess
from pathlib import Path

import pytest

from doctor_video.render.executor import RenderExecutor
from doctor_video.render.job import RenderJob
from doctor_video.render.pipeline import VideoJobPipeline
from doctor_video.services.progress_channel import ProgressChannel
from doctor_video.utils.media_info import probe_duration_seconds

pytestmark = pytest.mark.requires_ffmpeg


@pytest.fixture
def real_base_video(tmp_path: Path) -> Path:
    """One second of 1920x1080 test pattern with a sine tone."""
    path = tmp_path / "base_video.mp4"
    subprocess.run(
        [
            "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
            "-f", "lavfi", "-i", "testsrc=size=1920x1080:rate=10:duration=1",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=1",
            "-c:v", "libx264", "-preset", "ultrafast", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-shortest", str(path),
        ],
        check=True,
    )
    return path


class TestRealRender:
    """Full pipeline against ffmpeg."""

    @pytest.mark.asyncio
    async def test_render_with_text(self, workspace, source_image, real_base_video):
        """The composited video keeps the base video's duration."""
        executor = RenderExecutor(total_duration_s=1.0)
        pipeline = VideoJobPipeline(workspace, executor=executor)
        channel = ProgressChannel()
        job = RenderJob(
            label_text="A. Smith",
            source_image_path=source_image,
            base_video_path=real_base_video,
            anchor_x=0.75,
            anchor_y=0.6,
        )

        result = await pipeline.run(job, channel, lambda name: f"http://localhost:3001/download/{name}")

        assert result.ok, result.error
        assert not result.used_fallback
        assert channel.terminal_event == "complete"
        assert result.output_path.stat().st_size > 0
        assert probe_duration_seconds(str(result.output_path)) == pytest.approx(1.0, abs=0.2)
        assert list(workspace.temp_dir.iterdir()) == []
