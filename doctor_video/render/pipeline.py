"""
Main job pipeline for doctor videos.

This module orchestrates one request end to end:
1. Verify the base video exists
2. Compute the avatar / label layout
3. Generate the raster layers (avatar, label background, label text)
4. Render through FFmpeg, retrying once without text on failure
5. Send exactly one terminal event (complete or error)
6. Delete every ephemeral file, whatever happened
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from doctor_video.config import get_settings
from doctor_video.exceptions import DoctorVideoError, MissingBaseAssetError
from doctor_video.render.assets import AssetGenerator, AssetRole
from doctor_video.render.executor import RenderExecutor, RenderResult
from doctor_video.render.fallback import DegradeRetryController
from doctor_video.render.geometry import LabelLayout, compute_geometry
from doctor_video.render.job import RenderJob
from doctor_video.services.artifacts import ArtifactLifecycleManager
from doctor_video.services.progress_channel import ProgressChannel
from doctor_video.services.workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

# Progress reported before each asset is generated
ASSET_STAGES: dict[AssetRole, tuple[int, str]] = {
    AssetRole.AVATAR: (10, "Processing image..."),
    AssetRole.LABEL_BACKGROUND: (20, "Calculating text box..."),
}


class VideoJobPipeline:
    """Runs render jobs. One instance can serve many concurrent jobs."""

    def __init__(
        self,
        workspace: WorkspaceProvider,
        executor: Optional[RenderExecutor] = None,
        asset_generator: Optional[AssetGenerator] = None,
        layout: Optional[LabelLayout] = None,
        canvas_width: Optional[int] = None,
        canvas_height: Optional[int] = None,
    ):
        settings = get_settings()
        self.workspace = workspace
        self.executor = executor or RenderExecutor.from_settings()
        self.asset_generator = asset_generator or AssetGenerator(workspace)
        self.layout = layout or LabelLayout.from_settings()
        self.canvas_width = canvas_width or settings.canvas_width
        self.canvas_height = canvas_height or settings.canvas_height
        self.controller = DegradeRetryController(self.executor)

    async def run(
        self,
        job: RenderJob,
        channel: ProgressChannel,
        build_url: Callable[[str], str],
    ) -> RenderResult:
        """Execute a job, reporting to ``channel``.

        Never raises for job failures: they become a single ``error`` event
        and a failed RenderResult. The channel is closed on return.

        Args:
            job: The request to render
            channel: Progress channel of the waiting client
            build_url: Maps an output file name to its download URL

        Returns:
            RenderResult of the job
        """
        artifacts = ArtifactLifecycleManager()
        # The upload itself is scratch data once the job ends
        artifacts.register(job.source_image_path)
        started = time.monotonic()
        logger.info(f"[JOB] Starting video generation {job.id} for {job.label_text!r}")

        try:
            channel.progress(0, "Starting...")
            if not job.base_video_path.exists():
                raise MissingBaseAssetError(str(job.base_video_path))

            geometry = compute_geometry(
                job.label_text,
                job.anchor_x,
                job.anchor_y,
                self.canvas_width,
                self.canvas_height,
                self.layout,
            )
            logger.info(
                f"[JOB] Position X={job.anchor_x}, Y={job.anchor_y} -> "
                f"X={geometry.anchor_x}px, Y={geometry.anchor_y}px, "
                f"label at ({geometry.label_x}, {geometry.label_y}) width={geometry.label_width}"
            )

            def on_stage(role: AssetRole) -> None:
                if role in ASSET_STAGES:
                    channel.progress(*ASSET_STAGES[role])

            assets = await self.asset_generator.generate(
                job.source_image_path,
                geometry,
                job.label_text,
                artifacts,
                on_stage=on_stage,
            )

            channel.progress(25, "Merging video...")
            output_path = artifacts.register(self.workspace.output_path())
            result = await self.controller.render_with_fallback(
                job.base_video_path,
                geometry,
                assets,
                output_path,
                on_progress=channel.progress,
            )
            if not result.ok:
                raise result.error

            self._deliver(channel, artifacts, output_path, build_url)
            logger.info(
                f"[JOB] {job.id} finished in {time.monotonic() - started:.1f}s "
                f"(fallback={result.used_fallback})"
            )
            return result

        except DoctorVideoError as e:
            logger.error(f"[JOB] {job.id} failed ({e.code}): {e.message}")
            channel.error(e.message)
            return RenderResult.failure(e)
        except Exception as e:
            logger.exception(f"[JOB] Unexpected error in job {job.id}")
            channel.error(str(e) or "Internal server error")
            return RenderResult.failure(DoctorVideoError(str(e) or None))
        finally:
            artifacts.cleanup()
            channel.close()

    def _deliver(
        self,
        channel: ProgressChannel,
        artifacts: ArtifactLifecycleManager,
        output_path: Path,
        build_url: Callable[[str], str],
    ) -> None:
        name = output_path.name
        if channel.complete(build_url(name), name):
            # The download endpoint owns the file from here on
            artifacts.release(output_path)
        else:
            logger.warning(f"[JOB] Client disconnected before completion, discarding {name}")
