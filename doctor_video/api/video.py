"""Video generation endpoint.

The request uploads a photo and a name; the response is a server-sent event
stream that reports progress and ends with a single ``complete`` or
``error`` event.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse

from doctor_video.api.deps import get_pipeline, get_workspace
from doctor_video.config import get_settings
from doctor_video.render.job import RenderJob
from doctor_video.render.pipeline import VideoJobPipeline
from doctor_video.services.progress_channel import ProgressChannel
from doctor_video.services.workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

router = APIRouter()

# Strong references to running jobs so they are not garbage-collected
_background_jobs: set[asyncio.Task] = set()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def build_download_url(request: Request, filename: str) -> str:
    """Absolute download URL for an output file.

    ``public_base_url`` wins when set. Otherwise the request host is used,
    with plain http for localhost and https for everything else.
    """
    settings = get_settings()
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}/download/{filename}"
    host = request.headers.get("host") or request.url.netloc
    scheme = "http" if "localhost" in host else "https"
    return f"{scheme}://{host}/download/{filename}"


def _save_upload(upload: UploadFile, destination: Path) -> None:
    with destination.open("wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)


@router.post("/process-video-stream")
async def process_video_stream(
    request: Request,
    doctor_image: UploadFile = File(..., alias="doctorImage"),
    doctor_name: Optional[str] = Form(None, alias="doctorName"),
    overlay_x: Optional[str] = Form(None, alias="overlayX"),
    overlay_y: Optional[str] = Form(None, alias="overlayY"),
    workspace: WorkspaceProvider = Depends(get_workspace),
    pipeline: VideoJobPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    """Start a render job and stream its progress as SSE."""
    upload_path = workspace.upload_path(doctor_image.filename or "upload")
    try:
        await asyncio.to_thread(_save_upload, doctor_image, upload_path)
    except OSError:
        upload_path.unlink(missing_ok=True)
        raise

    job = RenderJob.from_form(upload_path, doctor_name, overlay_x, overlay_y)
    logger.info(f"[API] Received job {job.id}: name={job.label_text!r}, upload={upload_path.name}")

    channel = ProgressChannel(keepalive_interval=get_settings().keepalive_interval_s)
    channel.open()

    task = asyncio.create_task(
        pipeline.run(job, channel, lambda name: build_download_url(request, name))
    )
    _background_jobs.add(task)
    task.add_done_callback(_background_jobs.discard)

    return StreamingResponse(channel.stream(), media_type="text/event-stream", headers=SSE_HEADERS)
