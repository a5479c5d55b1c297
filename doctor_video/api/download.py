"""One-shot download of rendered videos."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from doctor_video.api.deps import get_workspace
from doctor_video.exceptions import OutputNotFoundError
from doctor_video.services.workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

router = APIRouter()


def _delete_after_transfer(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.info(f"[DOWNLOAD] Deleted {path.name} after transfer")
    except OSError as e:
        logger.warning(f"[DOWNLOAD] Failed to delete {path}: {e}")


@router.get("/download/{filename}")
async def download_video(
    filename: str,
    workspace: WorkspaceProvider = Depends(get_workspace),
) -> FileResponse:
    """Send a rendered video once, then delete it.

    A second request for the same name gets 404.
    """
    path = workspace.resolve_output(filename)
    if path is None or not path.is_file():
        raise OutputNotFoundError(filename)

    logger.info(f"[DOWNLOAD] Sending {filename}")
    return FileResponse(
        path,
        media_type="video/mp4",
        filename=filename,
        background=BackgroundTask(_delete_after_transfer, path),
    )
