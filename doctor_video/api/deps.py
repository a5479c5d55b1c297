from functools import lru_cache

from doctor_video.render.pipeline import VideoJobPipeline
from doctor_video.services.workspace import WorkspaceProvider


@lru_cache
def get_workspace() -> WorkspaceProvider:
    return WorkspaceProvider.from_settings()


@lru_cache
def get_pipeline() -> VideoJobPipeline:
    """Shared pipeline; jobs carry all per-request state."""
    return VideoJobPipeline(get_workspace())
