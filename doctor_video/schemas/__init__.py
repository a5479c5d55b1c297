from doctor_video.schemas.events import (
    CompleteEvent,
    ErrorEvent,
    JobEvent,
    ProgressEvent,
    format_sse,
)

__all__ = [
    "CompleteEvent",
    "ErrorEvent",
    "JobEvent",
    "ProgressEvent",
    "format_sse",
]
