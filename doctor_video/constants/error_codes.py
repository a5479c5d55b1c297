"""Error codes dictionary.

Single source of truth for error codes, their retryability and a short
recovery hint. Used by the exception handlers and the job pipeline.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    "MISSING_BASE_ASSET": {
        "retryable": False,
        "suggested_fix": "Place the base video at the configured BASE_VIDEO_PATH",
    },
    "ASSET_GENERATION_FAILED": {
        "retryable": False,
        "suggested_fix": "Upload a valid PNG or JPEG image",
    },
    "RENDER_FAILED": {
        "retryable": True,
        "suggested_fix": "Retry the request; check the ffmpeg installation if it keeps failing",
    },
    "OUTPUT_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Output files can be downloaded once; render the video again",
    },
    "INTERNAL_ERROR": {
        "retryable": True,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get the specification for an error code.

    Returns an empty spec for unknown codes.
    """
    return ERROR_CODES.get(code, {})
