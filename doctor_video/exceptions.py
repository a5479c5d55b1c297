"""Custom exceptions for the doctor video service.

Each exception carries a machine-readable code whose retryability and
recovery hint come from the error-code table.
"""

from typing import Any

from doctor_video.constants.error_codes import get_error_spec


class DoctorVideoError(Exception):
    """Base exception for all application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an HTTP error body."""
        spec = get_error_spec(self.code)
        data: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
            "retryable": spec.get("retryable", False),
        }
        if "suggested_fix" in spec:
            data["suggested_fix"] = spec["suggested_fix"]
        return data


class MissingBaseAssetError(DoctorVideoError):
    """The configured base video does not exist."""

    code = "MISSING_BASE_ASSET"
    message = "Base video not found."

    def __init__(self, path: str | None = None):
        super().__init__(self.message)
        self.path = path


class AssetGenerationError(DoctorVideoError):
    """A raster asset (avatar, label background, label text) failed to build."""

    code = "ASSET_GENERATION_FAILED"
    message = "Failed to process image"

    def __init__(self, role: str, detail: str | None = None):
        message = f"Failed to generate {role}: {detail}" if detail else f"Failed to generate {role}"
        super().__init__(message)
        self.role = role


class RenderFailedError(DoctorVideoError):
    """The encoder failed.

    ``primary_message`` and ``fallback_message`` keep the diagnostics of both
    attempts when the degrade-retry path was taken.
    """

    code = "RENDER_FAILED"
    message = "Render failed completely."

    def __init__(
        self,
        message: str | None = None,
        *,
        primary_message: str | None = None,
        fallback_message: str | None = None,
    ):
        super().__init__(message)
        self.primary_message = primary_message
        self.fallback_message = fallback_message


class OutputNotFoundError(DoctorVideoError):
    """Requested output file does not exist (or was already downloaded)."""

    code = "OUTPUT_NOT_FOUND"
    status_code = 404
    message = "File not found"

    def __init__(self, filename: str | None = None):
        super().__init__(self.message)
        self.filename = filename
