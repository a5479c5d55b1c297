import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Doctor Video Studio"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    # Base URL used for download links. Empty = derive from the request host.
    public_base_url: str = ""

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "*"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Scratch directories
    uploads_dir: str = "uploads"
    temp_dir: str = "temp"
    output_dir: str = "public/output"

    # The single base video every job is composited onto
    base_video_path: str = "public/videos/base_video.mp4"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Output profile
    video_codec: str = "libx264"
    video_preset: str = "ultrafast"
    pixel_format: str = "yuv420p"
    movflags: str = "+faststart"
    audio_codec: str = "aac"

    # Canvas of the base video
    canvas_width: int = 1920
    canvas_height: int = 1080

    # Layout (must match the preview CSS of the upload page)
    avatar_diameter: int = 230
    label_font_size: int = 48
    label_char_width_ratio: float = 0.6
    label_padding: int = 40
    label_min_width: int = 240
    label_max_width: int = 800
    label_height: int = 80
    label_gap: int = 17
    label_edge_margin: int = 10

    # Label styling
    label_font_path: str = ""
    label_corner_radius: int = 8
    label_background_opacity: float = 0.7

    # Form defaults
    default_doctor_name: str = "Dr. Name"
    default_overlay_x: float = 0.75
    default_overlay_y: float = 0.6

    # Progress
    # Estimated duration of the base video in seconds. Progress is computed
    # against this, not against the real file, unless probing is enabled.
    assumed_video_duration_s: float = 152.0
    probe_video_duration: bool = False
    keepalive_interval_s: float = 15.0


@lru_cache
def get_settings() -> Settings:
    return Settings()
