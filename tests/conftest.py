"""
Pytest fixtures for doctor video tests.

Most tests run without ffmpeg: encoder behavior is covered with a fake
executor or a shell-script stand-in for the ffmpeg binary. Tests that need
the real encoder are marked with @pytest.mark.requires_ffmpeg and skipped
when it is not installed. Run `pytest -m "not requires_ffmpeg"` to skip them
explicitly.
"""

import shutil
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from doctor_video.config import get_settings
from doctor_video.exceptions import RenderFailedError
from doctor_video.render.executor import RenderResult
from doctor_video.services.workspace import WorkspaceProvider


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring a real ffmpeg binary (skipped when absent)"
    )


FFMPEG_AVAILABLE = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def pytest_collection_modifyitems(config, items):
    if FFMPEG_AVAILABLE:
        return
    skip_ffmpeg = pytest.mark.skip(reason="ffmpeg not installed")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip_ffmpeg)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Settings are cached per process; tests that change env need a fresh copy."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceProvider:
    """Scratch directories isolated per test."""
    return WorkspaceProvider(
        uploads_dir=tmp_path / "uploads",
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
    )


@pytest.fixture
def source_image(workspace: WorkspaceProvider) -> Path:
    """A 400x300 landscape JPEG, as a phone upload would be."""
    path = workspace.upload_path("doctor.jpg")
    Image.new("RGB", (400, 300), (40, 120, 200)).save(path, "JPEG")
    return path


@pytest.fixture
def base_video(tmp_path: Path) -> Path:
    """Placeholder base video. Only its existence matters to the fake executor."""
    path = tmp_path / "videos" / "base_video.mp4"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path


@pytest.fixture
def settings_env(monkeypatch, tmp_path: Path, base_video: Path):
    """Point the settings at per-test directories and base video."""
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "temp"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("BASE_VIDEO_PATH", str(base_video))
    monkeypatch.setenv("PUBLIC_BASE_URL", "")
    get_settings.cache_clear()
    return get_settings()


class FakeExecutor:
    """Stands in for RenderExecutor.

    ``outcomes`` holds one entry per expected render call: True writes the
    output file and succeeds, a string fails with that diagnostic.
    """

    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    async def render(self, base_video, graph, assets, output_path, on_progress=None) -> RenderResult:
        self.calls.append({
            "base_video": base_video,
            "graph": graph,
            "assets": assets,
            "output_path": output_path,
        })
        outcome = self.outcomes.pop(0)
        if outcome is True:
            if on_progress:
                for percent in (40, 80, 100):
                    on_progress(percent)
            output_path.write_bytes(b"rendered video")
            return RenderResult.success(output_path)

        # A failed encode may leave a partial file; the real executor removes it
        output_path.unlink(missing_ok=True)
        return RenderResult.failure(RenderFailedError(outcome))


@pytest.fixture
def fake_executor():
    """Factory for FakeExecutor instances."""

    def _make(outcomes: Optional[list] = None) -> FakeExecutor:
        return FakeExecutor(outcomes if outcomes is not None else [True])

    return _make
