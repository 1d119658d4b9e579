"""Fixtures for integration tests."""

import io
from pathlib import Path
from typing import Protocol

import pytest
from PIL import Image

from trend_report.config import ReporterConfig
from trend_report.session import ReportSession


class SessionFn(Protocol):
    """Protocol for report session creation function."""

    def __call__(self, **config: object) -> ReportSession:
        """Create a session rooted in the temporary workspace."""


class ScreenshotFn(Protocol):
    """Protocol for screenshot creation function."""

    def __call__(self, name: str) -> Path:
        """Write a PNG screenshot and return its path."""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Directory standing in for the runner's working directory."""
    return tmp_path


@pytest.fixture
def make_session(workspace: Path) -> SessionFn:
    """Create report sessions that share the same output folder."""

    def _make(**config: object) -> ReportSession:
        return ReportSession(
            config=ReporterConfig.model_validate(config), base_dir=workspace
        )

    return _make


@pytest.fixture
def screenshot(workspace: Path) -> ScreenshotFn:
    """Create PNG screenshots as the runner would leave them on disk."""
    results_dir = workspace / "test-results"
    results_dir.mkdir()

    def _screenshot(name: str) -> Path:
        path = results_dir / f"{name}.png"
        output = io.BytesIO()
        Image.new("RGB", (32, 32), color="blue").save(output, format="PNG")
        path.write_bytes(output.getvalue())
        return path

    return _screenshot
