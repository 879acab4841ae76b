import pytest
from pathlib import Path
from unittest.mock import MagicMock
from passenc.config.models import FFmpegConfig
from passenc.pipeline.media import Video


@pytest.fixture
def driver():
    """Driver double recording every command it is asked to run."""
    d = MagicMock()
    d.config = FFmpegConfig()
    return d


@pytest.fixture
def probe():
    p = MagicMock()
    p.duration.return_value = 10.0
    return p


@pytest.fixture
def spy_workspace(tmp_path):
    """Workspace provider that records calls without touching the filesystem."""
    ws = MagicMock()
    ws.create_scratch_dir.return_value = tmp_path / "scratch"
    return ws


@pytest.fixture
def video(driver, probe, spy_workspace):
    return Video(Path("/media/input.mp4"), driver=driver, probe=probe, workspace=spy_workspace)
