import logging
from pathlib import Path
from typing import Optional, Union
from passenc.config.models import AppConfig
from passenc.domain.errors import ProbeError
from passenc.infrastructure.event_bus import EventBus
from passenc.infrastructure.ffmpeg import FFmpegDriver
from passenc.infrastructure.ffprobe import FFprobeAdapter
from passenc.infrastructure.workspace import TemporaryWorkspace
from passenc.pipeline.media import Video


class EncoderSession:
    """Wires driver, probe and workspace from configuration and opens videos."""

    def __init__(self, config: Optional[AppConfig] = None, event_bus: Optional[EventBus] = None):
        self.config = config or AppConfig()
        self.event_bus = event_bus or EventBus()
        self.driver = FFmpegDriver(self.config.ffmpeg)
        self.probe = FFprobeAdapter(self.config.ffprobe)
        self.workspace = TemporaryWorkspace(self.config.workspace.base_dir)
        self.logger = logging.getLogger(__name__)

    def open(self, path: Union[str, Path]) -> Video:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Input file {path} does not exist")
        if not self.probe.has_video_stream(path):
            raise ProbeError(f"No video stream found in {path}")
        self.logger.debug(f"Opened {path}")
        return Video(
            path,
            driver=self.driver,
            probe=self.probe,
            workspace=self.workspace,
            event_bus=self.event_bus,
            workspace_config=self.config.workspace,
            debug=self.config.debug,
        )
