"""Media subjects: an encodable video and frames taken from it."""
import logging
from pathlib import Path
from typing import Optional, Union
from passenc.config.models import WorkspaceConfig
from passenc.domain.errors import EncodingError, ExecutionFailure
from passenc.domain.filters import Filter, FilterPipeline, VideoFilters
from passenc.domain.formats import Format
from passenc.domain.models import TimeCode
from passenc.infrastructure.event_bus import EventBus
from passenc.infrastructure.workspace import TemporaryWorkspace
from passenc.pipeline.executor import JobExecutor

logger = logging.getLogger(__name__)


class Video:
    """A source file plus the filters to apply whenever it is saved.

    The driver and probe are shared with the caller; the filter pipeline
    belongs to this object and jobs only ever work on a clone of it.
    """

    def __init__(
        self,
        path: Union[str, Path],
        driver,
        probe,
        workspace: Optional[TemporaryWorkspace] = None,
        event_bus: Optional[EventBus] = None,
        workspace_config: Optional[WorkspaceConfig] = None,
        debug: bool = False,
    ):
        self.path = Path(path)
        self.driver = driver
        self.probe = probe
        self.workspace_config = workspace_config or WorkspaceConfig()
        self.workspace = workspace or TemporaryWorkspace(self.workspace_config.base_dir)
        self.event_bus = event_bus
        self.debug = debug
        self.pipeline = FilterPipeline()

    def filters(self) -> VideoFilters:
        return VideoFilters(self)

    def add_filter(self, filter: Filter) -> "Video":
        self.pipeline.add(filter)
        return self

    def save(self, format: Format, output_path: Union[str, Path]) -> "Video":
        """Encodes into output_path, running every pass the format asks for.

        Raises ConfigurationError for a bad pass count and EncodingError when
        a pass fails.
        """
        self._executor().run(self, format, output_path)
        return self

    def save_with_custom_configuration(self, format: Format, output_path: Union[str, Path]) -> "Video":
        """Encodes with the base command from the driver's ``commands`` setting.

        Filters are not applied; passes, progress, cleanup and errors behave
        as in ``save``.
        """
        executor = self._executor()
        executor.run(self, format, output_path, base_command=executor.configured_command())
        return self

    def _executor(self) -> JobExecutor:
        return JobExecutor(
            driver=self.driver,
            probe=self.probe,
            workspace=self.workspace,
            event_bus=self.event_bus,
            permissions=self.workspace_config.permissions,
            max_attempts=self.workspace_config.max_attempts,
            debug=self.debug,
        )

    def frame(self, at: TimeCode) -> "Frame":
        return Frame(self, self.driver, self.probe, at)


class Frame:
    """A single still image at a timecode of a video."""

    def __init__(self, video: Video, driver, probe, timecode: TimeCode):
        self.video = video
        self.driver = driver
        self.probe = probe
        self.timecode = timecode

    def save(self, path: Union[str, Path], accurate: bool = False) -> "Frame":
        """Writes the frame as an image.

        Seeking before the input is fast; ``accurate`` decodes up to the
        timecode instead, which is slower but exact.
        """
        if accurate:
            cmd = ["-y", "-i", str(self.video.path), "-ss", str(self.timecode)]
        else:
            cmd = ["-y", "-ss", str(self.timecode), "-i", str(self.video.path)]
        cmd.extend(["-vframes", "1", "-f", "image2", str(path)])

        try:
            self.driver.command(cmd)
        except ExecutionFailure as e:
            raise EncodingError(f"Unable to save frame at {self.timecode}", code=e.code) from e
        logger.info(f"Saved frame {self.timecode} of {self.video.path.name} to {path}")
        return self
