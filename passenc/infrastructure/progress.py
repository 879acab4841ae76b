import re
import time
import logging
from pathlib import Path
from typing import Callable, List, Optional
from passenc.domain.errors import ProbeError
from passenc.domain.models import ProgressInfo


class ProgressListener:
    """Turns ffmpeg status lines of one pass into ProgressInfo callbacks.

    Percentages cover the whole job: with 2 passes, pass 1 reports 0-50 and
    pass 2 reports 50-100.
    """

    # Regex to parse 'time=00:00:00.00' from ffmpeg output
    TIME_RE = re.compile(r"time=\s*(\d+):(\d+):(\d+(?:\.\d+)?)")
    BITRATE_RE = re.compile(r"bitrate=\s*([\d.]+)kbits/s")

    def __init__(
        self,
        probe,
        source: Path,
        pass_index: int,
        total_passes: int,
        callbacks: Optional[List[Callable[[ProgressInfo], None]]] = None,
    ):
        self.probe = probe
        self.source = source
        self.pass_index = pass_index
        self.total_passes = total_passes
        self.callbacks = list(callbacks or [])
        self.logger = logging.getLogger(__name__)
        self.last_progress: Optional[ProgressInfo] = None
        self._duration: Optional[float] = None
        self._initialized = False
        self._started_at: Optional[float] = None

    def add_callback(self, callback: Callable[[ProgressInfo], None]):
        self.callbacks.append(callback)

    def _initialize(self):
        self._initialized = True
        try:
            duration = self.probe.duration(self.source)
        except ProbeError as e:
            self.logger.warning(f"Progress disabled for {self.source.name}: {e}")
            return
        if duration and duration > 0:
            self._duration = duration

    def parse(self, line: str) -> Optional[ProgressInfo]:
        """Parses one output line; returns None for lines without progress."""
        if not self._initialized:
            self._initialize()
        if self._duration is None:
            return None

        match = self.TIME_RE.search(line)
        if not match:
            return None

        h, m, s = map(float, match.groups())
        current_seconds = h * 3600 + m * 60 + s
        now = time.monotonic()
        if self._started_at is None:
            self._started_at = now

        ratio = max(0.0, min(1.0, current_seconds / self._duration))
        pass_percent = int(ratio * 100)
        total_ratio = (self.pass_index - 1 + ratio) / self.total_passes

        remaining = None
        elapsed = now - self._started_at
        if current_seconds > 0 and elapsed > 0:
            speed = current_seconds / elapsed
            remaining = max(0.0, (self._duration - current_seconds) / speed)

        rate = None
        bitrate_match = self.BITRATE_RE.search(line)
        if bitrate_match:
            rate = float(bitrate_match.group(1))

        return ProgressInfo(
            pass_index=self.pass_index,
            total_passes=self.total_passes,
            percent=int(total_ratio * 100),
            pass_percent=pass_percent,
            remaining_seconds=remaining,
            rate_kbps=rate,
        )

    def handle(self, line: str):
        """Feeds one line of encoder output."""
        info = self.parse(line)
        if info is None:
            return
        self.last_progress = info
        for callback in self.callbacks:
            callback(info)
