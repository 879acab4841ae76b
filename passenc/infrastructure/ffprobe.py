import subprocess
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from passenc.config.models import FFprobeConfig
from passenc.domain.errors import ProbeError


class FFprobeAdapter:
    """Wrapper around ffprobe to extract stream information."""

    def __init__(self, config: Optional[FFprobeConfig] = None):
        self.config = config or FFprobeConfig()
        self.logger = logging.getLogger(__name__)
        self._cache: Dict[Path, Dict[str, Any]] = {}

    def _probe(self, file_path: Path) -> Dict[str, Any]:
        """Executes ffprobe and parses JSON output (cached per path)."""
        file_path = Path(file_path)
        if file_path in self._cache:
            return self._cache[file_path]

        cmd = [
            self.config.binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_streams",
            "-show_format",
            str(file_path)
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.config.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProbeError(f"ffprobe failed for {file_path}: {e}") from e
        if result.returncode != 0:
            raise ProbeError(f"ffprobe failed for {file_path}: {result.stderr}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Unreadable ffprobe output for {file_path}: {e}") from e

        self._cache[file_path] = data
        return data

    def streams(self, file_path: Path) -> List[Dict[str, Any]]:
        return self._probe(file_path).get("streams", [])

    def has_video_stream(self, file_path: Path) -> bool:
        return any(s.get("codec_type") == "video" for s in self.streams(file_path))

    def duration(self, file_path: Path) -> float:
        """Duration in seconds, from the container or else the longest stream."""
        data = self._probe(file_path)
        container = _to_float(data.get("format", {}).get("duration"))
        if container is not None:
            return container
        durations = [d for d in (_to_float(s.get("duration")) for s in data.get("streams", [])) if d is not None]
        if not durations:
            raise ProbeError(f"No duration available for {file_path}")
        return max(durations)


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
