"""Filters contribute ordered argument tokens to an encoder command.

A ``FilterPipeline`` renders its filters in insertion order. Nothing is
deduplicated: when two filters set the same flag, the later one wins by
position on the ffmpeg command line.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterator, List, Optional, Sequence

from passenc.domain.models import TimeCode, Token

if TYPE_CHECKING:
    from passenc.domain.formats import Format


class Filter(ABC):
    """Produces argument tokens for a subject encoded into a format."""

    @abstractmethod
    def apply(self, video, format: "Format") -> List[Token]:
        ...


class SimpleFilter(Filter):
    """Injects raw arguments as-is."""

    def __init__(self, params: Sequence[Token]):
        self.params = list(params)

    def apply(self, video, format) -> List[Token]:
        return list(self.params)


class ExtraParamsFilter(Filter):
    """Passes through the format's extra parameters."""

    def apply(self, video, format) -> List[Token]:
        return list(format.extra_params)


class CodecFilter(Filter):
    """Selects the video or audio codec declared by the format."""

    FLAGS = {"video": "-vcodec", "audio": "-acodec"}

    def __init__(self, kind: str):
        if kind not in self.FLAGS:
            raise ValueError(f"Unknown codec kind '{kind}', expected 'video' or 'audio'")
        self.kind = kind

    def apply(self, video, format) -> List[Token]:
        codec = format.video_codec if self.kind == "video" else format.audio_codec
        if codec is None:
            return []
        return [self.FLAGS[self.kind], codec]


class BitrateFilter(Filter):
    """Sets the target bitrate (-b:v / -b:a) from the format."""

    def __init__(self, kind: str):
        if kind not in ("video", "audio"):
            raise ValueError(f"Unknown bitrate kind '{kind}', expected 'video' or 'audio'")
        self.kind = kind

    def apply(self, video, format) -> List[Token]:
        if self.kind == "video":
            return ["-b:v", f"{format.kilo_bitrate}k"] if format.kilo_bitrate is not None else []
        if format.audio_kilo_bitrate is None:
            return []
        return ["-b:a", f"{format.audio_kilo_bitrate}k"]


class AudioChannelsFilter(Filter):
    def apply(self, video, format) -> List[Token]:
        if format.audio_channels is None:
            return []
        return ["-ac", format.audio_channels]


class RotateFilter(Filter):
    """Rotates the picture clockwise by 90, 180 or 270 degrees."""

    TRANSPOSE = {
        90: "transpose=1",
        180: "transpose=2,transpose=2",
        270: "transpose=2",
    }

    def __init__(self, angle: int):
        if angle not in self.TRANSPOSE:
            raise ValueError(f"Invalid rotation angle {angle}. Must be 90, 180, or 270.")
        self.angle = angle

    @property
    def expression(self) -> str:
        return self.TRANSPOSE[self.angle]

    def apply(self, video, format) -> List[Token]:
        return ["-vf", self.expression]


class ResizeFilter(Filter):
    """Scales to width x height; -1 keeps the aspect ratio on that axis."""

    def __init__(self, width: int, height: int):
        if width == 0 or height == 0 or width < -1 or height < -1:
            raise ValueError(f"Invalid dimensions {width}x{height}")
        self.width = width
        self.height = height

    @property
    def expression(self) -> str:
        return f"scale={self.width}:{self.height}"

    def apply(self, video, format) -> List[Token]:
        return ["-vf", self.expression]


class FrameRateFilter(Filter):
    def __init__(self, rate: float, gop: Optional[int] = None):
        if rate <= 0:
            raise ValueError("Frame rate must be positive")
        self.rate = rate
        self.gop = gop

    def apply(self, video, format) -> List[Token]:
        tokens: List[Token] = ["-r", self.rate]
        if self.gop is not None:
            tokens.extend(["-g", self.gop])
        return tokens


class ClipFilter(Filter):
    """Keeps only the part starting at ``start``, optionally ``duration`` long."""

    def __init__(self, start: TimeCode, duration: Optional[TimeCode] = None):
        self.start = start
        self.duration = duration

    def apply(self, video, format) -> List[Token]:
        tokens: List[Token] = ["-ss", str(self.start)]
        if self.duration is not None:
            tokens.extend(["-t", str(self.duration)])
        return tokens


class AudioResampleFilter(Filter):
    def __init__(self, rate: int):
        if rate <= 0:
            raise ValueError("Sample rate must be positive")
        self.rate = rate

    def apply(self, video, format) -> List[Token]:
        return ["-ar", self.rate]


class FilterPipeline:
    """Ordered, mutable collection of filters."""

    def __init__(self, filters: Optional[Sequence[Filter]] = None):
        self._filters: List[Filter] = list(filters or [])

    def add(self, filter: Filter) -> "FilterPipeline":
        self._filters.append(filter)
        return self

    def clone(self) -> "FilterPipeline":
        """Returns an independent copy; adding to it leaves this pipeline untouched."""
        return FilterPipeline(self._filters)

    def render(self, video, format) -> List[Token]:
        tokens: List[Token] = []
        for f in self._filters:
            tokens.extend(f.apply(video, format))
        return tokens

    def __iter__(self) -> Iterator[Filter]:
        return iter(list(self._filters))

    def __len__(self) -> int:
        return len(self._filters)


class VideoFilters:
    """Fluent helper adding common filters to a video's own pipeline."""

    def __init__(self, video):
        self.video = video

    def _add(self, filter: Filter) -> "VideoFilters":
        self.video.add_filter(filter)
        return self

    def resize(self, width: int, height: int) -> "VideoFilters":
        return self._add(ResizeFilter(width, height))

    def rotate(self, angle: int) -> "VideoFilters":
        return self._add(RotateFilter(angle))

    def framerate(self, rate: float, gop: Optional[int] = None) -> "VideoFilters":
        return self._add(FrameRateFilter(rate, gop))

    def clip(self, start: TimeCode, duration: Optional[TimeCode] = None) -> "VideoFilters":
        return self._add(ClipFilter(start, duration))

    def resample_audio(self, rate: int) -> "VideoFilters":
        return self._add(AudioResampleFilter(rate))

    def custom(self, params: Sequence[Token]) -> "VideoFilters":
        return self._add(SimpleFilter(params))
