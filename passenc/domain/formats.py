"""Target format descriptors.

A format is an immutable value for the duration of a job. Capability queries
(``has_video_codec``, ``supports_progress``...) replace type checks, so the
executor never needs to know which concrete format it was handed.
"""
from typing import Callable, ClassVar, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from passenc.domain.models import ProgressInfo, Token
from passenc.infrastructure.progress import ProgressListener

ProgressCallback = Callable[[ProgressInfo], None]


class Format(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Empty tuple means "any codec is accepted"
    available_video_codecs: ClassVar[Tuple[str, ...]] = ()
    available_audio_codecs: ClassVar[Tuple[str, ...]] = ()

    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    kilo_bitrate: Optional[int] = Field(default=None, gt=0)
    audio_kilo_bitrate: Optional[int] = Field(default=None, gt=0)
    audio_channels: Optional[int] = Field(default=None, gt=0)
    extra_params: Tuple[Token, ...] = ()
    # Range is checked by the pass coordinator so a bad value fails as a ConfigurationError
    passes: int = 1
    progressable: bool = True

    _callbacks: List[ProgressCallback] = PrivateAttr(default_factory=list)

    @model_validator(mode="after")
    def check_codecs(self):
        if self.available_video_codecs and self.video_codec is not None \
                and self.video_codec not in self.available_video_codecs:
            raise ValueError(
                f"Video codec {self.video_codec} is not supported. "
                f"Available: {', '.join(self.available_video_codecs)}"
            )
        if self.available_audio_codecs and self.audio_codec is not None \
                and self.audio_codec not in self.available_audio_codecs:
            raise ValueError(
                f"Audio codec {self.audio_codec} is not supported. "
                f"Available: {', '.join(self.available_audio_codecs)}"
            )
        return self

    def has_video_codec(self) -> bool:
        return self.video_codec is not None

    def has_audio_codec(self) -> bool:
        return self.audio_codec is not None

    def supports_progress(self) -> bool:
        return self.progressable

    def on_progress(self, callback: ProgressCallback) -> "Format":
        """Registers a callback fed by every listener this format creates."""
        self._callbacks.append(callback)
        return self

    def create_progress_listener(self, video, probe, pass_index: int, total_passes: int) -> ProgressListener:
        return ProgressListener(
            probe=probe,
            source=video.path,
            pass_index=pass_index,
            total_passes=total_passes,
            callbacks=list(self._callbacks),
        )


class X264(Format):
    available_video_codecs: ClassVar[Tuple[str, ...]] = ("libx264",)
    available_audio_codecs: ClassVar[Tuple[str, ...]] = (
        "aac", "libvo_aacenc", "libfaac", "libmp3lame", "libfdk_aac",
    )

    video_codec: Optional[str] = "libx264"
    audio_codec: Optional[str] = "aac"
    kilo_bitrate: Optional[int] = Field(default=1000, gt=0)
    audio_kilo_bitrate: Optional[int] = Field(default=128, gt=0)
    passes: int = 2


class WebM(Format):
    available_video_codecs: ClassVar[Tuple[str, ...]] = ("libvpx", "libvpx-vp9")
    available_audio_codecs: ClassVar[Tuple[str, ...]] = ("libvorbis", "libopus", "copy")

    video_codec: Optional[str] = "libvpx"
    audio_codec: Optional[str] = "libvorbis"
    kilo_bitrate: Optional[int] = Field(default=1000, gt=0)
    audio_kilo_bitrate: Optional[int] = Field(default=128, gt=0)
    extra_params: Tuple[Token, ...] = ("-f", "webm")
    passes: int = 2


class Mp3(Format):
    available_audio_codecs: ClassVar[Tuple[str, ...]] = ("libmp3lame",)

    audio_codec: Optional[str] = "libmp3lame"
    audio_kilo_bitrate: Optional[int] = Field(default=128, gt=0)


class Aac(Format):
    available_audio_codecs: ClassVar[Tuple[str, ...]] = ("aac", "libfdk_aac")

    audio_codec: Optional[str] = "aac"
    audio_kilo_bitrate: Optional[int] = Field(default=128, gt=0)


FORMATS = {
    "x264": X264,
    "webm": WebM,
    "mp3": Mp3,
    "aac": Aac,
}
