from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field
from passenc.domain.models import Token


class FFmpegConfig(BaseModel):
    binary: str = "ffmpeg"
    threads: Optional[int] = Field(default=None, gt=0)
    # Base command for custom-configuration encodes (pass tokens and output are appended)
    commands: Optional[List[Token]] = None


class FFprobeConfig(BaseModel):
    binary: str = "ffprobe"
    timeout: Optional[float] = Field(default=None, gt=0)


class WorkspaceConfig(BaseModel):
    base_dir: Optional[Path] = None  # system temp dir when unset
    permissions: int = Field(default=0o777, ge=0, le=0o777)
    max_attempts: int = Field(default=50, ge=1)


class AppConfig(BaseModel):
    ffmpeg: FFmpegConfig = Field(default_factory=FFmpegConfig)
    ffprobe: FFprobeConfig = Field(default_factory=FFprobeConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    debug: bool = False
