import re
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

Token = Union[str, int, float]

_TIMECODE_RE = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})(?:[.,:](\d{1,2}))?$")


class JobStatus(str, Enum):
    BUILDING = "BUILDING"
    PASS_RUNNING = "PASS_RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class TimeCode(BaseModel):
    """Point in time inside a media file, rendered as HH:MM:SS.FF."""
    model_config = ConfigDict(frozen=True)

    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0, le=59)
    seconds: int = Field(default=0, ge=0, le=59)
    frames: int = Field(default=0, ge=0, le=99)

    @classmethod
    def from_seconds(cls, quantity: float) -> "TimeCode":
        whole = int(quantity)
        frames = int(round((quantity - whole) * 100))
        if frames == 100:
            whole += 1
            frames = 0
        return cls(
            hours=whole // 3600,
            minutes=(whole % 3600) // 60,
            seconds=whole % 60,
            frames=frames,
        )

    @classmethod
    def from_string(cls, value: str) -> "TimeCode":
        match = _TIMECODE_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid timecode '{value}', expected HH:MM:SS.FF")
        h, m, s, f = match.groups()
        return cls(hours=int(h), minutes=int(m), seconds=int(s), frames=int(f or 0))

    def to_seconds(self) -> float:
        return self.hours * 3600 + self.minutes * 60 + self.seconds + self.frames / 100

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}.{self.frames:02d}"


class Pass(BaseModel):
    """One encoder invocation of a (possibly multi-pass) job."""
    index: int = Field(ge=1)
    total: int = Field(ge=1)
    command: List[Token]


class ProgressInfo(BaseModel):
    pass_index: int
    total_passes: int
    percent: int = Field(ge=0, le=100)  # across all passes
    pass_percent: int = Field(ge=0, le=100)
    remaining_seconds: Optional[float] = None
    rate_kbps: Optional[float] = None


class EncodeJob(BaseModel):
    job_id: str
    source: Path
    output_path: Path
    status: JobStatus = JobStatus.BUILDING
    total_passes: int = 0
    current_pass: int = 0
    error_message: Optional[str] = None
