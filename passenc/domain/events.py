from pydantic import BaseModel
from passenc.domain.models import EncodeJob, ProgressInfo


class Event(BaseModel):
    """Base class for all domain events."""
    pass


class JobEvent(Event):
    job: EncodeJob


class JobStarted(JobEvent):
    pass


class PassStarted(JobEvent):
    pass_index: int


class PassProgressUpdated(JobEvent):
    progress: ProgressInfo


class PassCompleted(JobEvent):
    pass_index: int


class JobCompleted(JobEvent):
    pass


class JobFailed(JobEvent):
    error_message: str
