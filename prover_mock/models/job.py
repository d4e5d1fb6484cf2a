from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from enum import Enum
from datetime import datetime


class JobState(str, Enum):
    """Job state enumeration"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


class JobRecord(BaseModel):
    """Fields shared by proof sessions and SNARK conversions."""

    job_id: str
    state: JobState = JobState.QUEUED
    result_digest: Optional[str] = None
    error_msg: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    history: List[Dict[str, Any]] = Field(default_factory=list)
    logs: List[str] = Field(default_factory=list)


class SessionJob(JobRecord):
    """A proof job over an uploaded image and input."""

    image_digest: str
    input_digest: str


class SnarkJob(JobRecord):
    """A conversion job over a stored receipt."""

    receipt_digest: str
    session_id: Optional[str] = None


class SessionStatus(BaseModel):
    """Polling response for a proof session."""
    model_config = ConfigDict(use_enum_values=True)

    uuid: str
    status: JobState
    receipt_url: Optional[str] = None
    error_msg: Optional[str] = None
    elapsed_ms: Optional[int] = None


class SnarkStatus(BaseModel):
    """Polling response for a SNARK conversion."""
    model_config = ConfigDict(use_enum_values=True)

    uuid: str
    status: JobState
    output: Optional[Dict[str, Any]] = None
    receipt_url: Optional[str] = None
    error_msg: Optional[str] = None
    elapsed_ms: Optional[int] = None
