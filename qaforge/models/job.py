from pydantic import BaseModel, Field
from enum import Enum

from qaforge.models.batch import ProgressState

class JobStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    stopped = "stopped"

class JobKind(str, Enum):
    questions = "questions"
    answers = "answers"
    tags = "tags"
    cot = "cot"

class BatchJob(BaseModel):
    job_id: str
    project_id: str
    kind: JobKind
    status: JobStatus
    progress: ProgressState = Field(default_factory=ProgressState)
    succeeded_ids: list[str] = Field(default_factory=list)
    failed_ids: list[str] = Field(default_factory=list)
    message: str = ""
    created_at: str
    completed_at: str | None = None
