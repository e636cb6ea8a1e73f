"""Pydantic schemas for API request validation and embedded task records.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskboard.workflow import ReviewDecision, TaskStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialise for a JSON column (camelCase, ISO dates)."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class UrgencyColor(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class ProofType(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    TEXT = "text"


class NotificationType(str, Enum):
    PROOF_SUBMITTED = "proof_submitted"
    PROOF_APPROVED = "proof_approved"
    PROOF_REJECTED = "proof_rejected"
    TASK_DUE_SOON = "task_due_soon"
    TASK_DUE_NOW = "task_due_now"


# ---------------------------------------------------------------------------
# Embedded records
# ---------------------------------------------------------------------------

class Step(CamelModel):
    step_number: int = Field(..., ge=1)
    description: str = Field(..., min_length=1)
    is_completed: bool = False


class _ProofBase(CamelModel):
    submitted_at: datetime
    submitted_by: str


class TextProof(_ProofBase):
    proof_type: Literal["text"] = "text"
    text: str


class _FileProof(_ProofBase):
    file_url: str
    file_name: str
    mime_type: str
    file_size: int


class ImageProof(_FileProof):
    proof_type: Literal["image"] = "image"


class AudioProof(_FileProof):
    proof_type: Literal["audio"] = "audio"


Proof = Annotated[Union[TextProof, ImageProof, AudioProof], Field(discriminator="proof_type")]


def file_proof_class(mime_type: str) -> type[_FileProof]:
    """Uploads are images when the MIME type says so, otherwise audio."""
    return ImageProof if mime_type.startswith("image/") else AudioProof


class ManagerReview(CamelModel):
    reviewed_by: str
    reviewed_at: datetime
    decision: ReviewDecision
    comment: str = ""


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

def _required_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Task title is required")
    return value


class TaskCreate(CamelModel):
    title: str
    description: Optional[str] = None
    category: str = "general"
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    urgency_color: UrgencyColor = UrgencyColor.YELLOW
    status: TaskStatus = TaskStatus.NOT_STARTED
    steps: list[Step] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        return _required_title(value)

    @field_validator("steps")
    @classmethod
    def unique_step_numbers(cls, steps: list[Step]) -> list[Step]:
        numbers = [s.step_number for s in steps]
        if len(numbers) != len(set(numbers)):
            raise ValueError("stepNumber must be unique within a task")
        return sorted(steps, key=lambda s: s.step_number)


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    urgency_color: Optional[UrgencyColor] = None
    status: Optional[TaskStatus] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _required_title(value)

    def changes(self) -> dict:
        """Fields that were sent with a non-empty value."""
        return {
            k: v for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None and v != ""
        }


class StepUpdate(CamelModel):
    is_completed: bool


class TextProofSubmit(CamelModel):
    text: str = Field(..., min_length=1)


class ReviewRequest(CamelModel):
    decision: ReviewDecision
    comment: Optional[str] = None


class FocusStart(CamelModel):
    task_id: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Minutes; 0 or absent uses the default")
