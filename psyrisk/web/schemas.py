from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SubjectRequest(BaseModel):
    name: str
    role_level: Literal["operational", "management"] = "operational"
    sector: Optional[str] = None
    external_ref: Optional[str] = None


class AddressRequest(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None


class BatchReleaseRequest(BaseModel):
    employer_name: str
    employer_tax_id: Optional[str] = None
    employer_address: Optional[AddressRequest] = None
    label: Optional[str] = None
    released_at: Optional[datetime] = None
    subjects: list[SubjectRequest]


class BatchSummary(BaseModel):
    id: int
    employer_name: str
    label: Optional[str] = None
    released_at: datetime
    assessment_ids: list[int]


class BatchListItem(BaseModel):
    id: int
    employer_name: str
    label: Optional[str] = None
    released_at: datetime
    total: int
    completed: int
    deactivated: int
    pending: int
    ready: bool
    report_status: Optional[Literal["draft", "issued", "sent"]] = None


class BatchReadiness(BaseModel):
    total: int
    completed: int
    deactivated: int
    pending: int
    ready: bool


class AnswerRequest(BaseModel):
    item_id: str
    value: int


class DimensionSubmissionRequest(BaseModel):
    dimension_id: int
    items: list[AnswerRequest] = Field(default_factory=list)


class StartRequest(BaseModel):
    session_key: Optional[str] = None


class ResumeRequest(BaseModel):
    session_key: str = Field(..., min_length=1, max_length=64)


class AssessmentStatus(BaseModel):
    status: Literal["not_started", "in_progress", "completed", "deactivated"]
    current_dimension: int
    resume_anchor: Optional[int] = None
    can_navigate_back: bool
    role_level: Literal["operational", "management"]


class RosterEntry(BaseModel):
    assessment_id: int
    subject_name: str
    sector: Optional[str] = None
    role_level: Literal["operational", "management"]
    status: Literal["not_started", "in_progress", "completed", "deactivated"]
    current_dimension: int
    submitted_at: Optional[datetime] = None


class NavigationResponse(BaseModel):
    outcome: Literal["moved", "home", "refused"]
    current_dimension: int


class QuestionItem(BaseModel):
    id: str
    text: str


class QuestionDimension(BaseModel):
    id: int
    title: str
    domain: str
    description: str
    polarity: Literal["positive", "negative"]
    items: list[QuestionItem]


class DimensionScoreResponse(BaseModel):
    dimension_id: int
    domain: str
    description: str
    polarity: Literal["positive", "negative"]
    mean: float
    standard_deviation: float
    mean_minus_sd: float
    mean_plus_sd: float
    risk_category: Literal["low", "medium", "high"]
    semaphore: Literal["green", "yellow", "red"]
    recommended_action: str
    label: str
    sample_size: int = 0
    insufficient_data: bool = False


class ObservationsRequest(BaseModel):
    observations: Optional[str] = None


class ReportSummary(BaseModel):
    id: int
    batch_id: int
    status: Literal["draft", "issued", "sent"]
    observations: Optional[str] = None
    created_at: datetime
    issued_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None


class ReportView(BaseModel):
    report: Optional[ReportSummary] = None
    sections: dict[str, Any]
