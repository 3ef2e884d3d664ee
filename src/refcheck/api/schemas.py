from __future__ import annotations

from pydantic import BaseModel, Field

from refcheck.types import (
    DashboardStats,
    InboxItem,
    InboxStats,
    Question,
    RecentRequestItem,
    WizardFormData,
)


class WizardStateResponse(BaseModel):
    session_id: str
    current_step: int
    total_steps: int
    form_data: WizardFormData
    step_validity: dict[int, bool]
    can_navigate_next: bool
    can_navigate_previous: bool


class GoToStepRequest(BaseModel):
    step: int


class TalentInfoUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class WorkHistoryUpdateRequest(BaseModel):
    position: str | None = None
    company: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    responsibilities: str | None = None


class QuestionUpdateRequest(BaseModel):
    text: str | None = None
    is_enabled: bool | None = None
    order: int | None = None


class CustomQuestionRequest(BaseModel):
    text: str = Field(min_length=1)


class ReorderQuestionsRequest(BaseModel):
    questions: list[Question]


class TermsRequest(BaseModel):
    accepted: bool


class ConsentRequest(BaseModel):
    accepted_ids: list[str] = Field(default_factory=list)
    signature: str = ""


class RejectRequest(BaseModel):
    reason: str
    custom_reason: str = ""


class InboxResponse(BaseModel):
    items: list[InboxItem]
    stats: InboxStats


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_requests: list[RecentRequestItem]
