from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

TokenErrorCode = Literal["TOKEN_NOT_FOUND", "TOKEN_ALREADY_USED", "TOKEN_EXPIRED", "TOKEN_REJECTED"]
ReferenceQuestionType = Literal["text", "rating", "multiple_choice"]
QuestionCategory = Literal["skills", "teamwork", "leadership", "communication", "general"]
RequestStatus = Literal["pending", "in_progress", "completed"]
DeliveryStatus = Literal["pending", "responded", "rejected", "expired"]
InboxPriority = Literal["high", "medium", "low"]


class ValidationResult(BaseModel):
    is_valid: bool
    error: str | None = None


class TalentInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""


class WorkHistoryInput(BaseModel):
    position: str = ""
    company: str = ""
    start_date: str = ""
    end_date: str = ""
    responsibilities: str = ""


class WorkHistory(WorkHistoryInput):
    id: str


class TargetCompanyInput(BaseModel):
    name: str = ""
    domain: str = ""
    contact_person: str = ""
    contact_email: str = ""


class TargetCompany(TargetCompanyInput):
    id: str


class Question(BaseModel):
    id: str
    text: str
    is_default: bool = False
    is_enabled: bool = True
    order: int = 0


class WizardFormData(BaseModel):
    talent_info: TalentInfo = Field(default_factory=TalentInfo)
    work_history: list[WorkHistory] = Field(default_factory=list)
    target_companies: list[TargetCompany] = Field(default_factory=list)
    questions: list[Question] = Field(default_factory=list)
    terms_accepted: bool = False


class WizardExport(BaseModel):
    form_data: WizardFormData
    current_step: int
    timestamp: str


class ResponseToken(BaseModel):
    token: str
    request_id: str
    company_id: str
    respondent_email: str
    respondent_name: str
    created_at: datetime
    expires_at: datetime
    is_used: bool = False
    used_at: datetime | None = None
    reminders_sent: int = 0
    last_reminder_at: datetime | None = None


class RejectionRecord(BaseModel):
    id: str
    token: str
    request_id: str
    respondent_email: str
    reason: str
    rejected_at: datetime
    ip_address: str = "127.0.0.1"


class TokenValidationResult(BaseModel):
    is_valid: bool
    error: TokenErrorCode | None = None
    message: str = ""
    token_data: ResponseToken | None = None
    used_at: datetime | None = None
    expires_at: datetime | None = None
    rejection: RejectionRecord | None = None


class TokenStats(BaseModel):
    total: int = 0
    used: int = 0
    expired: int = 0
    pending: int = 0
    response_rate: float = 0.0


class ConsentItem(BaseModel):
    id: str
    title: str
    description: str
    required: bool
    accepted: bool = False


class ReferenceQuestion(BaseModel):
    id: str
    text: str
    type: ReferenceQuestionType
    required: bool
    options: list[str] = Field(default_factory=list)
    category: QuestionCategory = "general"


class ResponseAnswer(BaseModel):
    question_id: str
    answer: str = ""
    rating: int | None = None

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, value: int | None) -> int | None:
        if value is not None and (value < 0 or value > 5):
            raise ValueError("rating must be between 0 and 5")
        return value


class ResponseFormData(BaseModel):
    responses: list[ResponseAnswer] = Field(default_factory=list)
    additional_comments: str = ""
    is_anonymous: bool = False


class AnsweredQuestion(BaseModel):
    question_id: str
    question: str
    answer: str = ""
    rating: int | None = None


class ReferenceResponse(BaseModel):
    id: str
    request_id: str
    company_id: str
    respondent_name: str
    respondent_email: str
    responses: list[AnsweredQuestion] = Field(default_factory=list)
    additional_comments: str = ""
    submitted_at: datetime
    is_anonymous: bool = False


class ReferenceRequest(BaseModel):
    id: str
    talent_name: str
    talent_email: str
    status: RequestStatus = "pending"
    created_at: datetime
    form_data: WizardFormData


class FlowResult(BaseModel):
    success: bool
    error: str | None = None
    record_id: str | None = None


class SubmissionResult(BaseModel):
    success: bool
    request_id: str | None = None
    error: str | None = None
    tokens: list[str] = Field(default_factory=list)


class InboxItem(BaseModel):
    id: str
    token: str
    request_id: str
    talent_name: str = ""
    talent_email: str = ""
    requesting_company: str
    request_date: datetime
    due_date: datetime
    status: DeliveryStatus
    priority: InboxPriority
    responded_at: datetime | None = None
    rejection_reason: str | None = None


class InboxStats(BaseModel):
    total: int = 0
    pending: int = 0
    responded: int = 0
    rejected: int = 0
    expired: int = 0
    response_rate: float = 0.0


class CompanyDelivery(BaseModel):
    company_id: str
    company_name: str
    respondent_email: str
    token: str
    status: DeliveryStatus


class RequestDetailStats(BaseModel):
    total_companies: int = 0
    responded_companies: int = 0
    pending_companies: int = 0
    rejected_companies: int = 0
    expired_companies: int = 0
    response_rate: float = 0.0
    average_ratings: dict[str, float] = Field(default_factory=dict)
    total_responses: int = 0


class RequestDetail(BaseModel):
    request: ReferenceRequest
    responses: list[ReferenceResponse] = Field(default_factory=list)
    companies: list[CompanyDelivery] = Field(default_factory=list)
    stats: RequestDetailStats


class DashboardStats(BaseModel):
    total_requests: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    response_rate: int = 0


class RecentRequestItem(BaseModel):
    id: str
    talent_name: str
    status: RequestStatus
    responses: int
    total: int
    created_at: datetime
