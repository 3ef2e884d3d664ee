from __future__ import annotations

import logging
from typing import Protocol

from refcheck.core.runtime import Clock, TimestampIds, utc_now
from refcheck.core.storage import KeyValueStorage
from refcheck.core.submission import RequestRepository, refresh_request_status
from refcheck.core.tokens import TokenLifecycle
from refcheck.types import (
    AnsweredQuestion,
    ConsentItem,
    FlowResult,
    ReferenceQuestion,
    ReferenceResponse,
    ResponseFormData,
    TokenValidationResult,
)

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "response_form_"

CONSENT_ITEMS: list[ConsentItem] = [
    ConsentItem(
        id="personal_info",
        title="Consent to collection and use of personal information",
        description=(
            "Your name, email and workplace are collected to run the reference check "
            "and are destroyed once it completes."
        ),
        required=True,
    ),
    ConsentItem(
        id="data_sharing",
        title="Consent to share information with the requester",
        description=(
            "Your answers are shared with the requesting company. Anonymous answers "
            "omit identifying information."
        ),
        required=True,
    ),
    ConsentItem(
        id="marketing",
        title="Marketing emails (optional)",
        description="Receive product news and event announcements by email.",
        required=False,
    ),
]

REFERENCE_QUESTIONS: list[ReferenceQuestion] = [
    ReferenceQuestion(
        id="q1",
        text="How would you rate the candidate's overall job performance?",
        type="rating",
        required=True,
        category="skills",
    ),
    ReferenceQuestion(
        id="q2",
        text="How were the candidate's teamwork and collaboration skills?",
        type="rating",
        required=True,
        category="teamwork",
    ),
    ReferenceQuestion(
        id="q3",
        text="Describe the candidate's communication skills and work attitude.",
        type="text",
        required=True,
        category="communication",
    ),
    ReferenceQuestion(
        id="q4",
        text="How much leadership and initiative did the candidate show?",
        type="rating",
        required=False,
        category="leadership",
    ),
    ReferenceQuestion(
        id="q5",
        text="Would you work with the candidate again?",
        type="multiple_choice",
        required=True,
        options=["Strongly recommend", "Recommend", "Neutral", "Do not recommend"],
        category="general",
    ),
    ReferenceQuestion(
        id="q6",
        text="Which project or achievement of the candidate stood out most?",
        type="text",
        required=False,
        category="skills",
    ),
    ReferenceQuestion(
        id="q7",
        text="Is there anything the candidate should improve?",
        type="text",
        required=False,
        category="general",
    ),
]

OTHER_REASON = "Other (please specify)"
REJECTION_REASONS = [
    "I have not worked directly with the candidate",
    "Confidentiality policy prevents me from responding",
    "Company policy forbids external reference checks",
    "I do not know enough about the candidate",
    "I do not have time to respond",
    OTHER_REASON,
]


class ResponseRepository(Protocol):
    def add_response(self, response: ReferenceResponse) -> ReferenceResponse: ...

    def list_responses(self, request_id: str) -> list[ReferenceResponse]: ...


class InMemoryResponseRepository:
    def __init__(self) -> None:
        self._responses: list[ReferenceResponse] = []

    def add_response(self, response: ReferenceResponse) -> ReferenceResponse:
        self._responses.append(response)
        return response

    def list_responses(self, request_id: str) -> list[ReferenceResponse]:
        return [item for item in self._responses if item.request_id == request_id]


def missing_required_answers(
    form: ResponseFormData,
    questions: list[ReferenceQuestion] = REFERENCE_QUESTIONS,
) -> list[str]:
    answers = {item.question_id: item for item in form.responses}
    missing: list[str] = []
    for question in questions:
        if not question.required:
            continue
        answer = answers.get(question.id)
        if question.type == "rating":
            if answer is None or not answer.rating:
                missing.append(question.id)
        elif answer is None or not answer.answer.strip():
            missing.append(question.id)
    return missing


def invalid_choices(
    form: ResponseFormData,
    questions: list[ReferenceQuestion] = REFERENCE_QUESTIONS,
) -> list[str]:
    by_id = {question.id: question for question in questions}
    invalid: list[str] = []
    for item in form.responses:
        question = by_id.get(item.question_id)
        if question is None or question.type != "multiple_choice" or not item.answer:
            continue
        if item.answer not in question.options:
            invalid.append(item.question_id)
    return invalid


class RespondentService:
    """Consent, response and reject flows reached through a respondent's token link."""

    def __init__(
        self,
        lifecycle: TokenLifecycle,
        *,
        responses: ResponseRepository,
        drafts: KeyValueStorage,
        requests: RequestRepository | None = None,
        clock: Clock = utc_now,
    ):
        self.lifecycle = lifecycle
        self.responses = responses
        self.drafts = drafts
        self.requests = requests
        self.clock = clock
        self.ids = TimestampIds(clock)

    def check_token(self, token: str) -> TokenValidationResult:
        return self.lifecycle.resolve_token_status(token)

    def empty_form(self) -> ResponseFormData:
        return ResponseFormData(
            responses=[{"question_id": question.id} for question in REFERENCE_QUESTIONS]
        )

    def save_draft(self, token: str, form: ResponseFormData) -> None:
        try:
            self.drafts.set_item(f"{DRAFT_KEY_PREFIX}{token}", form.model_dump_json())
        except Exception as exc:
            logger.error("Error saving response draft: %s", exc)

    def load_draft(self, token: str) -> ResponseFormData | None:
        try:
            raw = self.drafts.get_item(f"{DRAFT_KEY_PREFIX}{token}")
        except Exception as exc:
            logger.error("Error loading response draft: %s", exc)
            return None
        if not raw:
            return None
        try:
            return ResponseFormData.model_validate_json(raw)
        except ValueError as exc:
            logger.error("Discarding unreadable response draft: %s", exc)
            return None

    def clear_draft(self, token: str) -> None:
        try:
            self.drafts.remove_item(f"{DRAFT_KEY_PREFIX}{token}")
        except Exception as exc:
            logger.error("Error clearing response draft: %s", exc)

    def submit_consent(self, token: str, accepted_ids: list[str], signature: str) -> FlowResult:
        status = self.check_token(token)
        if not status.is_valid or status.token_data is None:
            return FlowResult(success=False, error=status.message)

        accepted = set(accepted_ids)
        items = [item.model_copy(update={"accepted": item.id in accepted}) for item in CONSENT_ITEMS]
        if not all(item.accepted for item in items if item.required):
            return FlowResult(success=False, error="Accept all required consent items.")
        if not signature.strip():
            return FlowResult(success=False, error="Enter your signature.")

        record_id = f"consent-{self.ids.next()}"
        logger.info(
            "Consent submitted id=%s request_id=%s items=%s",
            record_id,
            status.token_data.request_id,
            [item.id for item in items if item.accepted],
        )
        return FlowResult(success=True, record_id=record_id)

    def submit_response(self, token: str, form: ResponseFormData) -> FlowResult:
        status = self.check_token(token)
        if not status.is_valid or status.token_data is None:
            return FlowResult(success=False, error=status.message)

        if missing_required_answers(form):
            return FlowResult(success=False, error="Answer all required questions.")
        if invalid_choices(form):
            return FlowResult(success=False, error="Choose one of the listed options.")

        texts = {question.id: question.text for question in REFERENCE_QUESTIONS}
        token_data = status.token_data
        response = ReferenceResponse(
            id=f"resp-{self.ids.next()}",
            request_id=token_data.request_id,
            company_id=token_data.company_id,
            respondent_name=token_data.respondent_name,
            respondent_email=token_data.respondent_email,
            responses=[
                AnsweredQuestion(
                    question_id=item.question_id,
                    question=texts.get(item.question_id, ""),
                    answer=item.answer,
                    rating=item.rating,
                )
                for item in form.responses
            ],
            additional_comments=form.additional_comments,
            submitted_at=self.clock(),
            is_anonymous=form.is_anonymous,
        )
        self.responses.add_response(response)
        self.lifecycle.mark_token_as_used(token)
        self.clear_draft(token)
        self._refresh_request(response.request_id)
        logger.info("Response submitted id=%s request_id=%s", response.id, response.request_id)
        return FlowResult(success=True, record_id=response.id)

    def reject(self, token: str, reason: str, custom_reason: str = "") -> FlowResult:
        status = self.check_token(token)
        if not status.is_valid or status.token_data is None:
            return FlowResult(success=False, error=status.message)

        final_reason = custom_reason if reason == OTHER_REASON else reason
        if not final_reason.strip():
            return FlowResult(success=False, error="Select or enter a reason for declining.")

        token_data = status.token_data
        record = self.lifecycle.record_rejection(
            token=token,
            request_id=token_data.request_id,
            respondent_email=token_data.respondent_email,
            reason=final_reason.strip(),
        )
        self.lifecycle.mark_token_as_used(token)
        self._refresh_request(token_data.request_id)
        return FlowResult(success=True, record_id=record.id)

    def _refresh_request(self, request_id: str) -> None:
        if self.requests is not None:
            refresh_request_status(self.lifecycle, self.requests, request_id)
