from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException

from refcheck.api.deps import (
    get_inbox,
    get_reports,
    get_repository,
    get_respondent_service,
    get_submitter,
    get_token_lifecycle,
)
from refcheck.api.schemas import (
    ConsentRequest,
    CustomQuestionRequest,
    DashboardResponse,
    GoToStepRequest,
    InboxResponse,
    QuestionUpdateRequest,
    RejectRequest,
    ReorderQuestionsRequest,
    TalentInfoUpdateRequest,
    TermsRequest,
    WizardStateResponse,
    WorkHistoryUpdateRequest,
)
from refcheck.core.inbox import RespondentInbox, filter_inbox, inbox_stats
from refcheck.core.reports import RequestReports
from refcheck.core.respondent import CONSENT_ITEMS, REFERENCE_QUESTIONS, REJECTION_REASONS, RespondentService
from refcheck.core.storage import NamespacedStorage
from refcheck.core.submission import MockRequestSubmitter
from refcheck.core.tokens import ReminderNotAllowedError, TokenLifecycle, TokenNotFoundError
from refcheck.core.validation import validate_target_company_entry, validate_work_history_entry
from refcheck.core.wizard import WizardEngine
from refcheck.db.repositories import DatabaseStorage, Repository
from refcheck.types import (
    ConsentItem,
    FlowResult,
    Question,
    ReferenceQuestion,
    ReferenceRequest,
    ReferenceResponse,
    RequestDetail,
    ResponseFormData,
    ResponseToken,
    SubmissionResult,
    TargetCompany,
    TargetCompanyInput,
    TokenStats,
    TokenValidationResult,
    WizardExport,
    WorkHistory,
    WorkHistoryInput,
)

router = APIRouter(prefix="/api", tags=["api"])


def _wizard(repo: Repository, session_id: str) -> WizardEngine:
    storage = NamespacedStorage(DatabaseStorage(repo), session_id)
    return WizardEngine(storage).restore()


def _state(session_id: str, engine: WizardEngine) -> WizardStateResponse:
    return WizardStateResponse(
        session_id=session_id,
        current_step=engine.current_step,
        total_steps=engine.total_steps,
        form_data=engine.form_data,
        step_validity=engine.step_validity(),
        can_navigate_next=engine.can_navigate_next,
        can_navigate_previous=engine.can_navigate_previous,
    )


def _flow_response(result: FlowResult) -> FlowResult:
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result


@router.post("/wizard/sessions", response_model=WizardStateResponse)
def create_wizard_session(repo: Repository = Depends(get_repository)) -> WizardStateResponse:
    session_id = uuid.uuid4().hex
    return _state(session_id, _wizard(repo, session_id))


@router.get("/wizard/{session_id}", response_model=WizardStateResponse)
def get_wizard(session_id: str, repo: Repository = Depends(get_repository)) -> WizardStateResponse:
    return _state(session_id, _wizard(repo, session_id))


@router.post("/wizard/{session_id}/next", response_model=WizardStateResponse)
def wizard_next(session_id: str, repo: Repository = Depends(get_repository)) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.next_step()
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/previous", response_model=WizardStateResponse)
def wizard_previous(session_id: str, repo: Repository = Depends(get_repository)) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.previous_step()
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/goto", response_model=WizardStateResponse)
def wizard_goto(
    session_id: str,
    payload: GoToStepRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.go_to_step(payload.step)
    return _state(session_id, engine)


@router.patch("/wizard/{session_id}/talent-info", response_model=WizardStateResponse)
def update_talent_info(
    session_id: str,
    payload: TalentInfoUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.update_talent_info(**payload.model_dump(exclude_none=True))
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/work-history", response_model=WorkHistory)
def add_work_history(
    session_id: str,
    payload: WorkHistoryInput,
    repo: Repository = Depends(get_repository),
) -> WorkHistory:
    errors = validate_work_history_entry(payload)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})
    return _wizard(repo, session_id).add_work_history(payload)


@router.patch("/wizard/{session_id}/work-history/{history_id}", response_model=WizardStateResponse)
def update_work_history(
    session_id: str,
    history_id: str,
    payload: WorkHistoryUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    errors = engine.update_work_history(history_id, **payload.model_dump(exclude_none=True))
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})
    return _state(session_id, engine)


@router.delete("/wizard/{session_id}/work-history/{history_id}", response_model=WizardStateResponse)
def remove_work_history(
    session_id: str,
    history_id: str,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.remove_work_history(history_id)
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/target-companies", response_model=TargetCompany)
def add_target_company(
    session_id: str,
    payload: TargetCompanyInput,
    repo: Repository = Depends(get_repository),
) -> TargetCompany:
    errors = validate_target_company_entry(payload)
    if errors:
        raise HTTPException(status_code=422, detail={"errors": errors})

    company, errors = _wizard(repo, session_id).add_target_company(payload)
    if company is None:
        raise HTTPException(status_code=409, detail={"errors": errors})
    return company


@router.delete("/wizard/{session_id}/target-companies/{company_id}", response_model=WizardStateResponse)
def remove_target_company(
    session_id: str,
    company_id: str,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.remove_target_company(company_id)
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/questions", response_model=Question)
def add_custom_question(
    session_id: str,
    payload: CustomQuestionRequest,
    repo: Repository = Depends(get_repository),
) -> Question:
    return _wizard(repo, session_id).add_custom_question(payload.text)


@router.put("/wizard/{session_id}/questions", response_model=WizardStateResponse)
def reorder_questions(
    session_id: str,
    payload: ReorderQuestionsRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.reorder_questions(payload.questions)
    return _state(session_id, engine)


@router.patch("/wizard/{session_id}/questions/{question_id}", response_model=WizardStateResponse)
def update_question(
    session_id: str,
    question_id: str,
    payload: QuestionUpdateRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.update_question(question_id, **payload.model_dump(exclude_none=True))
    return _state(session_id, engine)


@router.put("/wizard/{session_id}/terms", response_model=WizardStateResponse)
def accept_terms(
    session_id: str,
    payload: TermsRequest,
    repo: Repository = Depends(get_repository),
) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.update_form_data("terms_accepted", payload.accepted)
    return _state(session_id, engine)


@router.get("/wizard/{session_id}/export", response_model=WizardExport)
def export_wizard(session_id: str, repo: Repository = Depends(get_repository)) -> WizardExport:
    return _wizard(repo, session_id).export_form_data()


@router.post("/wizard/{session_id}/reset", response_model=WizardStateResponse)
def reset_wizard(session_id: str, repo: Repository = Depends(get_repository)) -> WizardStateResponse:
    engine = _wizard(repo, session_id)
    engine.reset_wizard()
    return _state(session_id, engine)


@router.post("/wizard/{session_id}/submit", response_model=SubmissionResult)
def submit_wizard(
    session_id: str,
    repo: Repository = Depends(get_repository),
    submitter: MockRequestSubmitter = Depends(get_submitter),
) -> SubmissionResult:
    return _wizard(repo, session_id).submit(submitter)


@router.get("/requests", response_model=list[ReferenceRequest])
def list_requests(repo: Repository = Depends(get_repository)) -> list[ReferenceRequest]:
    return repo.list_requests()


@router.get("/requests/{request_id}", response_model=ReferenceRequest)
def get_request(request_id: str, repo: Repository = Depends(get_repository)) -> ReferenceRequest:
    request = repo.get_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Request not found")
    return request


@router.get("/requests/{request_id}/detail", response_model=RequestDetail)
def get_request_detail(
    request_id: str,
    reports: RequestReports = Depends(get_reports),
) -> RequestDetail:
    detail = reports.request_detail(request_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Request not found")
    return detail


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(reports: RequestReports = Depends(get_reports)) -> DashboardResponse:
    return DashboardResponse(stats=reports.dashboard_stats(), recent_requests=reports.recent_requests())


@router.get("/inbox", response_model=InboxResponse)
def respondent_inbox(
    email: str,
    status: str = "all",
    q: str = "",
    inbox: RespondentInbox = Depends(get_inbox),
) -> InboxResponse:
    items = inbox.items_for(email)
    # stats cover the whole inbox, not the filtered view
    return InboxResponse(items=filter_inbox(items, search=q, status=status), stats=inbox_stats(items))


@router.get("/requests/{request_id}/tokens", response_model=list[ResponseToken])
def list_request_tokens(
    request_id: str,
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> list[ResponseToken]:
    return lifecycle.get_tokens_by_request_id(request_id)


@router.get("/requests/{request_id}/stats", response_model=TokenStats)
def request_token_stats(
    request_id: str,
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> TokenStats:
    return lifecycle.get_token_stats(request_id)


@router.get("/requests/{request_id}/responses", response_model=list[ReferenceResponse])
def list_request_responses(
    request_id: str,
    repo: Repository = Depends(get_repository),
) -> list[ReferenceResponse]:
    return repo.list_responses(request_id)


@router.get("/tokens/stats", response_model=TokenStats)
def token_stats(lifecycle: TokenLifecycle = Depends(get_token_lifecycle)) -> TokenStats:
    return lifecycle.get_token_stats()


@router.get("/tokens/reminders", response_model=list[ResponseToken])
def tokens_needing_reminder(
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> list[ResponseToken]:
    return lifecycle.get_tokens_needing_reminder()


@router.get("/respondent/consent-items", response_model=list[ConsentItem])
def consent_items() -> list[ConsentItem]:
    return CONSENT_ITEMS


@router.get("/respondent/questions", response_model=list[ReferenceQuestion])
def reference_questions() -> list[ReferenceQuestion]:
    return REFERENCE_QUESTIONS


@router.get("/respondent/rejection-reasons", response_model=list[str])
def rejection_reasons() -> list[str]:
    return REJECTION_REASONS


@router.get("/tokens/{token}", response_model=TokenValidationResult)
def check_token(
    token: str,
    service: RespondentService = Depends(get_respondent_service),
) -> TokenValidationResult:
    return service.check_token(token)


@router.post("/tokens/{token}/reminders", response_model=ResponseToken)
def record_reminder(
    token: str,
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> ResponseToken:
    try:
        return lifecycle.record_reminder(token)
    except TokenNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ReminderNotAllowedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.get("/tokens/{token}/draft", response_model=ResponseFormData)
def get_response_draft(
    token: str,
    service: RespondentService = Depends(get_respondent_service),
) -> ResponseFormData:
    return service.load_draft(token) or service.empty_form()


@router.put("/tokens/{token}/draft", response_model=ResponseFormData)
def save_response_draft(
    token: str,
    payload: ResponseFormData,
    service: RespondentService = Depends(get_respondent_service),
) -> ResponseFormData:
    status = service.check_token(token)
    if not status.is_valid:
        raise HTTPException(status_code=400, detail=status.message)
    service.save_draft(token, payload)
    return payload


@router.post("/tokens/{token}/consent", response_model=FlowResult)
def submit_consent(
    token: str,
    payload: ConsentRequest,
    service: RespondentService = Depends(get_respondent_service),
) -> FlowResult:
    return _flow_response(service.submit_consent(token, payload.accepted_ids, payload.signature))


@router.post("/tokens/{token}/response", response_model=FlowResult)
def submit_response(
    token: str,
    payload: ResponseFormData,
    service: RespondentService = Depends(get_respondent_service),
) -> FlowResult:
    return _flow_response(service.submit_response(token, payload))


@router.post("/tokens/{token}/reject", response_model=FlowResult)
def reject_request(
    token: str,
    payload: RejectRequest,
    service: RespondentService = Depends(get_respondent_service),
) -> FlowResult:
    return _flow_response(service.reject(token, payload.reason, payload.custom_reason))
