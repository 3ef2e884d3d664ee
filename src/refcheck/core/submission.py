from __future__ import annotations

import logging
import random
import time
from typing import Protocol

from refcheck.config import Settings, get_settings
from refcheck.core.runtime import Clock, TimestampIds, utc_now
from refcheck.core.tokens import TokenLifecycle
from refcheck.types import (
    DeliveryStatus,
    ReferenceRequest,
    RequestStatus,
    SubmissionResult,
    WizardFormData,
)

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "A server error occurred. Please try again shortly."


class RequestRepository(Protocol):
    def save_request(self, request: ReferenceRequest) -> ReferenceRequest: ...

    def get_request(self, request_id: str) -> ReferenceRequest | None: ...

    def list_requests(self) -> list[ReferenceRequest]: ...


class InMemoryRequestRepository:
    def __init__(self) -> None:
        self._requests: dict[str, ReferenceRequest] = {}

    def save_request(self, request: ReferenceRequest) -> ReferenceRequest:
        self._requests[request.id] = request
        return request

    def get_request(self, request_id: str) -> ReferenceRequest | None:
        return self._requests.get(request_id)

    def list_requests(self) -> list[ReferenceRequest]:
        return sorted(self._requests.values(), key=lambda request: request.created_at)


def request_status_for(statuses: list[DeliveryStatus]) -> RequestStatus:
    """A request is completed once no link is pending, and in progress once any link is answered."""
    if not statuses:
        return "pending"
    if "pending" not in statuses:
        return "completed"
    if any(status in ("responded", "rejected") for status in statuses):
        return "in_progress"
    return "pending"


def refresh_request_status(
    lifecycle: TokenLifecycle,
    requests: RequestRepository,
    request_id: str,
) -> RequestStatus | None:
    request = requests.get_request(request_id)
    if request is None:
        return None

    statuses = [lifecycle.delivery_status(record) for record in lifecycle.get_tokens_by_request_id(request_id)]
    status = request_status_for(statuses)
    if status != request.status:
        requests.save_request(request.model_copy(update={"status": status}))
        logger.info("Request status changed request_id=%s %s -> %s", request_id, request.status, status)
    return status


class MockRequestSubmitter:
    """Stands in for the request-creation endpoint, failures included."""

    def __init__(
        self,
        lifecycle: TokenLifecycle,
        requests: RequestRepository,
        *,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        failure_rate: float | None = None,
        clock: Clock = utc_now,
    ):
        self.lifecycle = lifecycle
        self.requests = requests
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()
        self.failure_rate = self.settings.submit_failure_rate if failure_rate is None else failure_rate
        self.clock = clock
        self.ids = TimestampIds(clock)

    def submit(self, form_data: WizardFormData) -> SubmissionResult:
        if self.settings.mock_latency_ms > 0:
            time.sleep(self.settings.mock_latency_ms / 1000)

        if self.rng.random() < self.failure_rate:
            logger.warning("Injected submission failure for talent=%s", form_data.talent_info.email)
            return SubmissionResult(success=False, error=SERVER_ERROR_MESSAGE)

        request = ReferenceRequest(
            id=f"REQ-{self.ids.next()}",
            talent_name=form_data.talent_info.name,
            talent_email=form_data.talent_info.email,
            status="pending",
            created_at=self.clock(),
            form_data=form_data,
        )
        self.requests.save_request(request)

        issued = [
            self.lifecycle.issue_token(
                request_id=request.id,
                company_id=company.id,
                respondent_email=company.contact_email,
                respondent_name=company.contact_person,
            )
            for company in form_data.target_companies
        ]
        return SubmissionResult(
            success=True,
            request_id=request.id,
            tokens=[record.token for record in issued],
        )
