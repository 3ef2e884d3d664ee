from __future__ import annotations

import math
from collections import defaultdict

from refcheck.core.respondent import ResponseRepository
from refcheck.core.submission import RequestRepository
from refcheck.core.tokens import TokenLifecycle
from refcheck.types import (
    CompanyDelivery,
    DashboardStats,
    RecentRequestItem,
    ReferenceRequest,
    ReferenceResponse,
    RequestDetail,
    RequestDetailStats,
)


def average_ratings(responses: list[ReferenceResponse]) -> dict[str, float]:
    ratings: dict[str, list[int]] = defaultdict(list)
    for response in responses:
        for answer in response.responses:
            if answer.rating is not None:
                ratings[answer.question_id].append(answer.rating)
    return {question_id: sum(values) / len(values) for question_id, values in sorted(ratings.items())}


class RequestReports:
    """Requester-side views: per-request progress and the dashboard summary."""

    def __init__(
        self,
        lifecycle: TokenLifecycle,
        requests: RequestRepository,
        responses: ResponseRepository,
    ):
        self.lifecycle = lifecycle
        self.requests = requests
        self.responses = responses

    def company_deliveries(self, request: ReferenceRequest) -> list[CompanyDelivery]:
        names = {company.id: company.name for company in request.form_data.target_companies}
        return [
            CompanyDelivery(
                company_id=record.company_id,
                company_name=names.get(record.company_id, record.company_id),
                respondent_email=record.respondent_email,
                token=record.token,
                status=self.lifecycle.delivery_status(record),
            )
            for record in self.lifecycle.get_tokens_by_request_id(request.id)
        ]

    def request_detail(self, request_id: str) -> RequestDetail | None:
        request = self.requests.get_request(request_id)
        if request is None:
            return None

        companies = self.company_deliveries(request)
        responses = self.responses.list_responses(request_id)
        total = len(companies)
        counts = {
            status: sum(1 for company in companies if company.status == status)
            for status in ("responded", "pending", "rejected", "expired")
        }
        stats = RequestDetailStats(
            total_companies=total,
            responded_companies=counts["responded"],
            pending_companies=counts["pending"],
            rejected_companies=counts["rejected"],
            expired_companies=counts["expired"],
            response_rate=(counts["responded"] / total) * 100 if total > 0 else 0.0,
            average_ratings=average_ratings(responses),
            total_responses=len(responses),
        )
        return RequestDetail(request=request, responses=responses, companies=companies, stats=stats)

    def dashboard_stats(self) -> DashboardStats:
        requests = self.requests.list_requests()
        completed = [request for request in requests if request.status == "completed"]

        # averaged over completed requests only, halves round up
        rates: list[float] = []
        for request in completed:
            companies = self.company_deliveries(request)
            if companies:
                responded = sum(1 for company in companies if company.status == "responded")
                rates.append(responded / len(companies) * 100)

        return DashboardStats(
            total_requests=len(requests),
            pending=sum(1 for request in requests if request.status == "pending"),
            in_progress=sum(1 for request in requests if request.status == "in_progress"),
            completed=len(completed),
            response_rate=math.floor(sum(rates) / len(completed) + 0.5) if completed else 0,
        )

    def recent_requests(self, limit: int = 5) -> list[RecentRequestItem]:
        items = []
        for request in self.requests.list_requests():
            companies = self.company_deliveries(request)
            items.append(
                RecentRequestItem(
                    id=request.id,
                    talent_name=request.talent_name,
                    status=request.status,
                    responses=sum(1 for company in companies if company.status == "responded"),
                    total=len(companies),
                    created_at=request.created_at,
                )
            )
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[:limit]
