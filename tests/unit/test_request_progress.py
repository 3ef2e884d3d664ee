from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest

from refcheck.config import Settings
from refcheck.core.inbox import RespondentInbox, filter_inbox, inbox_stats, priority_for_age
from refcheck.core.reports import RequestReports
from refcheck.core.respondent import InMemoryResponseRepository, RespondentService
from refcheck.core.storage import InMemoryStorage
from refcheck.core.submission import InMemoryRequestRepository, refresh_request_status, request_status_for
from refcheck.core.tokens import InMemoryRejectionRepository, InMemoryTokenRepository, TokenLifecycle
from refcheck.types import (
    ReferenceRequest,
    ResponseAnswer,
    ResponseFormData,
    ResponseToken,
    TargetCompany,
    WizardFormData,
)

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


@dataclass
class World:
    lifecycle: TokenLifecycle
    requests: InMemoryRequestRepository
    service: RespondentService
    inbox: RespondentInbox
    reports: RequestReports


def _company(company_id: str, name: str, email: str) -> TargetCompany:
    return TargetCompany(
        id=company_id,
        name=name,
        domain=f"{name.lower()}.com",
        contact_person="Contact",
        contact_email=email,
    )


def _request(request_id: str, talent: str, created_at: datetime, *companies: TargetCompany) -> ReferenceRequest:
    return ReferenceRequest(
        id=request_id,
        talent_name=talent,
        talent_email=f"{talent.lower()}@example.com",
        created_at=created_at,
        form_data=WizardFormData(target_companies=list(companies)),
    )


def _token(key: str, request_id: str, company_id: str, email: str, age_days: int, **overrides) -> ResponseToken:
    created_at = NOW - timedelta(days=age_days)
    values = {
        "token": key,
        "request_id": request_id,
        "company_id": company_id,
        "respondent_email": email,
        "respondent_name": "Contact",
        "created_at": created_at,
        "expires_at": created_at + timedelta(days=30),
    }
    values.update(overrides)
    return ResponseToken(**values)


def _world() -> World:
    requests = InMemoryRequestRepository()
    requests.save_request(
        _request(
            "REQ-1",
            "Hong",
            NOW - timedelta(days=10),
            _company("c1", "Acme", "kim@acme.com"),
            _company("c2", "Beta", "lee@beta.com"),
        )
    )
    requests.save_request(
        _request("REQ-2", "Park", NOW - timedelta(days=2), _company("c3", "Gamma", "kim@acme.com"))
    )

    lifecycle = TokenLifecycle(
        InMemoryTokenRepository(
            [
                _token("t1", "REQ-1", "c1", "kim@acme.com", age_days=1),
                _token("t2", "REQ-1", "c2", "lee@beta.com", age_days=5),
                _token("t3", "REQ-2", "c3", "KIM@acme.com", age_days=10),
                _token("t4", "REQ-9", "c9", "kim@acme.com", age_days=40),
            ]
        ),
        InMemoryRejectionRepository(),
        settings=Settings(),
        clock=lambda: NOW,
    )
    responses = InMemoryResponseRepository()
    service = RespondentService(
        lifecycle,
        responses=responses,
        drafts=InMemoryStorage(),
        requests=requests,
        clock=lambda: NOW,
    )
    return World(
        lifecycle=lifecycle,
        requests=requests,
        service=service,
        inbox=RespondentInbox(lifecycle, requests, clock=lambda: NOW),
        reports=RequestReports(lifecycle, requests, responses),
    )


def _complete_form() -> ResponseFormData:
    return ResponseFormData(
        responses=[
            ResponseAnswer(question_id="q1", rating=5),
            ResponseAnswer(question_id="q2", rating=4),
            ResponseAnswer(question_id="q3", answer="Clear and reliable communicator."),
            ResponseAnswer(question_id="q5", answer="Strongly recommend"),
        ]
    )


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([], "pending"),
        (["pending", "pending"], "pending"),
        (["pending", "expired"], "pending"),
        (["responded", "pending"], "in_progress"),
        (["rejected", "pending"], "in_progress"),
        (["responded", "rejected"], "completed"),
        (["expired"], "completed"),
    ],
)
def test_request_status_for(statuses: list, expected: str) -> None:
    assert request_status_for(statuses) == expected


def test_refresh_for_unknown_request() -> None:
    world = _world()
    assert refresh_request_status(world.lifecycle, world.requests, "REQ-404") is None


def test_respondent_flows_advance_request_status() -> None:
    world = _world()
    assert world.requests.get_request("REQ-1").status == "pending"

    assert world.service.submit_response("t1", _complete_form()).success
    assert world.requests.get_request("REQ-1").status == "in_progress"

    assert world.service.reject("t2", "I do not have time to respond").success
    assert world.requests.get_request("REQ-1").status == "completed"
    assert world.requests.get_request("REQ-2").status == "pending"


@pytest.mark.parametrize(
    ("days", "priority"),
    [(0, "high"), (3, "high"), (4, "medium"), (7, "medium"), (8, "low")],
)
def test_priority_for_age(days: int, priority: str) -> None:
    assert priority_for_age(days) == priority


def test_inbox_lists_requests_for_respondent_newest_first() -> None:
    items = _world().inbox.items_for(" Kim@Acme.com ")

    assert [item.token for item in items] == ["t1", "t3", "t4"]
    first, second, orphan = items
    assert (first.talent_name, first.requesting_company, first.priority) == ("Hong", "Acme", "high")
    assert (second.talent_name, second.requesting_company, second.priority) == ("Park", "Gamma", "low")
    assert orphan.requesting_company == "Unknown company"
    assert orphan.talent_name == ""
    assert orphan.status == "expired"
    assert first.due_date == first.request_date + timedelta(days=30)


def test_inbox_reflects_answers_and_rejections() -> None:
    world = _world()
    world.service.submit_response("t1", _complete_form())
    world.service.reject("t3", "I do not have time to respond")

    items = {item.token: item for item in world.inbox.items_for("kim@acme.com")}

    assert items["t1"].status == "responded"
    assert items["t1"].responded_at == NOW
    assert items["t3"].status == "rejected"
    assert items["t3"].rejection_reason == "I do not have time to respond"
    assert items["t3"].responded_at == NOW


def test_inbox_stats_count_answers_and_rejections() -> None:
    world = _world()
    world.service.reject("t3", "I do not have time to respond")

    stats = inbox_stats(world.inbox.items_for("kim@acme.com"))

    assert (stats.total, stats.pending, stats.responded, stats.rejected, stats.expired) == (3, 1, 0, 1, 1)
    assert stats.response_rate == pytest.approx(100 / 3)
    assert inbox_stats([]).response_rate == 0.0


def test_filter_inbox_by_search_and_status() -> None:
    items = _world().inbox.items_for("kim@acme.com")

    assert [item.token for item in filter_inbox(items, search="park")] == ["t3"]
    assert [item.token for item in filter_inbox(items, search="ACME")] == ["t1"]
    assert [item.token for item in filter_inbox(items, status="expired")] == ["t4"]
    assert filter_inbox(items, search="hong", status="expired") == []
    assert filter_inbox(items) == items


def test_request_detail_summarizes_deliveries_and_ratings() -> None:
    world = _world()
    world.service.submit_response("t1", _complete_form())
    world.service.reject("t2", "I do not have time to respond")

    detail = world.reports.request_detail("REQ-1")

    assert detail.request.status == "completed"
    assert [(item.company_name, item.status) for item in detail.companies] == [
        ("Acme", "responded"),
        ("Beta", "rejected"),
    ]
    stats = detail.stats
    assert (stats.total_companies, stats.responded_companies, stats.rejected_companies) == (2, 1, 1)
    assert stats.pending_companies == 0
    assert stats.response_rate == 50.0
    assert stats.average_ratings == {"q1": 5.0, "q2": 4.0}
    assert stats.total_responses == 1
    assert world.reports.request_detail("REQ-404") is None


def test_dashboard_averages_completed_requests() -> None:
    world = _world()
    world.service.submit_response("t1", _complete_form())
    world.service.reject("t2", "I do not have time to respond")
    world.service.reject("t3", "I do not have time to respond")

    stats = world.reports.dashboard_stats()

    assert (stats.total_requests, stats.pending, stats.in_progress, stats.completed) == (2, 0, 0, 2)
    # REQ-1 answered half its links, REQ-2 none
    assert stats.response_rate == 25


def test_dashboard_without_requests() -> None:
    lifecycle = TokenLifecycle(InMemoryTokenRepository(), settings=Settings(), clock=lambda: NOW)
    reports = RequestReports(lifecycle, InMemoryRequestRepository(), InMemoryResponseRepository())

    stats = reports.dashboard_stats()
    assert (stats.total_requests, stats.completed, stats.response_rate) == (0, 0, 0)
    assert reports.recent_requests() == []


def test_recent_requests_newest_first() -> None:
    world = _world()
    world.service.submit_response("t1", _complete_form())

    recent = world.reports.recent_requests()

    assert [item.id for item in recent] == ["REQ-2", "REQ-1"]
    assert (recent[1].status, recent[1].responses, recent[1].total) == ("in_progress", 1, 2)
    assert world.reports.recent_requests(limit=1)[0].id == "REQ-2"


def test_dashboard_rate_rounds_half_up() -> None:
    requests = InMemoryRequestRepository()
    for request_id in ("REQ-A", "REQ-B"):
        requests.save_request(
            _request(request_id, "Hong", NOW - timedelta(days=40)).model_copy(update={"status": "completed"})
        )
    expired = {"expires_at": NOW - timedelta(days=10)}
    tokens = [
        _token("a1", "REQ-A", "c1", "a@example.com", age_days=40, is_used=True, used_at=NOW - timedelta(days=39)),
        _token("a2", "REQ-A", "c2", "b@example.com", age_days=40, **expired),
        _token("a3", "REQ-A", "c3", "c@example.com", age_days=40, **expired),
        _token("a4", "REQ-A", "c4", "d@example.com", age_days=40, **expired),
        _token("b1", "REQ-B", "c1", "a@example.com", age_days=40, **expired),
    ]
    lifecycle = TokenLifecycle(InMemoryTokenRepository(tokens), settings=Settings(), clock=lambda: NOW)

    stats = RequestReports(lifecycle, requests, InMemoryResponseRepository()).dashboard_stats()

    # (25 + 0) / 2
    assert stats.response_rate == 13
