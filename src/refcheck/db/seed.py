from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import Session

from refcheck.db.models import RejectionRow, ResponseTokenRow


def _at(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=UTC)


MOCK_RESPONSE_TOKENS: list[dict[str, object]] = [
    {
        "token": "abc123token",
        "request_id": "req-001",
        "company_id": "org-001",
        "respondent_email": "park.manager@techstartup.com",
        "respondent_name": "Park (Manager)",
        "created_at": _at("2024-03-15T10:00:00"),
        "expires_at": _at("2024-04-15T23:59:59"),
        "is_used": True,
        "used_at": _at("2024-03-18T14:30:00"),
        "reminders_sent": 1,
        "last_reminder_at": _at("2024-03-20T09:00:00"),
    },
    {
        "token": "def456token",
        "request_id": "req-001",
        "company_id": "org-002",
        "respondent_email": "lee.team@globalit.com",
        "respondent_name": "Lee (Team Lead)",
        "created_at": _at("2024-03-15T10:00:00"),
        "expires_at": _at("2024-04-15T23:59:59"),
        "is_used": True,
        "used_at": _at("2024-03-20T09:15:00"),
        "reminders_sent": 2,
        "last_reminder_at": _at("2024-03-25T14:00:00"),
    },
    {
        "token": "ghi789token",
        "request_id": "req-001",
        "company_id": "org-003",
        "respondent_email": "kim.dev@innovationlab.co.kr",
        "respondent_name": "Kim (Developer)",
        "created_at": _at("2024-03-15T10:00:00"),
        "expires_at": _at("2025-07-15T23:59:59"),
        "is_used": False,
        "reminders_sent": 3,
        "last_reminder_at": _at("2025-07-28T16:30:00"),
    },
    {
        "token": "jkl012token",
        "request_id": "req-001",
        "company_id": "org-004",
        "respondent_email": "choi.cto@digitalsolution.com",
        "respondent_name": "Choi (CTO)",
        "created_at": _at("2024-03-15T10:00:00"),
        "expires_at": _at("2024-04-15T23:59:59"),
        "is_used": False,
        "reminders_sent": 0,
    },
    {
        "token": "mno345token",
        "request_id": "req-002",
        "company_id": "org-001",
        "respondent_email": "park.manager@techstartup.com",
        "respondent_name": "Park (Manager)",
        "created_at": _at("2024-03-10T09:00:00"),
        "expires_at": _at("2024-04-10T23:59:59"),
        "is_used": True,
        "used_at": _at("2024-03-12T16:45:00"),
        "reminders_sent": 0,
    },
    {
        "token": "pqr678token",
        "request_id": "req-003",
        "company_id": "org-001",
        "respondent_email": "jung.hr@techstartup.com",
        "respondent_name": "Jung (HR)",
        "created_at": _at("2024-03-22T11:00:00"),
        "expires_at": _at("2024-04-22T23:59:59"),
        "is_used": False,
        "reminders_sent": 1,
        "last_reminder_at": _at("2024-03-29T10:00:00"),
    },
]

MOCK_REJECTIONS: list[dict[str, object]] = [
    {
        "id": "rejection-yzab567",
        "token": "yzab567token",
        "request_id": "req-005",
        "respondent_email": "kim.dev@innovationlab.co.kr",
        "reason": "I have not worked directly with the candidate",
        "rejected_at": _at("2025-04-21T10:30:00"),
        "ip_address": "192.168.1.100",
    },
]


def seed_mock_tokens(session: Session) -> int:
    inserted = 0
    for item in MOCK_RESPONSE_TOKENS:
        if session.get(ResponseTokenRow, item["token"]) is not None:
            continue
        session.add(ResponseTokenRow(**item))
        inserted += 1
    session.commit()
    return inserted


def seed_mock_rejections(session: Session) -> int:
    inserted = 0
    for item in MOCK_REJECTIONS:
        if session.get(RejectionRow, item["id"]) is not None:
            continue
        session.add(RejectionRow(**item))
        inserted += 1
    session.commit()
    return inserted
