from __future__ import annotations

from datetime import UTC, datetime, timedelta

from refcheck.core.storage import NamespacedStorage
from refcheck.core.wizard import WizardEngine
from refcheck.db.init import init_database
from refcheck.db.repositories import DatabaseStorage, Repository
from refcheck.db.seed import seed_mock_rejections, seed_mock_tokens
from refcheck.db.session import SessionLocal
from refcheck.types import (
    AnsweredQuestion,
    ReferenceRequest,
    ReferenceResponse,
    ResponseToken,
    TalentInfo,
    WizardFormData,
)

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def test_seed_is_idempotent() -> None:
    with SessionLocal() as db:
        assert seed_mock_tokens(db) == 0
        assert seed_mock_rejections(db) == 0
        assert len(Repository(db).list_tokens()) == 6

    assert init_database() == {"seeded_tokens": 0, "seeded_rejections": 0}


def test_token_round_trip_keeps_utc() -> None:
    record = ResponseToken(
        token="tok-db",
        request_id="REQ-1",
        company_id="c1",
        respondent_email="kim@acme.com",
        respondent_name="Kim",
        created_at=NOW,
        expires_at=NOW + timedelta(days=30),
    )
    with SessionLocal() as db:
        repo = Repository(db)
        repo.save_token(record)
        repo.save_token(record.model_copy(update={"is_used": True, "used_at": NOW}))

    with SessionLocal() as db:
        loaded = Repository(db).get_token("tok-db")

    assert loaded.is_used is True
    assert loaded.used_at == NOW
    assert loaded.expires_at.tzinfo is not None
    assert loaded.expires_at == NOW + timedelta(days=30)


def test_list_tokens_filters_by_request() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        assert {record.token for record in repo.list_tokens("req-002")} == {"mno345token"}
        assert repo.get_token("missing") is None
        assert repo.find_rejection_by_token("yzab567token").id == "rejection-yzab567"
        assert repo.find_rejection_by_token("abc123token") is None


def test_request_and_response_round_trip() -> None:
    form = WizardFormData(talent_info=TalentInfo(name="Hong", email="hong@example.com"), terms_accepted=True)
    with SessionLocal() as db:
        repo = Repository(db)
        repo.save_request(
            ReferenceRequest(
                id="REQ-1",
                talent_name="Hong",
                talent_email="hong@example.com",
                created_at=NOW,
                form_data=form,
            )
        )
        repo.add_response(
            ReferenceResponse(
                id="resp-1",
                request_id="REQ-1",
                company_id="c1",
                respondent_name="Kim",
                respondent_email="kim@acme.com",
                responses=[AnsweredQuestion(question_id="q1", question="Rate them", rating=4)],
                submitted_at=NOW,
            )
        )

    with SessionLocal() as db:
        repo = Repository(db)
        request = repo.get_request("REQ-1")
        responses = repo.list_responses("REQ-1")
        assert repo.list_responses("REQ-2") == []

    assert request.form_data == form
    assert request.created_at == NOW
    assert responses[0].responses[0].rating == 4


def test_list_requests_oldest_first_and_status_updates() -> None:
    with SessionLocal() as db:
        repo = Repository(db)
        for request_id, created_at in (("REQ-new", NOW), ("REQ-old", NOW - timedelta(days=3))):
            repo.save_request(
                ReferenceRequest(
                    id=request_id,
                    talent_name="Hong",
                    talent_email="hong@example.com",
                    created_at=created_at,
                    form_data=WizardFormData(),
                )
            )
        old = repo.get_request("REQ-old")
        repo.save_request(old.model_copy(update={"status": "in_progress"}))

    with SessionLocal() as db:
        listed = Repository(db).list_requests()

    assert [request.id for request in listed] == ["REQ-old", "REQ-new"]
    assert [request.status for request in listed] == ["in_progress", "pending"]


def test_database_storage_backs_wizard_sessions() -> None:
    with SessionLocal() as db:
        storage = DatabaseStorage(Repository(db))
        storage.set_item("k", "v1")
        storage.set_item("k", "v2")
        assert storage.get_item("k") == "v2"
        storage.remove_item("k")
        storage.remove_item("k")
        assert storage.get_item("k") is None

        engine = WizardEngine(NamespacedStorage(storage, "sess-1")).restore()
        engine.update_talent_info(name="Hong")

    with SessionLocal() as db:
        storage = NamespacedStorage(DatabaseStorage(Repository(db)), "sess-1")
        assert WizardEngine(storage).restore().form_data.talent_info.name == "Hong"
