from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from refcheck.core.storage import InMemoryStorage
from refcheck.core.wizard import CURRENT_STEP_KEY, DUPLICATE_COMPANY_ERROR, FORM_DATA_KEY, WizardEngine
from refcheck.types import SubmissionResult, TargetCompanyInput, WizardFormData, WorkHistoryInput

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


class RecordingSubmitter:
    def __init__(self, result: SubmissionResult):
        self.result = result
        self.calls: list[WizardFormData] = []

    def submit(self, form_data: WizardFormData) -> SubmissionResult:
        self.calls.append(form_data)
        return self.result


def _engine(storage: InMemoryStorage | None = None) -> WizardEngine:
    return WizardEngine(storage or InMemoryStorage(), clock=lambda: NOW).restore()


def _company(name: str = "Acme", domain: str = "acme.com") -> TargetCompanyInput:
    return TargetCompanyInput(name=name, domain=domain, contact_person="Kim", contact_email="kim@acme.com")


def _history() -> WorkHistoryInput:
    return WorkHistoryInput(
        position="Engineer",
        company="Acme",
        start_date="2020-01-01",
        end_date="2022-01-01",
        responsibilities="Maintained the billing platform",
    )


def _fill_all_steps(engine: WizardEngine) -> None:
    engine.update_talent_info(name="Hong Gildong", email="hong@example.com", phone="010-1234-5678")
    engine.add_work_history(_history())
    engine.add_target_company(_company())
    engine.update_form_data("terms_accepted", True)


def test_fresh_engine_starts_on_step_one_with_default_questions() -> None:
    engine = WizardEngine(clock=lambda: NOW)
    assert engine.current_step == 1
    assert [question.id for question in engine.form_data.questions] == ["q1", "q2", "q3", "q4", "q5"]
    assert all(question.is_default and question.is_enabled for question in engine.form_data.questions)
    assert not engine.initialized


def test_nothing_is_written_before_restore() -> None:
    storage = InMemoryStorage()
    engine = WizardEngine(storage, clock=lambda: NOW)
    engine.update_talent_info(name="Hong")
    assert storage.keys() == []

    engine.restore()
    assert storage.keys() == []

    engine.update_talent_info(name="Hong")
    assert storage.keys() == [CURRENT_STEP_KEY, FORM_DATA_KEY]


def test_completing_talent_info_unlocks_step_two() -> None:
    engine = _engine()
    assert not engine.can_navigate_next

    engine.update_talent_info(name="Hong Gildong", email="hong@example.com", phone="010-1234-5678")
    assert engine.is_step_valid(1)
    assert engine.is_step_valid(1)

    engine.next_step()
    assert engine.current_step == 2
    assert engine.can_navigate_previous


def test_invalid_email_blocks_step_one() -> None:
    engine = _engine()
    engine.update_talent_info(name="Hong", email="hong@", phone="010-1234-5678")
    engine.next_step()
    assert engine.current_step == 1


def test_previous_step_on_first_step_is_noop() -> None:
    engine = _engine()
    engine.previous_step()
    assert engine.current_step == 1


def test_go_to_step_only_checks_bounds() -> None:
    engine = _engine()
    engine.go_to_step(5)
    assert engine.current_step == 5
    engine.go_to_step(0)
    engine.go_to_step(6)
    assert engine.current_step == 5


def test_next_step_stops_at_last_step() -> None:
    engine = _engine()
    _fill_all_steps(engine)
    engine.go_to_step(5)
    engine.next_step()
    assert engine.current_step == 5
    assert not engine.can_navigate_next


def test_step_validity_tracks_each_section() -> None:
    engine = _engine()
    assert engine.step_validity() == {1: False, 2: False, 3: False, 4: True, 5: False}

    _fill_all_steps(engine)
    assert all(engine.step_validity().values())

    for question in engine.form_data.questions:
        engine.update_question(question.id, is_enabled=False)
    assert not engine.is_step_valid(4)
    assert not engine.is_step_valid(9)


def test_duplicate_company_domain_is_rejected_without_mutation() -> None:
    engine = _engine()
    first, errors = engine.add_target_company(_company())
    assert first is not None and errors == {}

    second, errors = engine.add_target_company(_company(name="Acme Holdings", domain="ACME.com"))
    assert second is None
    assert errors == {"name": DUPLICATE_COMPANY_ERROR}
    assert [company.id for company in engine.form_data.target_companies] == [first.id]


def test_duplicate_company_name_is_case_insensitive() -> None:
    engine = _engine()
    engine.add_target_company(_company())
    company, _ = engine.add_target_company(_company(name="ACME", domain="other.com"))
    assert company is None


def test_removing_entries_twice_is_noop() -> None:
    engine = _engine()
    history = engine.add_work_history(_history())
    company, _ = engine.add_target_company(_company())

    engine.remove_work_history(history.id)
    engine.remove_work_history(history.id)
    engine.remove_target_company(company.id)
    engine.remove_target_company(company.id)

    assert engine.form_data.work_history == []
    assert engine.form_data.target_companies == []


def test_generated_ids_are_unique() -> None:
    engine = _engine()
    first = engine.add_work_history(_history())
    second = engine.add_work_history(_history())
    assert first.id != second.id


def test_update_work_history_changes_only_matching_entry() -> None:
    engine = _engine()
    first = engine.add_work_history(_history())
    second = engine.add_work_history(_history())

    engine.update_work_history(first.id, position="Staff Engineer", id="ignored")
    by_id = {item.id: item for item in engine.form_data.work_history}
    assert by_id[first.id].position == "Staff Engineer"
    assert by_id[second.id].position == "Engineer"


def test_invalid_work_history_update_is_refused_without_mutation() -> None:
    storage = InMemoryStorage()
    engine = _engine(storage)
    entry = engine.add_work_history(_history())
    saved = storage.get_item(FORM_DATA_KEY)

    errors = engine.update_work_history(entry.id, end_date="2019-01-01", responsibilities="")

    assert set(errors) == {"end_date", "responsibilities"}
    assert engine.form_data.work_history == [entry]
    assert storage.get_item(FORM_DATA_KEY) == saved


def test_valid_work_history_update_returns_no_errors() -> None:
    engine = _engine()
    entry = engine.add_work_history(_history())

    assert engine.update_work_history(entry.id, end_date="2023-06-30") == {}
    assert engine.form_data.work_history[0].end_date == "2023-06-30"


def test_question_updates_are_type_checked() -> None:
    engine = _engine()
    with pytest.raises(ValidationError):
        engine.update_question("q1", is_enabled="maybe")
    assert engine.form_data.questions[0].is_enabled is True

    engine.update_question("q1", is_enabled="no")
    assert engine.form_data.questions[0].is_enabled is False


def test_talent_info_updates_are_type_checked() -> None:
    engine = _engine()
    with pytest.raises(ValidationError):
        engine.update_talent_info(name=["Hong"])
    assert engine.form_data.talent_info.name == ""


def test_unknown_fields_are_rejected() -> None:
    engine = _engine()
    with pytest.raises(ValueError):
        engine.update_talent_info(nickname="Gil")
    with pytest.raises(ValueError):
        engine.update_form_data("notes", "x")


def test_custom_question_is_appended_after_defaults() -> None:
    engine = _engine()
    question = engine.add_custom_question("What motivates the candidate?")

    assert len(engine.form_data.questions) == 6
    assert engine.form_data.questions[-1] == question
    assert question.order == 6
    assert question.id.startswith("custom-")
    assert not question.is_default and question.is_enabled


def test_reorder_questions_replaces_list() -> None:
    engine = _engine()
    reordered = list(reversed(engine.form_data.questions))
    engine.reorder_questions(reordered)
    assert [question.id for question in engine.form_data.questions] == ["q5", "q4", "q3", "q2", "q1"]


def test_reset_restores_defaults_and_clears_storage() -> None:
    storage = InMemoryStorage()
    engine = _engine(storage)
    _fill_all_steps(engine)
    engine.go_to_step(3)

    engine.reset_wizard()

    assert engine.current_step == 1
    assert engine.form_data == WizardEngine().form_data
    assert storage.keys() == []


def test_export_is_stamped_with_clock() -> None:
    engine = _engine()
    engine.update_talent_info(name="Hong")
    exported = engine.export_form_data()
    assert exported.current_step == 1
    assert exported.form_data.talent_info.name == "Hong"
    assert exported.timestamp == NOW.isoformat()


def test_submit_requires_terms() -> None:
    engine = _engine()
    submitter = RecordingSubmitter(SubmissionResult(success=True, request_id="REQ-1"))
    result = engine.submit(submitter)
    assert not result.success
    assert submitter.calls == []


def test_successful_submit_resets_wizard() -> None:
    engine = _engine()
    _fill_all_steps(engine)
    engine.go_to_step(5)
    submitter = RecordingSubmitter(SubmissionResult(success=True, request_id="REQ-1"))

    result = engine.submit(submitter)

    assert result.request_id == "REQ-1"
    assert submitter.calls[0].talent_info.name == "Hong Gildong"
    assert engine.current_step == 1
    assert engine.form_data.target_companies == []


def test_failed_submit_keeps_state() -> None:
    engine = _engine()
    _fill_all_steps(engine)
    engine.go_to_step(5)

    result = engine.submit(RecordingSubmitter(SubmissionResult(success=False, error="boom")))

    assert result.error == "boom"
    assert engine.current_step == 5
    assert len(engine.form_data.target_companies) == 1
