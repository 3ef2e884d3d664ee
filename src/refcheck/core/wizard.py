from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from refcheck.core.runtime import Clock, TimestampIds, utc_now
from refcheck.core.storage import InMemoryStorage, KeyValueStorage
from refcheck.core.validation import is_valid_email, validate_work_history_entry
from refcheck.types import (
    Question,
    SubmissionResult,
    TalentInfo,
    TargetCompany,
    TargetCompanyInput,
    WizardExport,
    WizardFormData,
    WorkHistory,
    WorkHistoryInput,
)

logger = logging.getLogger(__name__)

TOTAL_STEPS = 5
FORM_DATA_KEY = "ask2-wizard-form-data"
CURRENT_STEP_KEY = "ask2-wizard-current-step"
SNAPSHOT_VERSION = 1

DUPLICATE_COMPANY_ERROR = "Company already added"

DEFAULT_QUESTION_TEXTS = [
    "How would you rate the candidate's job performance?",
    "How were the candidate's teamwork and collaboration skills?",
    "How were the candidate's communication and leadership skills?",
    "How would you describe the candidate's technical expertise?",
    "Would you work with the candidate again?",
]


class RequestSubmitter(Protocol):
    def submit(self, form_data: WizardFormData) -> SubmissionResult: ...


def default_questions() -> list[Question]:
    return [
        Question(id=f"q{index}", text=text, is_default=True, is_enabled=True, order=index)
        for index, text in enumerate(DEFAULT_QUESTION_TEXTS, start=1)
    ]


def initial_form_data() -> WizardFormData:
    return WizardFormData(questions=default_questions())


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _migrate_legacy(value: Any) -> Any:
    # unversioned snapshots were written with camelCase keys
    if isinstance(value, dict):
        return {_snake_case(key): _migrate_legacy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_migrate_legacy(item) for item in value]
    return value


def _checked_changes(model: type[BaseModel], changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - set(model.model_fields) - {"id"}
    if unknown:
        raise ValueError(f"unknown {model.__name__} fields: {sorted(unknown)}")
    return {key: value for key, value in changes.items() if key != "id"}


ModelT = TypeVar("ModelT", bound=BaseModel)


def _merged(model: type[ModelT], item: ModelT, changes: dict[str, Any]) -> ModelT:
    return model.model_validate({**item.model_dump(), **changes})


def encode_form_snapshot(form_data: WizardFormData) -> str:
    return json.dumps({"version": SNAPSHOT_VERSION, "data": form_data.model_dump(mode="json")})


def decode_form_snapshot(raw: str) -> WizardFormData:
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("wizard snapshot must be a JSON object")

    if "version" in payload and "data" in payload:
        version = payload["version"]
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported wizard snapshot version {version!r}")
        data = payload["data"]
    else:
        data = _migrate_legacy(payload)

    return WizardFormData.model_validate(data)


def load_snapshot(storage: KeyValueStorage) -> tuple[WizardFormData, int, bool]:
    """Return the stored form, the stored step and whether either slot held anything."""
    try:
        raw_form = storage.get_item(FORM_DATA_KEY)
        raw_step = storage.get_item(CURRENT_STEP_KEY)
    except Exception as exc:
        logger.warning("Failed to load wizard data from storage: %s", exc)
        return initial_form_data(), 1, False

    form_data = initial_form_data()
    if raw_form:
        try:
            form_data = decode_form_snapshot(raw_form)
        except ValueError as exc:
            logger.warning("Discarding unreadable wizard snapshot: %s", exc)

    step = 1
    if raw_step:
        try:
            step = int(raw_step)
        except ValueError:
            logger.warning("Discarding unreadable wizard step %r", raw_step)
        if not 1 <= step <= TOTAL_STEPS:
            logger.warning("Discarding out-of-range wizard step %s", step)
            step = 1

    return form_data, step, bool(raw_form or raw_step)


class WizardEngine:
    """State of the five-step reference-request wizard.

    Steps are 1 talent info, 2 work history, 3 target companies, 4 questions,
    5 confirmation. Nothing is written to storage until ``restore`` has run once.
    """

    total_steps = TOTAL_STEPS

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        *,
        clock: Clock = utc_now,
        ids: TimestampIds | None = None,
    ):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.clock = clock
        self.ids = ids or TimestampIds(clock)
        self.form_data = initial_form_data()
        self.current_step = 1
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def restore(self) -> WizardEngine:
        if self._initialized:
            return self
        self.form_data, self.current_step, stored = load_snapshot(self.storage)
        self._initialized = True
        # rewrite existing slots in the current format; empty sessions stay unwritten
        if stored:
            self._persist()
        return self

    def is_step_valid(self, step: int) -> bool:
        data = self.form_data
        if step == 1:
            info = data.talent_info
            return bool(
                info.name.strip()
                and info.email.strip()
                and info.phone.strip()
                and is_valid_email(info.email)
            )
        if step == 2:
            return len(data.work_history) > 0
        if step == 3:
            return len(data.target_companies) > 0
        if step == 4:
            return any(question.is_enabled for question in data.questions)
        if step == 5:
            return data.terms_accepted is True
        return False

    def step_validity(self) -> dict[int, bool]:
        return {step: self.is_step_valid(step) for step in range(1, TOTAL_STEPS + 1)}

    @property
    def can_navigate_next(self) -> bool:
        return self.current_step < TOTAL_STEPS and self.is_step_valid(self.current_step)

    @property
    def can_navigate_previous(self) -> bool:
        return self.current_step > 1

    def go_to_step(self, step: int) -> None:
        # bounds only; intermediate steps are not re-validated
        if 1 <= step <= TOTAL_STEPS:
            self.current_step = step
            self._persist()

    def next_step(self) -> None:
        if self.can_navigate_next:
            self.current_step += 1
            self._persist()

    def previous_step(self) -> None:
        if self.can_navigate_previous:
            self.current_step -= 1
            self._persist()

    def update_form_data(self, key: str, value: Any) -> None:
        if key not in WizardFormData.model_fields:
            raise ValueError(f"unknown wizard field '{key}'")
        payload = self.form_data.model_dump()
        payload[key] = value
        self.form_data = WizardFormData.model_validate(payload)
        self._persist()

    def update_talent_info(self, **changes: str) -> TalentInfo:
        changes = _checked_changes(TalentInfo, changes)
        self.form_data.talent_info = _merged(TalentInfo, self.form_data.talent_info, changes)
        self._persist()
        return self.form_data.talent_info

    def add_work_history(self, entry: WorkHistoryInput) -> WorkHistory:
        taken = {item.id for item in self.form_data.work_history}
        record = WorkHistory(id=self._new_id(taken), **entry.model_dump())
        self.form_data.work_history = [*self.form_data.work_history, record]
        self._persist()
        return record

    def update_work_history(self, history_id: str, **changes: str) -> dict[str, str]:
        """Apply a partial update unless the merged entry fails validation; returns the field errors."""
        changes = _checked_changes(WorkHistory, changes)
        updated: list[WorkHistory] = []
        for item in self.form_data.work_history:
            if item.id == history_id:
                item = _merged(WorkHistory, item, changes)
                errors = validate_work_history_entry(item)
                if errors:
                    return errors
            updated.append(item)

        self.form_data.work_history = updated
        self._persist()
        return {}

    def remove_work_history(self, history_id: str) -> None:
        self.form_data.work_history = [
            item for item in self.form_data.work_history if item.id != history_id
        ]
        self._persist()

    def find_duplicate_company(self, entry: TargetCompanyInput) -> TargetCompany | None:
        name = entry.name.lower()
        domain = entry.domain.lower()
        for company in self.form_data.target_companies:
            if company.name.lower() == name or company.domain.lower() == domain:
                return company
        return None

    def add_target_company(
        self, entry: TargetCompanyInput
    ) -> tuple[TargetCompany | None, dict[str, str]]:
        if self.find_duplicate_company(entry) is not None:
            return None, {"name": DUPLICATE_COMPANY_ERROR}

        taken = {item.id for item in self.form_data.target_companies}
        record = TargetCompany(id=self._new_id(taken), **entry.model_dump())
        self.form_data.target_companies = [*self.form_data.target_companies, record]
        self._persist()
        return record, {}

    def remove_target_company(self, company_id: str) -> None:
        self.form_data.target_companies = [
            item for item in self.form_data.target_companies if item.id != company_id
        ]
        self._persist()

    def update_question(self, question_id: str, **changes: Any) -> None:
        changes = _checked_changes(Question, changes)
        self.form_data.questions = [
            _merged(Question, item, changes) if item.id == question_id else item
            for item in self.form_data.questions
        ]
        self._persist()

    def add_custom_question(self, text: str) -> Question:
        taken = {item.id for item in self.form_data.questions}
        question = Question(
            id=f"custom-{self._new_id(taken, prefix='custom-')}",
            text=text,
            is_default=False,
            is_enabled=True,
            order=len(self.form_data.questions) + 1,
        )
        self.form_data.questions = [*self.form_data.questions, question]
        self._persist()
        return question

    def reorder_questions(self, questions: list[Question]) -> None:
        self.form_data.questions = list(questions)
        self._persist()

    def clear_form_data(self) -> None:
        try:
            self.storage.remove_item(FORM_DATA_KEY)
            self.storage.remove_item(CURRENT_STEP_KEY)
        except Exception as exc:
            logger.warning("Failed to clear wizard data from storage: %s", exc)

    def reset_wizard(self) -> None:
        self.form_data = initial_form_data()
        self.current_step = 1
        self.clear_form_data()

    def export_form_data(self) -> WizardExport:
        return WizardExport(
            form_data=self.form_data.model_copy(deep=True),
            current_step=self.current_step,
            timestamp=self.clock().isoformat(),
        )

    def submit(self, submitter: RequestSubmitter) -> SubmissionResult:
        if not self.is_step_valid(TOTAL_STEPS):
            return SubmissionResult(success=False, error="Accept the terms before submitting")

        result = submitter.submit(self.form_data.model_copy(deep=True))
        if result.success:
            logger.info("Reference request submitted request_id=%s", result.request_id)
            self.reset_wizard()
        else:
            logger.warning("Reference request submission failed: %s", result.error)
        return result

    def _new_id(self, taken: set[str], prefix: str = "") -> str:
        value = str(self.ids.next())
        while f"{prefix}{value}" in taken:
            value = str(self.ids.next())
        return value

    def _persist(self) -> None:
        if not self._initialized:
            return
        try:
            self.storage.set_item(FORM_DATA_KEY, encode_form_snapshot(self.form_data))
            self.storage.set_item(CURRENT_STEP_KEY, str(self.current_step))
        except Exception as exc:
            logger.warning("Failed to save wizard data to storage: %s", exc)
