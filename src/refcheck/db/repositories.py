from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from refcheck.core.runtime import as_utc
from refcheck.db.models import (
    ReferenceRequestRow,
    ReferenceResponseRow,
    RejectionRow,
    ResponseTokenRow,
    StorageEntry,
)
from refcheck.types import (
    ReferenceRequest,
    ReferenceResponse,
    RejectionRecord,
    ResponseToken,
    WizardFormData,
)


def _token_from_row(row: ResponseTokenRow) -> ResponseToken:
    return ResponseToken(
        token=row.token,
        request_id=row.request_id,
        company_id=row.company_id,
        respondent_email=row.respondent_email,
        respondent_name=row.respondent_name,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        is_used=row.is_used,
        used_at=as_utc(row.used_at) if row.used_at else None,
        reminders_sent=row.reminders_sent,
        last_reminder_at=as_utc(row.last_reminder_at) if row.last_reminder_at else None,
    )


def _rejection_from_row(row: RejectionRow) -> RejectionRecord:
    return RejectionRecord(
        id=row.id,
        token=row.token,
        request_id=row.request_id,
        respondent_email=row.respondent_email,
        reason=row.reason,
        rejected_at=as_utc(row.rejected_at),
        ip_address=row.ip_address,
    )


def _request_from_row(row: ReferenceRequestRow) -> ReferenceRequest:
    return ReferenceRequest(
        id=row.id,
        talent_name=row.talent_name,
        talent_email=row.talent_email,
        status=row.status,
        created_at=as_utc(row.created_at),
        form_data=WizardFormData.model_validate(row.form_json),
    )


def _response_from_row(row: ReferenceResponseRow) -> ReferenceResponse:
    return ReferenceResponse(
        id=row.id,
        request_id=row.request_id,
        company_id=row.company_id,
        respondent_name=row.respondent_name,
        respondent_email=row.respondent_email,
        responses=row.answers_json,
        additional_comments=row.additional_comments,
        submitted_at=as_utc(row.submitted_at),
        is_anonymous=row.is_anonymous,
    )


class Repository:
    """SQL-backed storage for tokens, rejections, requests, responses and key-value slots."""

    def __init__(self, session: Session):
        self.session = session

    def get_storage_entry(self, key: str) -> str | None:
        row = self.session.get(StorageEntry, key)
        return row.value if row else None

    def set_storage_entry(self, key: str, value: str) -> None:
        row = self.session.get(StorageEntry, key)
        if row:
            row.value = value
        else:
            self.session.add(StorageEntry(key=key, value=value))
        self.session.commit()

    def delete_storage_entry(self, key: str) -> None:
        row = self.session.get(StorageEntry, key)
        if row:
            self.session.delete(row)
            self.session.commit()

    def get_token(self, token: str) -> ResponseToken | None:
        row = self.session.get(ResponseTokenRow, token)
        return _token_from_row(row) if row else None

    def save_token(self, record: ResponseToken) -> ResponseToken:
        values = record.model_dump()
        row = self.session.get(ResponseTokenRow, record.token)
        if row:
            for field, value in values.items():
                setattr(row, field, value)
        else:
            self.session.add(ResponseTokenRow(**values))
        self.session.commit()
        return record

    def list_tokens(self, request_id: str | None = None) -> list[ResponseToken]:
        statement = select(ResponseTokenRow).order_by(ResponseTokenRow.created_at.asc())
        if request_id is not None:
            statement = statement.where(ResponseTokenRow.request_id == request_id)
        return [_token_from_row(row) for row in self.session.scalars(statement).all()]

    def add_rejection(self, record: RejectionRecord) -> RejectionRecord:
        self.session.add(RejectionRow(**record.model_dump()))
        self.session.commit()
        return record

    def find_rejection_by_token(self, token: str) -> RejectionRecord | None:
        statement = (
            select(RejectionRow)
            .where(RejectionRow.token == token)
            .order_by(RejectionRow.rejected_at.asc())
        )
        row = self.session.scalar(statement)
        return _rejection_from_row(row) if row else None

    def save_request(self, request: ReferenceRequest) -> ReferenceRequest:
        row = self.session.get(ReferenceRequestRow, request.id)
        if row is None:
            row = ReferenceRequestRow(id=request.id)
            self.session.add(row)
        row.talent_name = request.talent_name
        row.talent_email = request.talent_email
        row.status = request.status
        row.created_at = request.created_at
        row.form_json = request.form_data.model_dump(mode="json")
        self.session.commit()
        return request

    def get_request(self, request_id: str) -> ReferenceRequest | None:
        row = self.session.get(ReferenceRequestRow, request_id)
        return _request_from_row(row) if row else None

    def list_requests(self) -> list[ReferenceRequest]:
        statement = select(ReferenceRequestRow).order_by(ReferenceRequestRow.created_at.asc())
        return [_request_from_row(row) for row in self.session.scalars(statement).all()]

    def add_response(self, response: ReferenceResponse) -> ReferenceResponse:
        self.session.add(
            ReferenceResponseRow(
                id=response.id,
                request_id=response.request_id,
                company_id=response.company_id,
                respondent_name=response.respondent_name,
                respondent_email=response.respondent_email,
                answers_json=[item.model_dump() for item in response.responses],
                additional_comments=response.additional_comments,
                is_anonymous=response.is_anonymous,
                submitted_at=response.submitted_at,
            )
        )
        self.session.commit()
        return response

    def list_responses(self, request_id: str) -> list[ReferenceResponse]:
        statement = (
            select(ReferenceResponseRow)
            .where(ReferenceResponseRow.request_id == request_id)
            .order_by(ReferenceResponseRow.submitted_at.asc())
        )
        return [_response_from_row(row) for row in self.session.scalars(statement).all()]


class DatabaseStorage:
    """Key-value slots kept in the ``storage_entries`` table."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def get_item(self, key: str) -> str | None:
        return self.repo.get_storage_entry(key)

    def set_item(self, key: str, value: str) -> None:
        try:
            self.repo.set_storage_entry(key, value)
        except SQLAlchemyError:
            self.repo.session.rollback()
            raise

    def remove_item(self, key: str) -> None:
        try:
            self.repo.delete_storage_entry(key)
        except SQLAlchemyError:
            self.repo.session.rollback()
            raise
