from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Protocol

from refcheck.config import Settings, get_settings
from refcheck.core.runtime import Clock, TimestampIds, utc_now
from refcheck.types import (
    DeliveryStatus,
    RejectionRecord,
    ResponseToken,
    TokenStats,
    TokenValidationResult,
)

logger = logging.getLogger(__name__)

TOKEN_MESSAGES = {
    "TOKEN_NOT_FOUND": "This link is not valid.",
    "TOKEN_ALREADY_USED": "This link has already been used.",
    "TOKEN_EXPIRED": "This link has expired.",
    "TOKEN_REJECTED": "This reference request has already been declined.",
}


class TokenNotFoundError(ValueError):
    pass


class ReminderNotAllowedError(ValueError):
    pass


class TokenRepository(Protocol):
    def get_token(self, token: str) -> ResponseToken | None: ...

    def save_token(self, record: ResponseToken) -> ResponseToken: ...

    def list_tokens(self, request_id: str | None = None) -> list[ResponseToken]: ...


class RejectionRepository(Protocol):
    def add_rejection(self, record: RejectionRecord) -> RejectionRecord: ...

    def find_rejection_by_token(self, token: str) -> RejectionRecord | None: ...


class InMemoryTokenRepository:
    def __init__(self, tokens: list[ResponseToken] | None = None):
        self._tokens: dict[str, ResponseToken] = {}
        for record in tokens or []:
            self.save_token(record)

    def get_token(self, token: str) -> ResponseToken | None:
        record = self._tokens.get(token)
        return record.model_copy() if record else None

    def save_token(self, record: ResponseToken) -> ResponseToken:
        self._tokens[record.token] = record.model_copy()
        return record

    def list_tokens(self, request_id: str | None = None) -> list[ResponseToken]:
        return [
            record.model_copy()
            for record in self._tokens.values()
            if request_id is None or record.request_id == request_id
        ]


class InMemoryRejectionRepository:
    def __init__(self, records: list[RejectionRecord] | None = None):
        self._records: dict[str, RejectionRecord] = {record.id: record for record in records or []}

    def add_rejection(self, record: RejectionRecord) -> RejectionRecord:
        self._records[record.id] = record
        return record

    def find_rejection_by_token(self, token: str) -> RejectionRecord | None:
        for record in self._records.values():
            if record.token == token:
                return record
        return None


def _invalid(code: str, **extra) -> TokenValidationResult:
    return TokenValidationResult(is_valid=False, error=code, message=TOKEN_MESSAGES[code], **extra)


class TokenLifecycle:
    def __init__(
        self,
        tokens: TokenRepository,
        rejections: RejectionRepository | None = None,
        *,
        settings: Settings | None = None,
        clock: Clock = utc_now,
    ):
        self.tokens = tokens
        self.rejections = rejections if rejections is not None else InMemoryRejectionRepository()
        self.settings = settings or get_settings()
        self.clock = clock
        self._rejection_ids = TimestampIds(clock)

    def issue_token(
        self,
        *,
        request_id: str,
        company_id: str,
        respondent_email: str,
        respondent_name: str,
    ) -> ResponseToken:
        key = secrets.token_urlsafe(16)
        while self.tokens.get_token(key) is not None:
            key = secrets.token_urlsafe(16)

        now = self.clock()
        record = ResponseToken(
            token=key,
            request_id=request_id,
            company_id=company_id,
            respondent_email=respondent_email,
            respondent_name=respondent_name,
            created_at=now,
            expires_at=now + timedelta(days=self.settings.token_ttl_days),
        )
        self.tokens.save_token(record)
        logger.info("Issued response token request_id=%s company_id=%s", request_id, company_id)
        return record

    def validate_response_token(self, token: str) -> TokenValidationResult:
        record = self.tokens.get_token(token)
        if record is None:
            return _invalid("TOKEN_NOT_FOUND")
        if record.is_used:
            return _invalid("TOKEN_ALREADY_USED", used_at=record.used_at)
        if self.clock() > record.expires_at:
            return _invalid("TOKEN_EXPIRED", expires_at=record.expires_at)
        return TokenValidationResult(is_valid=True, token_data=record)

    def resolve_token_status(self, token: str) -> TokenValidationResult:
        """Validation as seen by respondent pages: a recorded rejection wins over everything else."""
        rejection = self.rejections.find_rejection_by_token(token)
        if rejection is not None:
            return _invalid("TOKEN_REJECTED", rejection=rejection)
        return self.validate_response_token(token)

    def mark_token_as_used(self, token: str) -> bool:
        record = self.tokens.get_token(token)
        if record is None or record.is_used:
            return False

        self.tokens.save_token(record.model_copy(update={"is_used": True, "used_at": self.clock()}))
        logger.info("Marked response token as used request_id=%s", record.request_id)
        return True

    def delivery_status(self, record: ResponseToken) -> DeliveryStatus:
        """Where a sent link stands for the requester: rejected, expired, responded, then pending."""
        if self.rejections.find_rejection_by_token(record.token) is not None:
            return "rejected"
        if not record.is_used and self.clock() > record.expires_at:
            return "expired"
        if record.is_used:
            return "responded"
        return "pending"

    def is_token_expired(self, token: str) -> bool:
        record = self.tokens.get_token(token)
        if record is None:
            return True
        return self.clock() > record.expires_at

    def get_tokens_by_request_id(self, request_id: str) -> list[ResponseToken]:
        return self.tokens.list_tokens(request_id)

    def get_token_stats(self, request_id: str | None = None) -> TokenStats:
        records = self.tokens.list_tokens(request_id)
        now = self.clock()

        total = len(records)
        used = sum(1 for record in records if record.is_used)
        expired = sum(1 for record in records if not record.is_used and now > record.expires_at)
        pending = sum(1 for record in records if not record.is_used and now <= record.expires_at)

        return TokenStats(
            total=total,
            used=used,
            expired=expired,
            pending=pending,
            response_rate=(used / total) * 100 if total > 0 else 0.0,
        )

    def get_tokens_needing_reminder(self) -> list[ResponseToken]:
        now = self.clock()
        cutoff = now - timedelta(days=self.settings.reminder_interval_days)

        selected: list[ResponseToken] = []
        for record in self.tokens.list_tokens():
            if record.is_used or now > record.expires_at:
                continue
            if record.last_reminder_at is None:
                if record.created_at < cutoff:
                    selected.append(record)
            elif record.last_reminder_at < cutoff and record.reminders_sent < self.settings.max_reminders:
                selected.append(record)
        return selected

    def record_reminder(self, token: str) -> ResponseToken:
        record = self.tokens.get_token(token)
        if record is None:
            raise TokenNotFoundError(f"token '{token}' not found")
        if record.is_used:
            raise ReminderNotAllowedError(f"token '{token}' has already been used")
        if self.clock() > record.expires_at:
            raise ReminderNotAllowedError(f"token '{token}' has expired")
        if record.reminders_sent >= self.settings.max_reminders:
            raise ReminderNotAllowedError(
                f"token '{token}' already had {record.reminders_sent} reminders"
            )

        updated = record.model_copy(
            update={
                "reminders_sent": record.reminders_sent + 1,
                "last_reminder_at": self.clock(),
            }
        )
        self.tokens.save_token(updated)
        return updated

    def record_rejection(
        self,
        *,
        token: str,
        request_id: str,
        respondent_email: str,
        reason: str,
        ip_address: str = "127.0.0.1",
    ) -> RejectionRecord:
        record = RejectionRecord(
            id=f"rejection-{self._rejection_ids.next()}",
            token=token,
            request_id=request_id,
            respondent_email=respondent_email,
            reason=reason,
            rejected_at=self.clock(),
            ip_address=ip_address,
        )
        self.rejections.add_rejection(record)
        logger.info("Recorded rejection request_id=%s", request_id)
        return record

    def is_token_rejected(self, token: str) -> bool:
        return self.rejections.find_rejection_by_token(token) is not None

    def get_rejection_info(self, token: str) -> RejectionRecord | None:
        return self.rejections.find_rejection_by_token(token)
