from __future__ import annotations

from refcheck.core.runtime import Clock, utc_now
from refcheck.core.submission import RequestRepository
from refcheck.core.tokens import TokenLifecycle
from refcheck.types import InboxItem, InboxPriority, InboxStats, ResponseToken

UNKNOWN_COMPANY = "Unknown company"
HIGH_PRIORITY_DAYS = 3
MEDIUM_PRIORITY_DAYS = 7


def priority_for_age(days: int) -> InboxPriority:
    if days <= HIGH_PRIORITY_DAYS:
        return "high"
    if days <= MEDIUM_PRIORITY_DAYS:
        return "medium"
    return "low"


def inbox_stats(items: list[InboxItem]) -> InboxStats:
    total = len(items)
    counts = {
        status: sum(1 for item in items if item.status == status)
        for status in ("pending", "responded", "rejected", "expired")
    }
    answered = counts["responded"] + counts["rejected"]
    return InboxStats(
        total=total,
        response_rate=(answered / total) * 100 if total > 0 else 0.0,
        **counts,
    )


def filter_inbox(items: list[InboxItem], search: str = "", status: str = "all") -> list[InboxItem]:
    needle = search.strip().lower()
    return [
        item
        for item in items
        if (status == "all" or item.status == status)
        and (
            not needle
            or needle in item.talent_name.lower()
            or needle in item.requesting_company.lower()
        )
    ]


class RespondentInbox:
    """Every reference request a respondent has been sent, newest first."""

    def __init__(self, lifecycle: TokenLifecycle, requests: RequestRepository, *, clock: Clock = utc_now):
        self.lifecycle = lifecycle
        self.requests = requests
        self.clock = clock

    def items_for(self, respondent_email: str) -> list[InboxItem]:
        email = respondent_email.strip().lower()
        items = [
            self._item(record)
            for record in self.lifecycle.tokens.list_tokens()
            if record.respondent_email.lower() == email
        ]
        return sorted(items, key=lambda item: item.request_date, reverse=True)

    def _item(self, record: ResponseToken) -> InboxItem:
        status = self.lifecycle.delivery_status(record)
        responded_at = None
        rejection_reason = None
        if status == "rejected":
            rejection = self.lifecycle.get_rejection_info(record.token)
            responded_at = rejection.rejected_at
            rejection_reason = rejection.reason
        elif status == "responded":
            responded_at = record.used_at

        request = self.requests.get_request(record.request_id)
        company_name = UNKNOWN_COMPANY
        if request is not None:
            for company in request.form_data.target_companies:
                if company.id == record.company_id:
                    company_name = company.name
                    break

        age_days = (self.clock() - record.created_at).days
        return InboxItem(
            id=record.token,
            token=record.token,
            request_id=record.request_id,
            talent_name=request.talent_name if request else "",
            talent_email=request.talent_email if request else "",
            requesting_company=company_name,
            request_date=record.created_at,
            due_date=record.expires_at,
            status=status,
            priority=priority_for_age(age_days),
            responded_at=responded_at,
            rejection_reason=rejection_reason,
        )
