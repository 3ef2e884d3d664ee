from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from refcheck.core.inbox import RespondentInbox
from refcheck.core.reports import RequestReports
from refcheck.core.respondent import RespondentService
from refcheck.core.submission import MockRequestSubmitter
from refcheck.core.tokens import TokenLifecycle
from refcheck.db.repositories import DatabaseStorage, Repository
from refcheck.db.session import get_db_session


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_repository(db: Session = Depends(get_db)) -> Repository:
    return Repository(db)


def get_token_lifecycle(repo: Repository = Depends(get_repository)) -> TokenLifecycle:
    return TokenLifecycle(repo, repo)


def get_respondent_service(
    repo: Repository = Depends(get_repository),
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> RespondentService:
    return RespondentService(lifecycle, responses=repo, drafts=DatabaseStorage(repo), requests=repo)


def get_submitter(
    repo: Repository = Depends(get_repository),
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> MockRequestSubmitter:
    return MockRequestSubmitter(lifecycle, repo)


def get_inbox(
    repo: Repository = Depends(get_repository),
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> RespondentInbox:
    return RespondentInbox(lifecycle, repo)


def get_reports(
    repo: Repository = Depends(get_repository),
    lifecycle: TokenLifecycle = Depends(get_token_lifecycle),
) -> RequestReports:
    return RequestReports(lifecycle, repo, repo)
