from __future__ import annotations

import json

import typer
import uvicorn

from refcheck.api.app import create_app
from refcheck.config import get_settings
from refcheck.core.inbox import RespondentInbox, inbox_stats
from refcheck.core.reports import RequestReports
from refcheck.core.storage import NamespacedStorage
from refcheck.core.tokens import TokenLifecycle
from refcheck.core.wizard import WizardEngine
from refcheck.db.init import init_database
from refcheck.db.repositories import DatabaseStorage, Repository
from refcheck.db.session import SessionLocal
from refcheck.logging_config import configure_logging

app = typer.Typer(help="RefCheck CLI")
tokens_app = typer.Typer(help="Respondent token lifecycle")
wizard_app = typer.Typer(help="Inspect and reset request wizard sessions")

app.add_typer(tokens_app, name="tokens")
app.add_typer(wizard_app, name="wizard")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


@app.command("init")
def init_cmd() -> None:
    """Create tables and load the demo tokens."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@tokens_app.command("validate")
def tokens_validate(token: str = typer.Argument(...)) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        result = TokenLifecycle(repo, repo).resolve_token_status(token)
        _echo(result.model_dump(mode="json", exclude_none=True))


@tokens_app.command("mark-used")
def tokens_mark_used(token: str = typer.Argument(...)) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        changed = TokenLifecycle(repo, repo).mark_token_as_used(token)
        _echo({"token": token, "marked": changed})


@tokens_app.command("issue")
def tokens_issue(
    request_id: str = typer.Option(..., "--request-id"),
    company_id: str = typer.Option(..., "--company-id"),
    email: str = typer.Option(..., "--email"),
    name: str = typer.Option("", "--name"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        record = TokenLifecycle(repo, repo).issue_token(
            request_id=request_id,
            company_id=company_id,
            respondent_email=email,
            respondent_name=name,
        )
        _echo(record.model_dump(mode="json"))


@tokens_app.command("stats")
def tokens_stats(request_id: str | None = typer.Option(None, "--request-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        _echo(TokenLifecycle(repo, repo).get_token_stats(request_id).model_dump())


@tokens_app.command("reminders")
def tokens_reminders() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        records = TokenLifecycle(repo, repo).get_tokens_needing_reminder()
        _echo(
            [
                {
                    "token": record.token,
                    "request_id": record.request_id,
                    "respondent_email": record.respondent_email,
                    "reminders_sent": record.reminders_sent,
                }
                for record in records
            ]
        )


@tokens_app.command("remind")
def tokens_remind(token: str = typer.Argument(...)) -> None:
    """Record that a reminder email went out for a token."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        try:
            record = TokenLifecycle(repo, repo).record_reminder(token)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="token") from exc
        _echo({"token": record.token, "reminders_sent": record.reminders_sent})


@tokens_app.command("inbox")
def tokens_inbox(email: str = typer.Option(..., "--email")) -> None:
    """List the reference requests sent to one respondent."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        items = RespondentInbox(TokenLifecycle(repo, repo), repo).items_for(email)
        _echo(
            {
                "items": [item.model_dump(mode="json") for item in items],
                "stats": inbox_stats(items).model_dump(),
            }
        )


@app.command("dashboard")
def dashboard_cmd() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        reports = RequestReports(TokenLifecycle(repo, repo), repo, repo)
        _echo(
            {
                "stats": reports.dashboard_stats().model_dump(),
                "recent_requests": [item.model_dump(mode="json") for item in reports.recent_requests()],
            }
        )


@wizard_app.command("show")
def wizard_show(session_id: str = typer.Option(..., "--session")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        storage = NamespacedStorage(DatabaseStorage(Repository(db)), session_id)
        engine = WizardEngine(storage).restore()
        _echo(engine.export_form_data().model_dump(mode="json"))


@wizard_app.command("reset")
def wizard_reset(session_id: str = typer.Option(..., "--session")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        storage = NamespacedStorage(DatabaseStorage(Repository(db)), session_id)
        WizardEngine(storage).restore().reset_wizard()
        _echo({"session": session_id, "reset": True})


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
