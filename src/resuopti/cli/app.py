from __future__ import annotations

import json
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer

from resuopti.db.init import init_database
from resuopti.db.session import SessionLocal
from resuopti.errors import ServiceError, public_error
from resuopti.logging_config import configure_logging
from resuopti.services import Services, build_services

app = typer.Typer(help="resuopti CLI")
user_app = typer.Typer(help="Register and log in")
position_app = typer.Typer(help="Manage target positions")
resume_app = typer.Typer(help="Manage resume versions")
tag_app = typer.Typer(help="Tag resume versions")
application_app = typer.Typer(help="Log job applications")

app.add_typer(user_app, name="user")
app.add_typer(position_app, name="position")
app.add_typer(resume_app, name="resume")
app.add_typer(tag_app, name="tag")
app.add_typer(application_app, name="application")

EXIT_CODES = {
    "authentication": 3,
    "forbidden": 4,
    "not_found": 4,
    "conflict": 5,
    "internal": 1,
}

_INITIALIZED = False


def token_option() -> Any:
    return typer.Option(..., "--token", envvar="RESUOPTI_TOKEN", help="Token printed by `user login`")


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


@contextmanager
def open_services() -> Iterator[Services]:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            yield build_services(db)
        except ServiceError as exc:
            shown = public_error(exc)
            if shown.kind == "validation":
                raise typer.BadParameter(f"{shown.code}: {shown.message}") from exc
            typer.echo(json.dumps({"error": shown.code, "message": shown.message}), err=True)
            raise typer.Exit(code=EXIT_CODES.get(shown.kind, 1)) from exc


def _authenticate(services: Services, token: str) -> str:
    claims = services.credentials.verify_token(token)
    return services.credentials.get_user(claims.user_id).id


@app.command("init")
def init_cmd() -> None:
    """Initialize data directories and database tables."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@user_app.command("register")
def user_register(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password"),
) -> None:
    with open_services() as services:
        user = services.credentials.register(email, password)
        _echo(user.model_dump(mode="json"))


@user_app.command("login")
def user_login(
    email: str = typer.Option(..., "--email"),
    password: str = typer.Option(..., "--password"),
) -> None:
    with open_services() as services:
        result = services.credentials.login(email, password)
        _echo(result.model_dump(mode="json"))


@position_app.command("create")
def position_create(
    token: str = token_option(),
    name: str = typer.Option(..., "--name"),
    description: str | None = typer.Option(None, "--description"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        position = services.positions.create(user_id, name, description)
        _echo(position.model_dump(mode="json"))


@position_app.command("list")
def position_list(token: str = token_option()) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        _echo([position.model_dump(mode="json") for position in services.positions.list(user_id)])


@position_app.command("delete")
def position_delete(
    token: str = token_option(),
    position_id: str = typer.Option(..., "--position-id"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        services.positions.delete(user_id, position_id)
        _echo({"deleted_id": position_id})


@resume_app.command("create-online")
def resume_create_online(
    token: str = token_option(),
    position_id: str = typer.Option(..., "--position-id"),
    title: str = typer.Option(..., "--title"),
    content: str | None = typer.Option(None, "--content"),
    content_file: Path | None = typer.Option(None, "--content-file", exists=True, readable=True),
) -> None:
    if content_file is not None:
        content = content_file.read_text(encoding="utf-8")
    with open_services() as services:
        user_id = _authenticate(services, token)
        resume = services.resumes.create_online(position_id, user_id, title, content or "")
        _echo(resume.model_dump(mode="json"))


@resume_app.command("create-file")
def resume_create_file(
    token: str = token_option(),
    position_id: str = typer.Option(..., "--position-id"),
    title: str = typer.Option(..., "--title"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True, dir_okay=False),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        services.positions.get_by_id(user_id, position_id, include_resume_count=False)

        size = file.stat().st_size
        blob_store = services.resumes.blob_store
        blob_store.validate_upload(file.name, size)
        stored = blob_store.path_for(user_id, position_id, file.name)
        shutil.copyfile(file, stored)

        try:
            resume = services.resumes.create_file(
                position_id, user_id, title, str(stored), file.name, size
            )
        except ServiceError:
            blob_store.delete(stored)
            raise
        _echo(resume.model_dump(mode="json"))


@resume_app.command("list")
def resume_list(
    token: str = token_option(),
    position_id: str = typer.Option(..., "--position-id"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        resumes = services.resumes.list_by_position(position_id, user_id)
        _echo([resume.model_dump(mode="json") for resume in resumes])


@tag_app.command("add")
def tag_add(
    token: str = token_option(),
    resume_id: str = typer.Option(..., "--resume-id"),
    tag: str = typer.Option(..., "--tag"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        metadata = services.metadata.add_tag(resume_id, user_id, tag)
        _echo(metadata.model_dump(mode="json"))


@application_app.command("create")
def application_create(
    token: str = token_option(),
    resume_id: str = typer.Option(..., "--resume-id"),
    company: str = typer.Option(..., "--company"),
    apply_date: str = typer.Option(..., "--apply-date", help="YYYY-MM-DD"),
    position_title: str | None = typer.Option(None, "--position-title"),
    status: str = typer.Option("Applied", "--status"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        application = services.applications.create(
            resume_id,
            user_id,
            company,
            apply_date,
            position_title=position_title,
            status=status,
            notes=notes,
        )
        _echo(application.model_dump(mode="json"))


@application_app.command("list")
def application_list(
    token: str = token_option(),
    status: str | None = typer.Option(None, "--status"),
    date_from: str | None = typer.Option(None, "--from"),
    date_to: str | None = typer.Option(None, "--to"),
) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        applications = services.applications.get_by_user_id(
            user_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )
        _echo([application.model_dump(mode="json") for application in applications])


@application_app.command("stats")
def application_stats(token: str = token_option()) -> None:
    with open_services() as services:
        user_id = _authenticate(services, token)
        _echo(services.applications.get_stats(user_id).model_dump(mode="json"))
