"""
Command line entry point: `edo-uploader upload|auth|serve`.

upload  authenticates, then uploads one file (--file) or every .doc/.docx of a
        folder (--dir) as drafts; --meta carries document metadata as JSON:
        {"our": {"taxId": ..., "registrationCode": ...},
         "counterparty": {...}, "documentType": ..., "number": ..., "date": "YYYY-MM-DD", "note": ...}
auth    checks credentials and shows the session id and own organizations
serve   runs the HTTP API
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import pydantic
import typer
from rich.console import Console
from rich.table import Table

from edo_uploader.config import settings
from edo_uploader.exceptions import EdoError
from edo_uploader.models.auth import Credentials
from edo_uploader.models.base import ApiModel
from edo_uploader.models.party import ParticipantInput
from edo_uploader.models.submission import BatchResult, SubmissionMeta, UploadedDocument
from edo_uploader.services.orchestrator import SubmissionOrchestrator
from edo_uploader.services.saby_transport import SabyTransport, build_async_client
from edo_uploader.services.session_authenticator import SessionAuthenticator
from edo_uploader.utils.logging_setup import configure_logging

app = typer.Typer(no_args_is_help=True, help="Upload documents to Saby EDO as drafts.")

_console = Console()
_err_console = Console(stderr=True)


class CliMeta(ApiModel):
    """Document metadata accepted by --meta."""
    our: Optional[ParticipantInput] = None
    counterparty: Optional[ParticipantInput] = None
    document_type: Optional[str] = None
    number: Optional[str] = None
    date: Optional[str] = None
    note: Optional[str] = None

    def submission_meta(self) -> SubmissionMeta:
        return SubmissionMeta(
            document_type=self.document_type,
            number=self.number,
            date=self.date,
            note=self.note,
        )

    def our_party(self) -> ParticipantInput:
        """Own organization from meta, else from settings (EDO_OUR_TAX_ID / EDO_OUR_REGISTRATION_CODE)."""
        if self.our is not None and self.our.tax_id:
            return self.our
        return ParticipantInput(
            tax_id=settings.our_tax_id,
            registration_code=settings.our_registration_code,
        )


def endpoints_from_base_url(base_url: str) -> tuple[str, str]:
    """https://online.sbis.ru → (auth service URL, document service URL)."""
    base = base_url.strip().rstrip("/")
    return f"{base}/auth/service/", f"{base}/service/?srv=1"


def parse_meta(raw: Optional[str]) -> CliMeta:
    if not raw:
        return CliMeta()
    try:
        return CliMeta.model_validate(json.loads(raw))
    except (ValueError, pydantic.ValidationError) as exc:
        raise typer.BadParameter(f"invalid --meta JSON: {exc}", param_hint="--meta")


def collect_documents(folder: Path) -> list[UploadedDocument]:
    """Every .doc/.docx file of a folder, sorted by name."""
    if not folder.is_dir():
        raise typer.BadParameter(f"{folder} is not a folder", param_hint="--dir")
    extensions = {ext.lower() for ext in settings.document_extensions}
    paths = sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in extensions)
    return [UploadedDocument(file_name=p.name, content=p.read_bytes()) for p in paths]


def _print_batch(batch: BatchResult) -> None:
    table = Table(title="Batch upload")
    table.add_column("File", style="white")
    table.add_column("Status", no_wrap=True)
    table.add_column("Document id / error", style="dim")
    for item in batch.results:
        if item.ok:
            table.add_row(item.file_name, "[green]OK[/green]", item.document_id or "-")
        else:
            table.add_row(item.file_name, "[red]FAIL[/red]", item.error or "")
    _console.print(table)
    _console.print(f"Succeeded: {batch.succeeded}/{batch.total}")


async def _upload(
    base_url: str,
    credentials: Credentials,
    file: Optional[Path],
    folder: Optional[Path],
    meta: CliMeta,
) -> None:
    auth_url, service_url = endpoints_from_base_url(base_url)
    documents = collect_documents(folder) if folder is not None else []
    if folder is not None and not documents:
        _console.print(f"No {'/'.join(settings.document_extensions)} files in {folder}")
        return

    async with SabyTransport(build_async_client(settings), settings) as transport:
        authenticator = SessionAuthenticator(transport, credentials, login_url=auth_url, service_url=service_url)
        orchestrator = SubmissionOrchestrator(transport, service_url=service_url)
        session_id = await authenticator.session_id()

        if folder is not None:
            batch = await orchestrator.submit_batch(session_id, meta.our_party(), meta.submission_meta(), documents)
            _print_batch(batch)
        else:
            document = UploadedDocument(file_name=file.name, content=file.read_bytes())
            outcome = await orchestrator.submit_document(
                session_id,
                meta.counterparty or ParticipantInput(),
                meta.our_party(),
                document,
                meta.submission_meta(),
            )
            _console.print("Document uploaded to Saby (draft, not sent):")
            _console.print_json(json.dumps({
                "filePath": str(file),
                "fileName": file.name,
                "result": outcome.model_dump(by_alias=True, exclude={"raw_body"}),
            }, ensure_ascii=False, default=str))


@app.command()
def upload(
    base_url: str = typer.Option(settings.base_url, "--base-url", help="Saby base URL, e.g. https://online.sbis.ru"),
    login: str = typer.Option(..., "--login", help="Saby user login"),
    password: str = typer.Option(..., "--password", help="Saby user password"),
    file: Optional[Path] = typer.Option(None, "--file", exists=True, dir_okay=False, help="Document to upload"),
    folder: Optional[Path] = typer.Option(None, "--dir", exists=True, file_okay=False, help="Folder with .doc/.docx files"),
    meta: Optional[str] = typer.Option(None, "--meta", help="Document metadata as JSON"),
) -> None:
    """Upload one document (--file) or a whole folder (--dir) as drafts."""
    if (file is None) == (folder is None):
        raise typer.BadParameter("pass exactly one of --file or --dir")

    configure_logging(settings.log_level)
    parsed_meta = parse_meta(meta)
    try:
        asyncio.run(_upload(base_url, Credentials(login=login, password=password), file, folder, parsed_meta))
    except EdoError as exc:
        _err_console.print(f"[red]Upload to Saby failed:[/red] {exc}")
        raise typer.Exit(code=1)
    except (typer.Exit, typer.BadParameter):
        raise
    except Exception as exc:
        _err_console.print(f"[red]Upload to Saby failed:[/red] {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1)


@app.command()
def auth(
    auth_url: str = typer.Option(settings.auth_url, "--auth-url", help="Saby auth service URL"),
    login: str = typer.Option(..., "--login", help="Saby user login"),
    password: str = typer.Option(..., "--password", help="Saby user password"),
) -> None:
    """Check credentials: print HTTP status, session id and own organizations."""

    async def _auth():
        async with SabyTransport(build_async_client(settings), settings) as transport:
            authenticator = SessionAuthenticator(
                transport, Credentials(login=login, password=password), login_url=auth_url,
            )
            return await authenticator.login()

    configure_logging(settings.log_level)
    try:
        result, organizations = asyncio.run(_auth())
    except EdoError as exc:
        _err_console.print(f"[red]Saby authentication failed:[/red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title="Saby auth")
    table.add_column("Field", style="bright_green", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("HTTP status", f"{result.status} {result.status_text}")
    table.add_row("Session id", result.session_id)
    if organizations.available:
        table.add_row("Own organizations", json.dumps(organizations.organizations, ensure_ascii=False))
    else:
        table.add_row("Own organizations", f"unavailable ({organizations.error})")
    _console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(3000, "--port"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("edo_uploader.main:app", host=host, port=port)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
