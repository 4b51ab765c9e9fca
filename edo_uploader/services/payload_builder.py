"""
Submission payload builder for СБИС.ЗаписатьДокумент

build_submission_request(): resolved parties + file + metadata → SubmissionRequest
to_wire():                  SubmissionRequest → JSON-RPC envelope

Wire format of `params.Документ`:
  Вложение[]          one attachment: Идентификатор, Тип, Подтип, Название, Файл{ДвоичныеДанные, Имя}
  Дата                DD.MM.YYYY
  Номер, Примечание   free text
  Идентификатор       document UUID
  Тип                 document type tag, "ДоговорИсх" by default
  Контрагент          {"СвЮЛ": {...}} or {"СвФЛ": {...}}
  НашаОрганизация     same shape

No I/O here: the request value is handed to the transport by the orchestrator.
"""
import base64
import re
import uuid
from datetime import date, datetime
from typing import Optional

from edo_uploader.config import settings
from edo_uploader.exceptions import ValidationError
from edo_uploader.models.party import Individual, LegalParty, Organization
from edo_uploader.models.submission import SubmissionMeta, SubmissionRequest, UploadedDocument
from edo_uploader.services.rpc import WRITE_DOCUMENT_METHOD, rpc_envelope

ATTACHMENT_TYPE = "Прочее"
ATTACHMENT_SUBTYPE = "Приложение"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WIRE_DATE_RE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

def parse_iso_date(value: str) -> date:
    """YYYY-MM-DD → date. ValidationError on a malformed or impossible date."""
    value = value.strip()
    if not _ISO_DATE_RE.match(value):
        raise ValidationError("date must be YYYY-MM-DD", field="date")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", field="date")


def format_wire_date(day: date) -> str:
    return f"{day.day:02d}.{day.month:02d}.{day.year:04d}"


def iso_to_wire_date(value: str) -> str:
    """2024-03-15 → 15.03.2024"""
    return format_wire_date(parse_iso_date(value))


def wire_to_iso_date(value: str) -> str:
    """15.03.2024 → 2024-03-15"""
    value = value.strip()
    if not _WIRE_DATE_RE.match(value):
        raise ValidationError("date must be DD.MM.YYYY", field="date")
    try:
        return datetime.strptime(value, "%d.%m.%Y").date().isoformat()
    except ValueError:
        raise ValidationError("date must be DD.MM.YYYY", field="date")


# ---------------------------------------------------------------------------
# Note
# ---------------------------------------------------------------------------

def choose_note(explicit: Optional[str], period_description: Optional[str]) -> str:
    """Explicit note (trimmed) wins over the inferred period label; never both."""
    explicit = explicit.strip() if explicit else ""
    if explicit:
        return explicit
    return period_description or ""


# ---------------------------------------------------------------------------
# Legal parties
# ---------------------------------------------------------------------------

def serialize_party(party: LegalParty) -> dict:
    """LegalParty → {"СвЮЛ": {...}} / {"СвФЛ": {...}}; optional fields only when set."""
    if isinstance(party, Organization):
        block = {"ИНН": party.tax_id}
        if party.registration_code:
            block["КПП"] = party.registration_code
        return {"СвЮЛ": block}

    if isinstance(party, Individual):
        block = {"ИНН": party.tax_id}
        for key, value in (
            ("Фамилия", party.last_name),
            ("Имя", party.first_name),
            ("Отчество", party.middle_name),
            ("СНИЛС", party.insurance_number),
        ):
            if value:
                block[key] = value
        return {"СвФЛ": block}

    raise TypeError(f"unsupported legal party: {type(party).__name__}")


def require_registration_code(counterparty: LegalParty) -> None:
    """Organization counterparties must carry a КПП before anything is sent."""
    if isinstance(counterparty, Organization):
        if not counterparty.registration_code:
            raise ValidationError(
                "registration code required for organization counterparties",
                field="registration_code",
            )
    elif not isinstance(counterparty, Individual):
        raise TypeError(f"unsupported legal party: {type(counterparty).__name__}")


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

def build_submission_request(
    counterparty: LegalParty,
    our_party: LegalParty,
    document: UploadedDocument,
    meta: SubmissionMeta,
    period_description: Optional[str] = None,
    default_document_type: Optional[str] = None,
    today: Optional[date] = None,
) -> SubmissionRequest:
    """
    Assembles the canonical request for one document.

    Raises ValidationError for an organization counterparty without
    registration code, or for a malformed date.
    """
    require_registration_code(counterparty)

    if meta.date and meta.date.strip():
        issued = parse_iso_date(meta.date)
    else:
        issued = today or date.today()

    return SubmissionRequest(
        document_id=uuid.uuid4(),
        attachment_id=uuid.uuid4(),
        file_name=document.file_name,
        file_bytes=document.content,
        issued_date=issued,
        number=(meta.number or "").strip(),
        note=choose_note(meta.note, period_description),
        document_type=(meta.document_type or "").strip()
        or default_document_type
        or settings.default_document_type,
        counterparty=counterparty,
        our_party=our_party,
    )


def encode_file(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def to_wire(request: SubmissionRequest) -> dict:
    """SubmissionRequest → JSON-RPC envelope for СБИС.ЗаписатьДокумент."""
    return rpc_envelope(WRITE_DOCUMENT_METHOD, {
        "Документ": {
            "Вложение": [
                {
                    "Идентификатор": str(request.attachment_id),
                    "Тип": ATTACHMENT_TYPE,
                    "Подтип": ATTACHMENT_SUBTYPE,
                    "Название": request.file_name,
                    "Файл": {
                        "ДвоичныеДанные": encode_file(request.file_bytes),
                        "Имя": request.file_name,
                    },
                },
            ],
            "Дата": format_wire_date(request.issued_date),
            "Номер": request.number,
            "Идентификатор": str(request.document_id),
            "Контрагент": serialize_party(request.counterparty),
            "НашаОрганизация": serialize_party(request.our_party),
            "Примечание": request.note,
            "Тип": request.document_type,
        },
    })
