"""
Routes for document upload to Saby EDO (single file and batch)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from edo_uploader.config import settings
from edo_uploader.exceptions import EdoError
from edo_uploader.models.party import ParticipantInput
from edo_uploader.models.submission import BatchResult, SubmissionMeta, SubmissionOutcome, UploadedDocument
from edo_uploader.routes.dependencies import get_transport, payload_too_large, to_http_exception, too_large_message
from edo_uploader.services.orchestrator import SubmissionOrchestrator
from edo_uploader.services.saby_transport import SabyTransport

log = logging.getLogger("edo.api.upload")

router = APIRouter()


async def _read_document(file: UploadFile, reject_oversize: bool = True) -> UploadedDocument:
    """
    Reads an uploaded file. A file over the configured limit is a 413, or, for
    batches (`reject_oversize=False`), a document carrying the error so the
    other files still go through.
    """
    content = await file.read()
    limit = settings.max_file_size_mb * 1024 * 1024
    name = file.filename or settings.default_file_name
    if len(content) > limit:
        if reject_oversize:
            raise payload_too_large(name, limit)
        log.info("file_too_large", extra={"file_size_bytes": len(content)})
        return UploadedDocument(file_name=name, content=b"", error=too_large_message(name, limit))
    return UploadedDocument(file_name=name, content=content)


@router.post("/upload", response_model=SubmissionOutcome)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    session_id: Optional[str] = Form(None, alias="sessionId"),
    doc_base_url: Optional[str] = Form(None, alias="docBaseUrl"),
    client_inn: Optional[str] = Form(None, alias="clientInn"),
    client_kpp: Optional[str] = Form(None, alias="clientKpp"),
    client_last_name: Optional[str] = Form(None, alias="clientLastName"),
    client_first_name: Optional[str] = Form(None, alias="clientFirstName"),
    client_middle_name: Optional[str] = Form(None, alias="clientMiddleName"),
    client_snils: Optional[str] = Form(None, alias="clientSnils"),
    our_inn: Optional[str] = Form(None, alias="ourInn"),
    our_kpp: Optional[str] = Form(None, alias="ourKpp"),
    our_last_name: Optional[str] = Form(None, alias="ourLastName"),
    our_first_name: Optional[str] = Form(None, alias="ourFirstName"),
    our_middle_name: Optional[str] = Form(None, alias="ourMiddleName"),
    our_snils: Optional[str] = Form(None, alias="ourSnils"),
    doc_type: Optional[str] = Form(None, alias="docType"),
    number: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    note: Optional[str] = Form(None),
    transport: SabyTransport = Depends(get_transport),
):
    """
    Uploads one document as a draft (not sent to the counterparty).

    - **file**: doc/docx document
    - **sessionId**: Saby session id from /api/auth
    - **client\\***: counterparty identity; missing ИНН/КПП are taken from the filename
    - **our\\***: own organization identity
    """
    document = await _read_document(file) if file is not None else None

    orchestrator = SubmissionOrchestrator(transport, service_url=(doc_base_url or "").strip() or None)
    try:
        return await orchestrator.submit_document(
            session_id=session_id,
            counterparty=ParticipantInput(
                tax_id=client_inn,
                registration_code=client_kpp,
                last_name=client_last_name,
                first_name=client_first_name,
                middle_name=client_middle_name,
                insurance_number=client_snils,
            ),
            our=ParticipantInput(
                tax_id=our_inn,
                registration_code=our_kpp,
                last_name=our_last_name,
                first_name=our_first_name,
                middle_name=our_middle_name,
                insurance_number=our_snils,
            ),
            document=document,
            meta=SubmissionMeta(document_type=doc_type, number=number, date=date, note=note),
        )

    except HTTPException:
        raise
    except EdoError as exc:
        log.info("upload_rejected", extra={"error": str(exc), "error_type": type(exc).__name__})
        raise to_http_exception(exc)
    except Exception as exc:
        log.exception("upload_unexpected_error")
        raise to_http_exception(exc)


@router.post("/upload/batch", response_model=BatchResult)
async def upload_batch(
    files: Optional[List[UploadFile]] = File(None),
    session_id: Optional[str] = Form(None, alias="sessionId"),
    doc_base_url: Optional[str] = Form(None, alias="docBaseUrl"),
    our_inn: Optional[str] = Form(None, alias="ourInn"),
    our_kpp: Optional[str] = Form(None, alias="ourKpp"),
    our_last_name: Optional[str] = Form(None, alias="ourLastName"),
    our_first_name: Optional[str] = Form(None, alias="ourFirstName"),
    our_middle_name: Optional[str] = Form(None, alias="ourMiddleName"),
    our_snils: Optional[str] = Form(None, alias="ourSnils"),
    doc_type: Optional[str] = Form(None, alias="docType"),
    number: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    note: Optional[str] = Form(None),
    transport: SabyTransport = Depends(get_transport),
):
    """
    Uploads several documents; each counterparty comes from its filename
    (`ИНН<digits>` and `КПП<digits>` tokens).

    One file's failure never stops the others: see `results[].ok` / `results[].error`.
    """
    documents = [await _read_document(f, reject_oversize=False) for f in files or []]

    orchestrator = SubmissionOrchestrator(transport, service_url=(doc_base_url or "").strip() or None)
    try:
        return await orchestrator.submit_batch(
            session_id=session_id,
            our=ParticipantInput(
                tax_id=our_inn,
                registration_code=our_kpp,
                last_name=our_last_name,
                first_name=our_first_name,
                middle_name=our_middle_name,
                insurance_number=our_snils,
            ),
            meta=SubmissionMeta(document_type=doc_type, number=number, date=date, note=note),
            documents=documents,
        )

    except HTTPException:
        raise
    except EdoError as exc:
        raise to_http_exception(exc)
    except Exception as exc:
        log.exception("batch_unexpected_error")
        raise to_http_exception(exc)
