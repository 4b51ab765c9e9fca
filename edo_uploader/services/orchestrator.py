"""
Submission orchestrator

Single submission (submit_document):
  Unvalidated → Validated → Submitted → Succeeded | Failed
  Validation failures (session, file, parties, КПП, date) never reach the
  network. Every failure propagates to the caller unchanged.

Batch submission (submit_batch):
  A fold over the input files. The counterparty of each file comes from its
  name; each file's failure is captured as a BatchItem value, so one bad file
  never stops the others. Results keep input order, also when
  `batch_concurrency` > 1.
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

from edo_uploader.config import Settings, settings as default_settings
from edo_uploader.exceptions import EdoError, MalformedResponseError, UpstreamError, ValidationError
from edo_uploader.models.party import ParticipantInput
from edo_uploader.models.submission import (
    BatchItem,
    BatchResult,
    FilenameHints,
    SubmissionMeta,
    SubmissionOutcome,
    UploadedDocument,
)
from edo_uploader.parsers.filename_parser import extract_filename_hints, repair_filename
from edo_uploader.parsers.participant_parser import resolve_participant
from edo_uploader.services.payload_builder import build_submission_request, to_wire
from edo_uploader.services.rpc import parse_json_body, rpc_error_message, rpc_result
from edo_uploader.services.saby_transport import SabyTransport, TransportResponse
from edo_uploader.utils.redact import redact_party_info

log = logging.getLogger("edo.submission")

TAX_ID_NOT_IN_FILENAME = "tax id not found in filename"


# ---------------------------------------------------------------------------
# Response interpretation
# ---------------------------------------------------------------------------

def _extract_document_id(result: Any) -> Optional[str]:
    """result.Документ.Идентификатор, falling back to result.Идентификатор."""
    if not isinstance(result, dict):
        return None
    document = result.get("Документ")
    if isinstance(document, dict) and document.get("Идентификатор"):
        return str(document["Идентификатор"])
    if result.get("Идентификатор"):
        return str(result["Идентификатор"])
    return None


def interpret_submission_response(response: TransportResponse) -> SubmissionOutcome:
    """
    Turns the raw answer into a SubmissionOutcome.

    - error status                → UpstreamError(status, error.message or reason)
    - JSON-RPC error in 2xx body  → UpstreamError(status, error.message)
    - body that is not JSON       → outcome with parse_error set, raw body kept
    - otherwise                   → outcome, document_id when the answer has one
    """
    parsed: Any = None
    parse_error: Optional[str] = None
    try:
        parsed = parse_json_body(response.text)
    except MalformedResponseError as exc:
        parse_error = exc.message

    if not response.ok:
        raise UpstreamError(
            response.status,
            rpc_error_message(parsed) or response.status_text or f"HTTP {response.status}",
        )

    error_message = rpc_error_message(parsed)
    if error_message:
        raise UpstreamError(response.status, error_message)

    return SubmissionOutcome(
        status=response.status,
        status_text=response.status_text,
        raw_body=response.text,
        parsed_body=parsed,
        document_id=_extract_document_id(rpc_result(parsed)),
        parse_error=parse_error,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def _fill_counterparty_gaps(counterparty: ParticipantInput, hints: FilenameHints) -> ParticipantInput:
    """Explicit input wins; filename hints only fill what is missing."""
    tax_id = counterparty.tax_id if counterparty.tax_id and counterparty.tax_id.strip() else None
    registration_code = counterparty.registration_code
    if tax_id is None:
        tax_id = hints.tax_id
        registration_code = registration_code or hints.registration_code
    elif not registration_code and hints.tax_id and hints.tax_id == "".join(tax_id.split()):
        registration_code = hints.registration_code
    return counterparty.model_copy(update={
        "tax_id": tax_id,
        "registration_code": registration_code,
    })


class SubmissionOrchestrator:
    """Drives single and batch submissions over one transport."""

    def __init__(
        self,
        transport: SabyTransport,
        service_url: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.transport = transport
        self.service_url = service_url or self.settings.service_url

    async def submit_document(
        self,
        session_id: Optional[str],
        counterparty: ParticipantInput,
        our: ParticipantInput,
        document: Optional[UploadedDocument],
        meta: SubmissionMeta,
    ) -> SubmissionOutcome:
        """
        Builds and sends one document.

        Raises ValidationError before any remote call, UpstreamError when the
        service rejects the request.
        """
        if not session_id or not session_id.strip():
            raise ValidationError("session id required", field="session_id")
        if document is None:
            raise ValidationError("file required", field="file")
        if document.error:
            raise ValidationError(document.error, field="file")

        file_name = repair_filename(document.file_name or self.settings.default_file_name)
        hints = extract_filename_hints(file_name, repaired=True)
        return await self._send(
            session_id,
            _fill_counterparty_gaps(counterparty, hints),
            our,
            document.model_copy(update={"file_name": file_name}),
            meta,
            hints,
        )

    async def _send(
        self,
        session_id: str,
        counterparty: ParticipantInput,
        our: ParticipantInput,
        document: UploadedDocument,
        meta: SubmissionMeta,
        hints: FilenameHints,
    ) -> SubmissionOutcome:
        """Resolves, builds and posts a document whose name is already repaired."""
        counterparty_party = resolve_participant(counterparty)
        our_party = resolve_participant(our)

        request = build_submission_request(
            counterparty=counterparty_party,
            our_party=our_party,
            document=document,
            meta=meta,
            period_description=hints.period_description,
            default_document_type=self.settings.default_document_type,
        )

        log.info("submission_validated", extra={
            "document_id": str(request.document_id),
            "counterparty": redact_party_info(counterparty_party),
            "file_size_bytes": len(document.content),
        })

        response = await self.transport.post_json(self.service_url, to_wire(request), session_id=session_id)
        outcome = interpret_submission_response(response)

        log.info("submission_done", extra={
            "document_id": str(request.document_id),
            "status_code": outcome.status,
            "remote_document_id": outcome.document_id,
            "parse_error": outcome.parse_error,
        })
        return outcome

    async def _submit_batch_item(
        self,
        session_id: str,
        our: ParticipantInput,
        meta: SubmissionMeta,
        document: UploadedDocument,
    ) -> BatchItem:
        """One batch step. Never raises: the failure becomes the item's error."""
        file_name = repair_filename(document.file_name or self.settings.default_file_name)
        if document.error:
            log.info("batch_item_rejected", extra={"reason": document.error})
            return BatchItem(file_name=file_name, ok=False, error=document.error)

        hints = extract_filename_hints(file_name, repaired=True)
        if not hints.tax_id:
            log.info("batch_item_skipped", extra={"reason": TAX_ID_NOT_IN_FILENAME})
            return BatchItem(file_name=file_name, ok=False, error=TAX_ID_NOT_IN_FILENAME)

        counterparty = ParticipantInput(tax_id=hints.tax_id, registration_code=hints.registration_code)
        try:
            outcome = await self._send(
                session_id,
                counterparty,
                our,
                document.model_copy(update={"file_name": file_name}),
                meta,
                hints,
            )
        except EdoError as exc:
            log.warning("batch_item_failed", extra={"error": str(exc), "error_type": type(exc).__name__})
            return BatchItem(file_name=file_name, ok=False, error=str(exc))
        except Exception as exc:
            log.exception("batch_item_unexpected_error")
            return BatchItem(file_name=file_name, ok=False, error=str(exc) or type(exc).__name__)

        return BatchItem(file_name=file_name, ok=True, document_id=outcome.document_id)

    async def submit_batch(
        self,
        session_id: Optional[str],
        our: ParticipantInput,
        meta: SubmissionMeta,
        documents: Sequence[UploadedDocument],
    ) -> BatchResult:
        """
        Submits every document independently, counterparty taken from its filename.

        Only batch-level input (session id, non-empty file list) raises; per-file
        failures are reported in `results`, in input order.
        """
        if not session_id or not session_id.strip():
            raise ValidationError("session id required", field="session_id")
        if not documents:
            raise ValidationError("at least one file required", field="files")

        concurrency = max(1, self.settings.batch_concurrency)
        results: List[BatchItem] = []

        if concurrency == 1:
            for document in documents:
                results.append(await self._submit_batch_item(session_id, our, meta, document))
        else:
            semaphore = asyncio.Semaphore(concurrency)

            async def _bounded(document: UploadedDocument) -> BatchItem:
                async with semaphore:
                    return await self._submit_batch_item(session_id, our, meta, document)

            # gather keeps input order whatever the completion order
            results = list(await asyncio.gather(*(_bounded(d) for d in documents)))

        batch = BatchResult(total=len(documents), results=results)
        log.info("batch_done", extra={
            "total": batch.total,
            "succeeded": batch.succeeded,
            "failed": batch.failed,
        })
        return batch
