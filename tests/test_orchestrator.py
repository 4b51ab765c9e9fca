"""
Tests for single and batch submission.
"""
import asyncio
import base64
import json

import httpx
import pytest
from edo_uploader.config import Settings
from edo_uploader.exceptions import UpstreamError, ValidationError
from edo_uploader.models.party import ParticipantInput
from edo_uploader.models.submission import SubmissionMeta, UploadedDocument
from edo_uploader.services.orchestrator import (
    TAX_ID_NOT_IN_FILENAME,
    SubmissionOrchestrator,
    interpret_submission_response,
)
from edo_uploader.services.saby_transport import SabyTransport, TransportResponse, build_async_client

WRITE = "СБИС.ЗаписатьДокумент"
OUR = ParticipantInput(tax_id="5001234567", registration_code="500101001")
COUNTERPARTY = ParticipantInput(tax_id="7712345678", registration_code="771201001")


def _doc(name: str, content: bytes = b"docx") -> UploadedDocument:
    return UploadedDocument(file_name=name, content=content)


def _orchestrator(saby, **settings_overrides) -> SubmissionOrchestrator:
    settings = Settings(**settings_overrides)
    return SubmissionOrchestrator(saby.transport(), service_url="https://saby.test/service/?srv=1", settings=settings)


# ---------------------------------------------------------------------------
# interpret_submission_response
# ---------------------------------------------------------------------------

class TestInterpretSubmissionResponse:
    def test_nested_document_id(self):
        outcome = interpret_submission_response(TransportResponse(
            status=200, status_text="OK", text='{"result": {"Документ": {"Идентификатор": "abc"}}}',
        ))
        assert outcome.document_id == "abc"
        assert outcome.parsed_body == {"result": {"Документ": {"Идентификатор": "abc"}}}
        assert outcome.parse_error is None

    def test_flat_document_id(self):
        outcome = interpret_submission_response(TransportResponse(
            status=200, status_text="OK", text='{"result": {"Идентификатор": "flat"}}',
        ))
        assert outcome.document_id == "flat"

    def test_no_document_id(self):
        outcome = interpret_submission_response(TransportResponse(status=200, status_text="OK", text='{"result": true}'))
        assert outcome.document_id is None
        assert outcome.has_document_id is False
        assert outcome.parse_error is None

    def test_malformed_body_keeps_raw_text(self):
        outcome = interpret_submission_response(TransportResponse(status=200, status_text="OK", text="<html>ok</html>"))
        assert outcome.raw_body == "<html>ok</html>"
        assert outcome.parsed_body is None
        assert outcome.document_id is None
        assert outcome.parse_error

    def test_error_status(self):
        with pytest.raises(UpstreamError) as exc_info:
            interpret_submission_response(TransportResponse(
                status=403, status_text="Forbidden", text='{"error": {"message": "Нет прав"}}',
            ))
        assert exc_info.value.status == 403
        assert exc_info.value.message == "Нет прав"

    def test_error_status_falls_back_to_reason(self):
        with pytest.raises(UpstreamError, match="Bad Gateway"):
            interpret_submission_response(TransportResponse(status=502, status_text="Bad Gateway", text=""))

    def test_rpc_error_with_success_status(self):
        with pytest.raises(UpstreamError) as exc_info:
            interpret_submission_response(TransportResponse(
                status=200, status_text="OK", text='{"error": {"message": "Документ не найден"}}',
            ))
        assert exc_info.value.status_code == 502


# ---------------------------------------------------------------------------
# submit_document
# ---------------------------------------------------------------------------

class TestSubmitDocument:
    def test_success(self, saby):
        outcome = asyncio.run(_orchestrator(saby).submit_document(
            "session-1", COUNTERPARTY, OUR, _doc("contract.docx", b"\x00\x01binary"), SubmissionMeta(number="7"),
        ))

        [body] = saby.bodies(WRITE)
        doc = body["params"]["Документ"]
        assert outcome.status == 200
        assert outcome.document_id == doc["Идентификатор"]
        assert doc["Номер"] == "7"
        assert base64.b64decode(doc["Вложение"][0]["Файл"]["ДвоичныеДанные"]) == b"\x00\x01binary"
        [request] = saby.requests
        assert request.headers["X-SBISSessionID"] == "session-1"
        assert str(request.url) == "https://saby.test/service/?srv=1"

    def test_missing_session_id(self, saby):
        with pytest.raises(ValidationError, match="session id required"):
            asyncio.run(_orchestrator(saby).submit_document(None, COUNTERPARTY, OUR, _doc("a.docx"), SubmissionMeta()))
        assert saby.requests == []

    def test_missing_file(self, saby):
        with pytest.raises(ValidationError, match="file required"):
            asyncio.run(_orchestrator(saby).submit_document("s", COUNTERPARTY, OUR, None, SubmissionMeta()))
        assert saby.requests == []

    def test_missing_registration_code_never_reaches_network(self, saby):
        def _must_not_be_called(request, body):
            raise AssertionError("transport must not be invoked")

        saby.handler = _must_not_be_called
        with pytest.raises(ValidationError, match="registration code required"):
            asyncio.run(_orchestrator(saby).submit_document(
                "s", ParticipantInput(tax_id="7712345678"), OUR, _doc("contract.docx"), SubmissionMeta(),
            ))
        assert saby.requests == []

    def test_registration_code_inferred_from_filename(self, saby):
        asyncio.run(_orchestrator(saby).submit_document(
            "s", ParticipantInput(tax_id="7712345678"), OUR, _doc("ИНН7712345678 КПП771201001.docx"), SubmissionMeta(),
        ))
        [body] = saby.bodies(WRITE)
        assert body["params"]["Документ"]["Контрагент"] == {"СвЮЛ": {"ИНН": "7712345678", "КПП": "771201001"}}

    def test_filename_hint_does_not_override_explicit_tax_id(self, saby):
        asyncio.run(_orchestrator(saby).submit_document(
            "s", ParticipantInput(tax_id="771234567890"), OUR, _doc("ИНН7712345678 КПП771201001.docx"), SubmissionMeta(),
        ))
        [body] = saby.bodies(WRITE)
        assert body["params"]["Документ"]["Контрагент"] == {"СвФЛ": {"ИНН": "771234567890"}}

    def test_counterparty_taken_from_filename_when_missing(self, saby):
        asyncio.run(_orchestrator(saby).submit_document(
            "s", ParticipantInput(), OUR, _doc("ИНН7712345678 КПП771201001.docx"), SubmissionMeta(),
        ))
        [body] = saby.bodies(WRITE)
        assert body["params"]["Документ"]["Контрагент"]["СвЮЛ"]["ИНН"] == "7712345678"

    def test_mojibake_filename_repaired_in_payload(self, saby):
        name = "Отчет 15-03-2024.docx".encode("utf-8").decode("latin-1")
        asyncio.run(_orchestrator(saby).submit_document("s", COUNTERPARTY, OUR, _doc(name), SubmissionMeta()))
        [body] = saby.bodies(WRITE)
        doc = body["params"]["Документ"]
        assert doc["Вложение"][0]["Название"] == "Отчет 15-03-2024.docx"
        assert doc["Примечание"] == "Еженедельный отчет по выручке и наценке (11 неделя)"

    def test_explicit_note_beats_period(self, saby):
        asyncio.run(_orchestrator(saby).submit_document(
            "s", COUNTERPARTY, OUR, _doc("Отчет 15-03-2024.docx"), SubmissionMeta(note="Моя заметка"),
        ))
        [body] = saby.bodies(WRITE)
        assert body["params"]["Документ"]["Примечание"] == "Моя заметка"

    def test_upstream_error_propagates(self, saby):
        saby.handler = lambda request, body: httpx.Response(401, json={"error": {"message": "Сессия истекла"}})
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(_orchestrator(saby).submit_document("s", COUNTERPARTY, OUR, _doc("a.docx"), SubmissionMeta()))
        assert exc_info.value.status == 401


# ---------------------------------------------------------------------------
# submit_batch
# ---------------------------------------------------------------------------

BATCH = [
    _doc("Отчет ИНН7712345678 КПП771201001 15-03-2024.docx"),
    _doc("Отчет ИНН7799999999 15-03-2024.docx"),                 # organization without КПП
    _doc("Акт ИНН771234567890.docx"),
]


class TestSubmitBatch:
    def test_isolation_and_order(self, saby):
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), BATCH))

        assert result.total == 3
        assert [item.file_name for item in result.results] == [d.file_name for d in BATCH]
        assert [item.ok for item in result.results] == [True, False, True]
        assert result.results[0].document_id
        assert result.results[1].error == "registration code required for organization counterparties"
        assert result.results[2].document_id
        assert (result.succeeded, result.failed) == (2, 1)
        assert len(saby.bodies(WRITE)) == 2

    def test_missing_tax_id_skipped_without_request(self, saby):
        result = asyncio.run(_orchestrator(saby).submit_batch(
            "s", OUR, SubmissionMeta(), [_doc("no identity.docx"), BATCH[0]],
        ))
        assert result.results[0].ok is False
        assert result.results[0].error == TAX_ID_NOT_IN_FILENAME
        assert result.results[1].ok is True
        assert len(saby.requests) == 1

    def test_upstream_failure_does_not_stop_batch(self, saby):
        def _handler(request, body):
            doc = body["params"]["Документ"]
            if doc["Контрагент"].get("СвФЛ"):
                return httpx.Response(500, json={"error": {"message": "internal"}})
            return saby.default_handler(request, body)

        saby.handler = _handler
        files = [BATCH[2], BATCH[0]]
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), files))
        assert [item.ok for item in result.results] == [False, True]
        assert result.results[0].error == "internal"

    def test_unexpected_error_captured(self, saby):
        def _handler(request, body):
            raise RuntimeError("boom")

        saby.handler = _handler
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), [BATCH[0], BATCH[2]]))
        assert [item.ok for item in result.results] == [False, False]
        assert result.results[0].error == "boom"

    def test_shared_our_party_invalid_fails_each_item(self, saby):
        result = asyncio.run(_orchestrator(saby).submit_batch(
            "s", ParticipantInput(), SubmissionMeta(), [BATCH[0], BATCH[2]],
        ))
        assert [item.error for item in result.results] == ["tax id required", "tax id required"]
        assert saby.requests == []

    def test_missing_session_id(self, saby):
        with pytest.raises(ValidationError):
            asyncio.run(_orchestrator(saby).submit_batch("", OUR, SubmissionMeta(), BATCH))

    def test_empty_batch(self, saby):
        with pytest.raises(ValidationError):
            asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), []))

    def test_concurrent_batch_keeps_input_order(self, saby):
        def _attachment_name(body):
            return body["params"]["Документ"]["Вложение"][0]["Название"]

        async def _first_file_answers_last(request):
            if _attachment_name(json.loads(request.content)) == BATCH[0].file_name:
                await asyncio.sleep(0.05)
            return saby(request)

        transport = SabyTransport(build_async_client(transport=httpx.MockTransport(_first_file_answers_last)))
        orchestrator = SubmissionOrchestrator(
            transport, service_url="https://saby.test/service/?srv=1", settings=Settings(batch_concurrency=3),
        )
        result = asyncio.run(orchestrator.submit_batch("s", OUR, SubmissionMeta(), BATCH))

        bodies = saby.bodies(WRITE)
        assert [_attachment_name(b) for b in bodies] == [BATCH[2].file_name, BATCH[0].file_name]
        assert [item.file_name for item in result.results] == [d.file_name for d in BATCH]
        assert [item.ok for item in result.results] == [True, False, True]
        assert result.results[0].document_id == bodies[1]["params"]["Документ"]["Идентификатор"]
        assert result.results[2].document_id == bodies[0]["params"]["Документ"]["Идентификатор"]

    def test_rejected_document_reported_in_place(self, saby):
        rejected = UploadedDocument(file_name="Акт ИНН771234567891.docx", content=b"", error="File too large")
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), [BATCH[0], rejected, BATCH[2]]))
        assert [item.ok for item in result.results] == [True, False, True]
        assert result.results[1].error == "File too large"
        assert len(saby.bodies(WRITE)) == 2

    def test_name_repaired_once(self, saby):
        # mangled twice: a single repair still leaves no readable ИНН token
        once = "Акт ИНН771234567890.docx".encode("utf-8").decode("latin-1")
        twice = once.encode("utf-8").decode("latin-1")
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), [_doc(twice)]))
        assert result.results[0].file_name == once
        assert result.results[0].error == TAX_ID_NOT_IN_FILENAME
        assert saby.requests == []

    def test_mojibake_names_reported_repaired(self, saby):
        name = "Акт ИНН771234567890.docx".encode("utf-8").decode("latin-1")
        result = asyncio.run(_orchestrator(saby).submit_batch("s", OUR, SubmissionMeta(), [_doc(name)]))
        assert result.results[0].file_name == "Акт ИНН771234567890.docx"
        assert result.results[0].ok is True
