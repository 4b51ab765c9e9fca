"""
Models for document submission: metadata, the built request, its outcome
and the aggregated batch result.

SubmissionRequest is created fresh per submission and frozen once built.
SubmissionOutcome and BatchResult are what the API and the CLI report back.
"""
from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from pydantic import ConfigDict, computed_field

from edo_uploader.models.base import ApiModel
from edo_uploader.models.party import LegalParty


class FilenameHints(ApiModel):
    """Hints derived from a filename. Only used to fill gaps in explicit input."""
    tax_id: Optional[str] = None
    registration_code: Optional[str] = None
    period_description: Optional[str] = None


class SubmissionMeta(ApiModel):
    """Metadata shared by one submission or by every file of a batch."""
    document_type: Optional[str] = None                # "ДоговорИсх" when absent
    number: Optional[str] = None
    date: Optional[str] = None                         # YYYY-MM-DD, today when absent
    note: Optional[str] = None


class UploadedDocument(ApiModel):
    """Decoded file content plus its declared name, as handed over by ingestion."""
    file_name: str
    content: bytes
    error: Optional[str] = None  # set when ingestion already rejected the file (e.g. too large)


class SubmissionRequest(ApiModel):
    """Canonical request for one document, ready to be put on the wire."""

    model_config = ConfigDict(frozen=True)

    document_id: UUID
    attachment_id: UUID
    file_name: str
    file_bytes: bytes
    issued_date: date
    number: str
    note: str
    document_type: str
    counterparty: LegalParty
    our_party: LegalParty


class SubmissionOutcome(ApiModel):
    """Result of one delivered submission call."""
    status: int
    status_text: str = ""
    raw_body: str
    parsed_body: Optional[Any] = None
    document_id: Optional[str] = None
    parse_error: Optional[str] = None                  # body was not JSON, raw_body kept

    @property
    def has_document_id(self) -> bool:
        return self.document_id is not None


class BatchItem(ApiModel):
    """Outcome of one file within a batch."""
    file_name: str
    ok: bool
    document_id: Optional[str] = None
    error: Optional[str] = None


class BatchResult(ApiModel):
    """Aggregated batch outcome, `results` in input file order."""
    total: int
    results: List[BatchItem] = []

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.results if item.ok)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if not item.ok)
