"""
PII redaction helpers for logs

Tax ids, insurance numbers and personal names must not appear in clear in
production logs.
"""
from typing import Optional

from edo_uploader.models.party import Individual, LegalParty, Organization


def redact_tax_id(tax_id: Optional[str]) -> str:
    """
    Redacts a tax id for logs.
    "7712345678"   → "7712****8"
    "771234567890" → "7712****0"
    """
    if not tax_id or len(tax_id) < 5:
        return "***"
    return tax_id[:4] + "****" + tax_id[-1]


def redact_session_id(session_id: Optional[str]) -> str:
    """Keeps only the first 6 characters of a session id."""
    if not session_id or len(session_id) < 8:
        return "***"
    return session_id[:6] + "..."


def redact_party_info(party: LegalParty) -> dict:
    """
    Returns a dict safe for logging: party kind and redacted tax id, no names.
    """
    if isinstance(party, Organization):
        return {
            "kind": party.kind,
            "tax_id_redacted": redact_tax_id(party.tax_id),
            "has_registration_code": party.registration_code is not None,
        }
    if isinstance(party, Individual):
        return {
            "kind": party.kind,
            "tax_id_redacted": redact_tax_id(party.tax_id),
        }
    raise TypeError(f"unsupported legal party: {type(party).__name__}")
