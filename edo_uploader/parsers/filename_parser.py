"""
Filename metadata extractor

Document files are named by the accounting side following a loose convention,
e.g. "Отчет ИНН7712345678 КПП771201001 15-03-2024.docx". From the name we infer:
  - the counterparty tax id (ИНН, 10 or 12 digits) and registration code (КПП, 9 digits)
  - the report period, as a weekly-report label with the ISO week number

Browsers and multipart decoders often hand the name over as UTF-8 bytes read
as latin-1, so every name is repaired once, before any pattern matching.

Pure functions: nothing here raises, an unset field means "could not infer".
"""
import re
import logging
from datetime import date
from typing import Optional

from edo_uploader.config import settings
from edo_uploader.models.submission import FilenameHints

log = logging.getLogger("edo.filename")

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# 12 digits first so an individual's tax id is not cut to 10
TAX_ID_RE = re.compile(r"ИНН(\d{12}|\d{10})", re.IGNORECASE)
REGISTRATION_CODE_RE = re.compile(r"КПП(\d{9})", re.IGNORECASE)
PERIOD_DATE_RE = re.compile(r"(\d{2})-(\d{2})-(\d{4})")


# ---------------------------------------------------------------------------
# Encoding repair
# ---------------------------------------------------------------------------

def repair_filename(name: str) -> str:
    """
    Re-decodes a latin-1 mojibake name as UTF-8.

    "ÐÑÑÐµÑ.docx" → "Отчет.docx"
    Names that are already proper text (characters outside latin-1, or bytes
    that are not valid UTF-8) are returned unchanged.
    """
    if not name:
        return name
    try:
        return name.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return name


# ---------------------------------------------------------------------------
# Tax identifiers
# ---------------------------------------------------------------------------

def extract_tax_identifiers(name: str) -> FilenameHints:
    """Finds ИНН<10|12 digits> and КПП<9 digits> tokens in an already repaired filename."""
    tax_match = TAX_ID_RE.search(name or "")
    code_match = REGISTRATION_CODE_RE.search(name or "")
    return FilenameHints(
        tax_id=tax_match.group(1) if tax_match else None,
        registration_code=code_match.group(1) if code_match else None,
    )


# ---------------------------------------------------------------------------
# Report period
# ---------------------------------------------------------------------------

def iso_week(day: date) -> int:
    """ISO-8601 week number: Monday-start weeks, week 1 holds the year's first Thursday."""
    return day.isocalendar()[1]


def _parse_dmy(name: str) -> Optional[date]:
    """First DD-MM-YYYY in the text as a date, or None if absent or not a real calendar day."""
    m = PERIOD_DATE_RE.search(name)
    if not m:
        return None
    dd, mm, yyyy = int(m.group(1)), int(m.group(2)), int(m.group(3))
    try:
        return date(yyyy, mm, dd)
    except ValueError:
        return None


def extract_period_description(name: str, template: Optional[str] = None) -> Optional[str]:
    """
    Weekly-report label for the date found in the filename.

    "Отчет 15-03-2024.docx" → "Еженедельный отчет по выручке и наценке (11 неделя)"
    """
    day = _parse_dmy(name or "")
    if day is None:
        return None
    template = template or settings.period_note_template
    return template.format(week=iso_week(day))


def extract_filename_hints(name: str, repaired: bool = False) -> FilenameHints:
    """
    All hints a filename can give: tax id, registration code and period label.

    The name is repaired here unless the caller already did (`repaired=True`).
    A name is repaired exactly once.
    """
    if not repaired:
        name = repair_filename(name or "")
    hints = extract_tax_identifiers(name)
    hints.period_description = extract_period_description(name)
    log.debug("filename_hints", extra={
        "has_tax_id": hints.tax_id is not None,
        "has_registration_code": hints.registration_code is not None,
        "has_period": hints.period_description is not None,
    })
    return hints
