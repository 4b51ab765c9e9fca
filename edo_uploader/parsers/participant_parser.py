"""
Participant resolver: raw identity fields → validated LegalParty.

The tax id (ИНН) length alone selects the variant:
  - 10 digits → Organization (ЮЛ), optional registration code (КПП)
  - 12 digits → Individual (ФЛ), optional name parts and insurance number (СНИЛС)
"""
import re
from typing import Optional

from edo_uploader.exceptions import ValidationError
from edo_uploader.models.party import Individual, LegalParty, Organization, ParticipantInput

ORGANIZATION_TAX_ID_LENGTH = 10
INDIVIDUAL_TAX_ID_LENGTH = 12

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_tax_id(raw: Optional[str]) -> str:
    """Strips all whitespace and checks the result is digits only."""
    if not raw:
        raise ValidationError("tax id required", field="tax_id")
    normalized = _WHITESPACE_RE.sub("", raw)
    if not normalized.isdigit() or not normalized.isascii():
        raise ValidationError("tax id must be numeric", field="tax_id")
    return normalized


def _clean(value: Optional[str]) -> Optional[str]:
    """Trimmed value, None when blank."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_participant(data: ParticipantInput) -> LegalParty:
    """
    Builds an Organization or an Individual from raw input.

    Raises ValidationError when the tax id is absent, not numeric, or not 10/12 digits long.
    """
    tax_id = normalize_tax_id(data.tax_id)

    if len(tax_id) == ORGANIZATION_TAX_ID_LENGTH:
        return Organization(
            tax_id=tax_id,
            registration_code=_clean(data.registration_code),
        )

    if len(tax_id) == INDIVIDUAL_TAX_ID_LENGTH:
        return Individual(
            tax_id=tax_id,
            last_name=_clean(data.last_name),
            first_name=_clean(data.first_name),
            middle_name=_clean(data.middle_name),
            insurance_number=_clean(data.insurance_number),
        )

    raise ValidationError("tax id must be 10 or 12 digits", field="tax_id")
