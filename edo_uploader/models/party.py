"""
Legal party models.

A `LegalParty` is a tagged union: the `kind` field selects the variant and
the length of the digits-only tax id decides which variant gets built
(10 → organization, 12 → individual).
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from edo_uploader.models.base import ApiModel


class ParticipantInput(ApiModel):
    """Raw, unvalidated identity fields as typed by the user or read from a filename."""
    tax_id: Optional[str] = None                       # ИНН
    registration_code: Optional[str] = None            # КПП
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    insurance_number: Optional[str] = None             # СНИЛС


class Organization(ApiModel):
    """Legal entity (ЮЛ), 10-digit tax id."""
    kind: Literal["organization"] = "organization"
    tax_id: str = Field(pattern=r"^\d{10}$")
    registration_code: Optional[str] = None


class Individual(ApiModel):
    """Natural person or sole proprietor (ФЛ), 12-digit tax id."""
    kind: Literal["individual"] = "individual"
    tax_id: str = Field(pattern=r"^\d{12}$")
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    insurance_number: Optional[str] = None


LegalParty = Annotated[Union[Organization, Individual], Field(discriminator="kind")]
