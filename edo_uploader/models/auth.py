"""
Models for session authentication and the own-organizations lookup.
"""
from typing import Any, Dict, Optional

from edo_uploader.models.base import ApiModel


class Credentials(ApiModel):
    login: str
    password: str


class AuthRequest(ApiModel):
    """Body of POST /api/auth"""
    base_url: Optional[str] = None                     # auth service URL
    login: Optional[str] = None
    password: Optional[str] = None


class AuthResult(ApiModel):
    """Raw view of the authentication response plus the extracted session id."""
    status: int
    status_text: str = ""
    headers: Dict[str, str] = {}
    raw_body: str
    json_body: Optional[Any] = None
    session_id: str


class OrganizationsLookup(ApiModel):
    """
    Availability-tagged result of the best-effort organizations listing.

    `available=False` means the call failed or returned something unexpected;
    `error` then holds the reason.
    """
    available: bool
    organizations: Optional[Any] = None
    error: Optional[str] = None


class AuthResponse(AuthResult):
    """Response of POST /api/auth"""
    our_organizations: Optional[Any] = None
    organizations_available: bool = False
