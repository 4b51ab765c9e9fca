"""
Route for Saby session authentication
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from edo_uploader.exceptions import EdoError, ValidationError
from edo_uploader.models.auth import AuthRequest, AuthResponse, Credentials
from edo_uploader.routes.dependencies import get_transport, to_http_exception
from edo_uploader.services.saby_transport import SabyTransport
from edo_uploader.services.session_authenticator import SessionAuthenticator

log = logging.getLogger("edo.api.auth")

router = APIRouter()


@router.post("/auth", response_model=AuthResponse)
async def authenticate(body: AuthRequest, transport: SabyTransport = Depends(get_transport)):
    """
    Exchanges login/password for a session id (X-SBISSessionID).

    - **baseUrl**: auth service URL (defaults to the configured one)
    - **login**, **password**: Saby credentials

    Own organizations are listed best-effort: `organizationsAvailable` is false
    when that secondary call failed.
    """
    try:
        if not body.login or not body.password:
            raise ValidationError("login and password required")

        authenticator = SessionAuthenticator(
            transport,
            Credentials(login=body.login, password=body.password),
            login_url=(body.base_url or "").strip() or None,
        )
        result, organizations = await authenticator.login()

        return AuthResponse(
            **result.model_dump(),
            our_organizations=organizations.organizations,
            organizations_available=organizations.available,
        )

    except HTTPException:
        raise
    except EdoError as exc:
        raise to_http_exception(exc)
    except Exception as exc:
        log.exception("auth_unexpected_error")
        raise to_http_exception(exc)
