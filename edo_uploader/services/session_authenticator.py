"""
Session authentication against the Saby auth service.

- authenticate(): one remote call, always fresh
- session_id(): cached for the lifetime of the instance; concurrent callers
  share a single in-flight authentication (asyncio.Lock)
- list_own_organizations(): best-effort secondary call, never raises; the
  result says whether the list is available
"""
import asyncio
import logging
from typing import Optional, Tuple

from edo_uploader.config import Settings, settings as default_settings
from edo_uploader.exceptions import MalformedResponseError, UpstreamError
from edo_uploader.models.auth import AuthResult, Credentials, OrganizationsLookup
from edo_uploader.services.rpc import (
    AUTHENTICATE_METHOD,
    LIST_OWN_ORGANIZATIONS_METHOD,
    parse_json_body,
    rpc_envelope,
    rpc_error_message,
    rpc_result,
)
from edo_uploader.services.saby_transport import SabyTransport
from edo_uploader.utils.redact import redact_session_id

log = logging.getLogger("edo.auth")


def _unavailable(reason: str) -> OrganizationsLookup:
    log.warning("own_organizations_unavailable", extra={"error": reason})
    return OrganizationsLookup(available=False, error=reason)


class SessionAuthenticator:
    """Exchanges credentials for a Saby session id (X-SBISSessionID)."""

    def __init__(
        self,
        transport: SabyTransport,
        credentials: Credentials,
        login_url: Optional[str] = None,
        service_url: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.transport = transport
        self.credentials = credentials
        self.login_url = login_url or self.settings.auth_url
        self.service_url = service_url or self.settings.service_url
        self._session_id: Optional[str] = None
        self._lock = asyncio.Lock()

    async def authenticate(self) -> AuthResult:
        """
        Issues one authentication call.

        Raises UpstreamError on an error status, a JSON-RPC error payload,
        or an answer that carries no session id.
        """
        body = rpc_envelope(AUTHENTICATE_METHOD, {
            "Параметр": {
                "Логин": self.credentials.login,
                "Пароль": self.credentials.password,
            },
        })
        response = await self.transport.post_json(self.login_url, body)

        try:
            json_body = parse_json_body(response.text)
        except MalformedResponseError:
            json_body = None

        if not response.ok:
            message = rpc_error_message(json_body) or response.status_text or "authentication failed"
            log.warning("auth_failed", extra={"status_code": response.status})
            raise UpstreamError(response.status, message)

        error_message = rpc_error_message(json_body)
        if error_message:
            log.warning("auth_rejected", extra={"status_code": response.status})
            raise UpstreamError(response.status, error_message)

        session_id = rpc_result(json_body)
        if not isinstance(session_id, str) or not session_id:
            raise UpstreamError(response.status, "session id missing in auth response")

        log.info("auth_success", extra={"session_redacted": redact_session_id(session_id)})
        return AuthResult(
            status=response.status,
            status_text=response.status_text,
            headers=response.headers,
            raw_body=response.text,
            json_body=json_body,
            session_id=session_id,
        )

    async def session_id(self) -> str:
        """Cached session id; authenticates at most once at a time."""
        if self._session_id is not None:
            return self._session_id
        async with self._lock:
            # Another caller may have finished authenticating while we waited
            if self._session_id is None:
                result = await self.authenticate()
                self._session_id = result.session_id
        return self._session_id

    def invalidate(self) -> None:
        """Forgets the cached session id; the next session_id() authenticates again."""
        self._session_id = None

    async def list_own_organizations(self, session_id: str) -> OrganizationsLookup:
        """
        Best-effort listing of the caller's own organizations.

        Never raises: transport, status or parse failures come back as
        OrganizationsLookup(available=False, error=...).
        """
        body = rpc_envelope(LIST_OWN_ORGANIZATIONS_METHOD, {"Фильтр": {}})
        try:
            response = await self.transport.post_json(self.service_url, body, session_id=session_id)
        except UpstreamError as exc:
            return _unavailable(str(exc))
        if not response.ok:
            return _unavailable(f"organizations listing failed: HTTP {response.status}")

        try:
            json_body = parse_json_body(response.text)
        except MalformedResponseError as exc:
            return _unavailable(str(exc))

        result = rpc_result(json_body)
        if not isinstance(result, dict) or "НашаОрганизация" not in result:
            return _unavailable(rpc_error_message(json_body) or "unexpected organizations response")

        return OrganizationsLookup(available=True, organizations=result["НашаОрганизация"])

    async def login(self, with_organizations: bool = True) -> Tuple[AuthResult, OrganizationsLookup]:
        """Authenticates, caches the session id and optionally lists own organizations."""
        result = await self.authenticate()
        self._session_id = result.session_id
        if not with_organizations:
            return result, OrganizationsLookup(available=False, error="not requested")
        organizations = await self.list_own_organizations(result.session_id)
        return result, organizations
