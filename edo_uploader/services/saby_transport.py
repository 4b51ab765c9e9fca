"""
HTTP transport for the Saby JSON-RPC API (httpx wrapper).

One builder for the AsyncClient keeps timeouts and headers the same for every
call, and lets tests swap in an httpx.MockTransport.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from edo_uploader.config import Settings, settings as default_settings
from edo_uploader.exceptions import UpstreamError

log = logging.getLogger("edo.transport")

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"


def build_async_client(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Creates an `httpx.AsyncClient` with the configured timeout and headers."""
    settings = settings or default_settings
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers={
            "User-Agent": settings.user_agent,
            "Content-Type": JSON_CONTENT_TYPE,
        },
        transport=transport,
    )


@dataclass
class TransportResponse:
    """What the core needs from an HTTP answer."""
    status: int
    status_text: str
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class SabyTransport:
    """Posts JSON bodies to Saby endpoints, optionally with the session header."""

    def __init__(self, client: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or default_settings

    async def post_json(self, url: str, body: dict, session_id: Optional[str] = None) -> TransportResponse:
        """
        Sends one request.

        Raises UpstreamError(502) when the request could not be delivered at all;
        HTTP error statuses are returned, not raised, so callers can read the body.
        """
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if session_id:
            headers[self.settings.session_header] = session_id

        t0 = time.monotonic()
        try:
            response = await self.client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            log.warning("saby_transport_error", extra={"url": url, "error": str(exc)})
            raise UpstreamError(502, f"request to {url} failed: {exc}") from exc

        log.info("saby_call", extra={
            "url": url,
            "method": body.get("method"),
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - t0) * 1000),
        })
        return TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            text=response.text,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "SabyTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
