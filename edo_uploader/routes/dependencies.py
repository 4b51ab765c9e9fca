"""
Shared FastAPI dependencies and error mapping for the API routes.
"""
import logging
from typing import AsyncIterator

from fastapi import HTTPException

from edo_uploader.config import settings
from edo_uploader.exceptions import UpstreamError, ValidationError
from edo_uploader.models.base import ErrorDetail
from edo_uploader.services.saby_transport import SabyTransport, build_async_client

log = logging.getLogger("edo.api")


async def get_transport() -> AsyncIterator[SabyTransport]:
    """One transport (httpx client) per request, closed afterwards."""
    async with SabyTransport(build_async_client(settings), settings) as transport:
        yield transport


def to_http_exception(exc: Exception) -> HTTPException:
    """
    ValidationError → 400, UpstreamError → upstream status (502 for non-error
    statuses), anything else → 500.
    """
    if isinstance(exc, ValidationError):
        detail = ErrorDetail(kind="validation", message=exc.message)
        return HTTPException(status_code=exc.status_code, detail=detail.model_dump(exclude_none=True))
    if isinstance(exc, UpstreamError):
        detail = ErrorDetail(kind="upstream", message=exc.message, status=exc.status)
        return HTTPException(status_code=exc.status_code, detail=detail.model_dump(exclude_none=True))
    detail = ErrorDetail(kind="internal", message="Internal error while processing the request.")
    return HTTPException(status_code=500, detail=detail.model_dump())


def too_large_message(file_name: str, limit_bytes: int) -> str:
    return f"File '{file_name}' too large. Max {limit_bytes // 1024 // 1024}MB."


def payload_too_large(file_name: str, limit_bytes: int) -> HTTPException:
    detail = ErrorDetail(kind="validation", message=too_large_message(file_name, limit_bytes))
    return HTTPException(status_code=413, detail=detail.model_dump(exclude_none=True))
