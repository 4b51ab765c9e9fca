"""
Shared base for API models.

Every model that crosses the HTTP or CLI boundary serializes with camelCase
aliases (`sessionId`, `documentId`, `rawBody`, ...) and still accepts the
Python field names on input.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(BaseModel):
    """Structured error body returned under `detail`."""
    kind: str                                          # "validation" | "upstream" | "internal"
    message: str
    status: Optional[int] = None                        # upstream status, when known
