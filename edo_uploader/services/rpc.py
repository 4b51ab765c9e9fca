"""
JSON-RPC 2.0 envelope helpers for the Saby API.

Every Saby call is a POST of {"jsonrpc": "2.0", "method": ..., "params": ..., "id": 0};
answers carry either `result` (sometimes `answer`) or an `error` object.
"""
import json
from typing import Any, Optional

from edo_uploader.exceptions import MalformedResponseError

AUTHENTICATE_METHOD = "СБИС.Аутентифицировать"
LIST_OWN_ORGANIZATIONS_METHOD = "СБИС.СписокНашихОрганизаций"
WRITE_DOCUMENT_METHOD = "СБИС.ЗаписатьДокумент"


def rpc_envelope(method: str, params: dict) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": 0,
    }


def parse_json_body(text: str) -> Any:
    """Parses a response body, raising MalformedResponseError (with the raw text) if it is not JSON."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError(f"response is not valid JSON: {exc}", raw_body=text) from exc


def rpc_error_message(body: Any) -> Optional[str]:
    """Message of a JSON-RPC `error` object, None when the body carries no error."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        message = error.get("message") or error.get("details")
        return str(message) if message else json.dumps(error, ensure_ascii=False)
    return str(error)


def rpc_result(body: Any) -> Any:
    """`result` of a JSON-RPC answer, falling back to `answer` used by the auth service."""
    if not isinstance(body, dict):
        return None
    result = body.get("result")
    if result is None:
        result = body.get("answer")
    return result
