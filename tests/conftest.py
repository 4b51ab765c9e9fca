"""
Shared fixtures: a fake Saby service behind httpx.MockTransport.
"""
import json
from typing import Callable, List

import httpx
import pytest
from edo_uploader.services.saby_transport import SabyTransport, build_async_client


class FakeSaby:
    """
    Records every request and answers through `handler`.

    The default handler accepts authentication and document writes and
    lists one own organization.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request, dict], httpx.Response] = self.default_handler

    @staticmethod
    def default_handler(request: httpx.Request, body: dict) -> httpx.Response:
        method = body.get("method")
        if method == "СБИС.Аутентифицировать":
            return httpx.Response(200, json={"jsonrpc": "2.0", "result": "session-123456", "id": 0})
        if method == "СБИС.СписокНашихОрганизаций":
            return httpx.Response(200, json={"result": {"НашаОрганизация": [{"ИНН": "5001234567"}]}})
        if method == "СБИС.ЗаписатьДокумент":
            doc_id = body["params"]["Документ"]["Идентификатор"]
            return httpx.Response(200, json={"jsonrpc": "2.0", "result": {"Документ": {"Идентификатор": doc_id}}})
        return httpx.Response(404, text="unknown method")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request, json.loads(request.content))

    def bodies(self, method: str) -> List[dict]:
        return [b for b in (json.loads(r.content) for r in self.requests) if b.get("method") == method]

    def transport(self) -> SabyTransport:
        return SabyTransport(build_async_client(transport=httpx.MockTransport(self)))


@pytest.fixture
def saby() -> FakeSaby:
    return FakeSaby()
