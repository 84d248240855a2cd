import asyncio
import json

import httpx
import pytest

from app.core.exceptions import DispatchError
from app.services.waha_service import WahaService


def make_service(handler, api_key="waha-key"):
    return WahaService(
        base_url="http://waha.test/",
        api_key=api_key,
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_send_text_posts_to_gateway():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("X-Api-Key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "true_27820000000@c.us_ABC"})

    result = asyncio.run(make_service(handler).send_text("pizza-session", "+27 82 000 0000", "Hello"))

    assert result == {"id": "true_27820000000@c.us_ABC"}
    assert seen["url"] == "http://waha.test/api/sendText"
    assert seen["api_key"] == "waha-key"
    assert seen["body"] == {"session": "pizza-session", "chatId": "27820000000@c.us", "text": "Hello"}


def test_api_key_header_omitted_when_unset():
    seen = {}

    def handler(request: httpx.Request):
        seen["has_key"] = "X-Api-Key" in request.headers
        return httpx.Response(200, json={})

    asyncio.run(make_service(handler, api_key="").send_text("s", "27820000000@c.us", "Hi"))

    assert seen["has_key"] is False


def test_non_2xx_raises_dispatch_error():
    def handler(request: httpx.Request):
        return httpx.Response(500, text="session not started")

    with pytest.raises(DispatchError) as exc_info:
        asyncio.run(make_service(handler).send_text("s", "27820000000", "Hi"))

    assert exc_info.value.status_code == 502
    assert exc_info.value.details["status_code"] == 500


def test_timeout_raises_dispatch_error():
    def handler(request: httpx.Request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(DispatchError, match="timeout"):
        asyncio.run(make_service(handler).send_text("s", "27820000000", "Hi"))


def test_connection_error_raises_dispatch_error():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DispatchError, match="unreachable"):
        asyncio.run(make_service(handler).send_text("s", "27820000000", "Hi"))
