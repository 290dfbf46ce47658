import asyncio
import json

import httpx

from appointment_engine.infrastructure.messaging.whatsapp_messaging import WhatsAppMessaging
from appointment_engine.infrastructure.messaging.zapi_client import ZApiClient


def _messaging(handler, requests: list[httpx.Request]) -> WhatsAppMessaging:
    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = ZApiClient(
        instance_id="inst",
        token="tok",
        base_url="https://zapi.test/",
        client=httpx.AsyncClient(transport=httpx.MockTransport(recording)),
    )
    return WhatsAppMessaging(client=client)


def test_send_posts_text_message():
    requests: list[httpx.Request] = []
    messaging = _messaging(lambda r: httpx.Response(200, json={"messageId": "m1"}), requests)

    result = asyncio.run(messaging.send("5511999990001", "Hello"))

    assert result.success
    assert str(requests[0].url) == "https://zapi.test/instances/inst/token/tok/send-text"
    assert json.loads(requests[0].content) == {"phone": "5511999990001", "message": "Hello"}


def test_gateway_rejection_is_a_failed_result():
    messaging = _messaging(lambda r: httpx.Response(401, json={"error": "bad token"}), [])

    result = asyncio.run(messaging.send("5511999990001", "Hello"))

    assert not result.success
    assert result.error == "WhatsApp API error: 401"


def test_transport_error_is_a_failed_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    result = asyncio.run(_messaging(handler, []).send("5511999990001", "Hello"))

    assert not result.success
    assert result.error == "timed out"


def test_empty_recipient_is_not_sent():
    requests: list[httpx.Request] = []

    result = asyncio.run(_messaging(lambda r: httpx.Response(200), requests).send("", "Hello"))

    assert not result.success
    assert requests == []
