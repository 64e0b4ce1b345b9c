"""Email sender tests with a mocked HTTP transport."""

import json

import httpx
import pytest

from shortener.mailer import HttpEmailSender, LoggingEmailSender

API_URL = "https://mail.example/v1/send"


def make_sender(handler) -> HttpEmailSender:
    return HttpEmailSender(API_URL, "key-123", "noreply@sho.rt", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_sender_posts_message() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "msg-1"})

    assert await make_sender(handler).send("ada@example.com", "Hello", "Body") is True

    request = seen[0]
    assert str(request.url) == API_URL
    assert request.headers["Authorization"] == "Bearer key-123"
    assert json.loads(request.content) == {
        "from": "noreply@sho.rt",
        "to": "ada@example.com",
        "subject": "Hello",
        "text": "Body",
    }


@pytest.mark.asyncio
async def test_http_sender_reports_error_status() -> None:
    sender = make_sender(lambda request: httpx.Response(422, text="bad recipient"))
    assert await sender.send("ada@example.com", "Hello", "Body") is False


@pytest.mark.asyncio
async def test_http_sender_reports_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await make_sender(handler).send("ada@example.com", "Hello", "Body") is False


@pytest.mark.asyncio
async def test_logging_sender_keeps_outbox() -> None:
    sender = LoggingEmailSender()
    assert await sender.send("ada@example.com", "Hello", "Body") is True
    assert sender.outbox == [("ada@example.com", "Hello", "Body")]
