"""Unit tests for the event webhook client"""

import asyncio
import httpx
from unittest.mock import AsyncMock, patch
from installment_gateway.infrastructure.clients.webhook import EventWebhookClient

EVENT = {"event": "PAYMENT_RECORDED", "plan_id": "p-1", "installment_number": 2}


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_disabled_client_sends_nothing(mock_post: AsyncMock):
    client = EventWebhookClient(webhook_url="")

    asyncio.run(client.send_event(EVENT))

    assert client.enabled is False
    mock_post.assert_not_called()


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_delivers_event_once_on_success(mock_post: AsyncMock):
    request = httpx.Request("POST", "http://events.test/hook")
    mock_post.return_value = httpx.Response(202, request=request)
    client = EventWebhookClient(webhook_url="http://events.test/hook")

    asyncio.run(client.send_event(EVENT))

    mock_post.assert_called_once_with("http://events.test/hook", json=EVENT)


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_gives_up_after_max_retries_without_raising(mock_post: AsyncMock):
    mock_post.side_effect = httpx.ConnectError("connection refused")
    client = EventWebhookClient(webhook_url="http://events.test/hook")
    client.max_retries = 3
    client.backoff_base = 0

    asyncio.run(client.send_event(EVENT))

    assert mock_post.call_count == 3


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_retries_on_error_status(mock_post: AsyncMock):
    request = httpx.Request("POST", "http://events.test/hook")
    mock_post.side_effect = [
        httpx.Response(503, request=request),
        httpx.Response(200, request=request),
    ]
    client = EventWebhookClient(webhook_url="http://events.test/hook")
    client.backoff_base = 0

    asyncio.run(client.send_event(EVENT))

    assert mock_post.call_count == 2
