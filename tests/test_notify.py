import json
from typing import List

import httpx
import pytest

from subsplit.config import SlackIdentity
from subsplit.notify import Notifier


@pytest.mark.asyncio
async def test_disabled_without_url() -> None:
    notifier = Notifier("")
    assert notifier.enabled is False
    assert notifier.notify("hello") is None


@pytest.mark.asyncio
async def test_posts_message() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="ok")

    notifier = Notifier(
        "https://hooks.example.com/services/x",
        SlackIdentity(channel="#builds", username="splitter", icon_emoji=":scissors:"),
        transport=httpx.MockTransport(handler),
    )
    notifier.notify("Started: splitting modules for branch main")
    await notifier.drain()

    [request] = requests
    assert request.method == "POST"
    assert str(request.url) == "https://hooks.example.com/services/x"
    assert json.loads(request.content) == {
        "channel": "#builds",
        "username": "splitter",
        "text": "Started: splitting modules for branch main",
        "icon_emoji": ":scissors:",
    }


def test_default_identity() -> None:
    payload = Notifier("https://hooks.example.com").payload("hi")
    assert payload == {
        "channel": "#asgardcmscom",
        "username": "buildbot",
        "text": "hi",
        "icon_emoji": ":ghost:",
    }


@pytest.mark.asyncio
async def test_delivery_failure_is_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    notifier = Notifier("https://hooks.example.com", transport=httpx.MockTransport(handler))
    task = notifier.notify("hello")
    assert task is not None
    await notifier.drain()
    assert task.exception() is None


@pytest.mark.asyncio
async def test_connection_failure_is_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    notifier = Notifier("https://hooks.example.com", transport=httpx.MockTransport(handler))
    notifier.notify("hello")
    await notifier.drain()
