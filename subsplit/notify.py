import asyncio
from typing import Any, Dict, Optional, Set

import httpx
import structlog

from subsplit.config import SlackIdentity

log = structlog.get_logger()

NOTIFY_TIMEOUT_SECONDS = 10.0


class Notifier:
    """
    Best-effort chat notifications.

    Messages are posted from background tasks; delivery failures are logged
    and otherwise ignored. An empty url disables notifications.
    """

    def __init__(
        self,
        url: str,
        identity: Optional[SlackIdentity] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.identity = identity or SlackIdentity()
        self.transport = transport
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def payload(self, text: str) -> Dict[str, Any]:
        return {
            "channel": self.identity.channel,
            "username": self.identity.username,
            "text": text,
            "icon_emoji": self.identity.icon_emoji,
        }

    async def send(self, text: str) -> None:
        async with httpx.AsyncClient(
            transport=self.transport, timeout=NOTIFY_TIMEOUT_SECONDS
        ) as client:
            res = await client.post(self.url, json=self.payload(text))
            res.raise_for_status()

    async def _send_quietly(self, text: str) -> None:
        try:
            await self.send(text)
        except Exception:
            log.exception("failed to send notification", text=text)

    def notify(self, text: str) -> "Optional[asyncio.Task[None]]":
        if not self.enabled:
            return None
        task = asyncio.create_task(self._send_quietly(text))
        # keep a reference so the task isn't garbage collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """
        Wait for in-flight notifications. Used on shutdown and in tests.
        """
        if self._tasks:
            await asyncio.gather(*self._tasks)
