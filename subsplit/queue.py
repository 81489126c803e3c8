"""
Durable job queue

Two Redis lists per prefix:

- `<prefix>:incoming` receives raw push payloads from the web endpoint (LPUSH)
- `<prefix>:processing` holds the payload currently claimed by the worker

Claiming is a single BRPOPLPUSH so a payload is always on exactly one of the
lists. A worker crash leaves the payload on the processing list for manual
replay; nothing requeues it automatically.
"""
import json
import time
from typing import Any, Dict, Optional, Union

import structlog
from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError

from subsplit.config import RedisConfig

log = structlog.get_logger()

Payload = Union[bytes, str]


class Repository(BaseModel):
    url: str


class PushEvent(BaseModel):
    """
    The subset of a push webhook we care about.
    """

    repository: Repository
    ref: str


def get_incoming_key(prefix: str) -> str:
    return f"{prefix}:incoming"


def get_processing_key(prefix: str) -> str:
    return f"{prefix}:processing"


def get_processed_key(prefix: str) -> str:
    return f"{prefix}:processed"


def get_failures_key(prefix: str) -> str:
    return f"{prefix}:failures"


class JobQueue:
    def __init__(self, redis: Redis, prefix: str, history: bool = False) -> None:
        self.redis = redis
        self.prefix = prefix
        self.history = history

    @property
    def incoming_key(self) -> str:
        return get_incoming_key(self.prefix)

    @property
    def processing_key(self) -> str:
        return get_processing_key(self.prefix)

    async def enqueue(self, payload: Payload) -> bool:
        """
        Push a raw payload onto the incoming list.

        Best-effort: a Redis failure is logged and reported as False.
        """
        try:
            await self.redis.lpush(self.incoming_key, payload)
        except RedisError:
            log.exception("failed to queue payload", key=self.incoming_key)
            return False
        return True

    async def claim(self) -> Optional[bytes]:
        """
        Block until a payload is available and move it to the processing list.
        """
        return await self.redis.brpoplpush(
            self.incoming_key, self.processing_key, timeout=0
        )

    async def resolve(
        self,
        payload: Payload,
        *,
        failed: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Remove one occurrence of `payload` from the processing list.

        Removing a payload that is no longer there is a no-op.
        """
        await self.redis.lrem(self.processing_key, 1, payload)
        if self.history:
            await self.record(payload, failed=failed, details=details)

    async def record(
        self,
        payload: Payload,
        *,
        failed: bool,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        entry = dict(details or {}, payload=payload, processed_at=time.time())
        key = get_failures_key(self.prefix) if failed else get_processed_key(self.prefix)
        await self.redis.rpush(key, json.dumps(entry))


def create_queue(cfg: RedisConfig) -> JobQueue:
    redis = Redis(
        host=cfg.hostname,
        port=cfg.port,
        password=cfg.password or None,
        db=cfg.db,
    )
    return JobQueue(redis, prefix=cfg.prefix, history=cfg.history)
