import asyncio
from collections import defaultdict
from pathlib import Path
from typing import DefaultDict, List, Optional, Tuple, Union

from subsplit.errors import SplitError

Value = Union[bytes, str]


def _b(value: Value) -> bytes:
    return value.encode() if isinstance(value, str) else value


class FakeRedis:
    """
    In-memory stand-in for the Redis list commands the service uses.
    """

    def __init__(self) -> None:
        self.lists: DefaultDict[str, List[bytes]] = defaultdict(list)
        self.ops: List[Tuple[str, str]] = []

    async def lpush(self, key: str, *values: Value) -> int:
        for value in values:
            self.lists[key].insert(0, _b(value))
        self.ops.append(("lpush", key))
        return len(self.lists[key])

    async def rpush(self, key: str, *values: Value) -> int:
        self.lists[key].extend(_b(v) for v in values)
        self.ops.append(("rpush", key))
        return len(self.lists[key])

    async def lrem(self, key: str, count: int, value: Value) -> int:
        self.ops.append(("lrem", key))
        items = self.lists[key]
        target = _b(value)
        removed = 0
        for i, item in enumerate(list(items)):
            if item == target and (count == 0 or removed < abs(count)):
                del items[i - removed]
                removed += 1
        return removed

    async def brpoplpush(self, src: str, dst: str, timeout: int = 0) -> bytes:
        while not self.lists[src]:
            await asyncio.sleep(0.001)
        value = self.lists[src].pop()
        self.lists[dst].insert(0, value)
        self.ops.append(("brpoplpush", src))
        return value


class RecordingRunner:
    """
    Replaces the shell runner. Records each call, whether the workspace
    existed while it ran and its permission bits.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[Tuple[str, Path, str]] = []
        self.workspace_existed: List[bool] = []
        self.workspace_modes: List[Optional[int]] = []

    async def __call__(self, command: str, cwd: Path, split: str) -> None:
        self.calls.append((command, cwd, split))
        self.workspace_existed.append(cwd.is_dir())
        self.workspace_modes.append(cwd.stat().st_mode & 0o777 if cwd.is_dir() else None)
        if self.fail:
            raise SplitError(split, 1)
