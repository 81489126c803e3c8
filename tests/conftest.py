from pathlib import Path

import pytest

from subsplit.config import AppConfig
from subsplit.notify import Notifier
from subsplit.queue import JobQueue
from tests.helpers import FakeRedis, RecordingRunner


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def queue(redis: FakeRedis) -> JobQueue:
    return JobQueue(redis, prefix="subsplit")  # type: ignore[arg-type]


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    return tmp_path / "work"


@pytest.fixture
def config(working_dir: Path) -> AppConfig:
    return AppConfig.model_validate(
        {
            "working-directory": str(working_dir),
            "url": "https://x/y.git",
            "splits": ["pkgA", "pkgB"],
            "redis": {"prefix": "subsplit"},
        }
    )


@pytest.fixture
def notifier() -> Notifier:
    return Notifier("")


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()
