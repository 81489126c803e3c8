"""
Static JSON configuration, loaded once at startup.

The file path is the first command line argument, then the SUBSPLIT_CONFIG
setting, then ./config.json.
"""
from pathlib import Path
from typing import List, Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from subsplit import settings
from subsplit.errors import ConfigError

log = structlog.get_logger()

DEFAULT_REDIS_PORT = 6379


class SlackIdentity(BaseModel):
    channel: str = "#asgardcmscom"
    username: str = "buildbot"
    icon_emoji: str = ":ghost:"


class RedisConfig(BaseModel):
    # host[:port]
    host: str = "localhost"
    password: str = ""
    db: int = 0
    prefix: str = "subsplit"
    # record resolved jobs on <prefix>:processed and <prefix>:failures
    history: bool = False

    @field_validator("host")
    @classmethod
    def port_is_numeric(cls, v: str) -> str:
        _, sep, port = v.partition(":")
        if sep and not port.isdigit():
            raise ValueError(f"invalid redis port in {v!r}")
        return v

    @property
    def hostname(self) -> str:
        return self.host.partition(":")[0] or "localhost"

    @property
    def port(self) -> int:
        port = self.host.partition(":")[2]
        return int(port) if port else DEFAULT_REDIS_PORT


class HTTPConfig(BaseModel):
    port: int = 8080
    route: str = "/"

    @field_validator("route")
    @classmethod
    def route_is_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            return "/" + v
        return v


class AppConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    working_directory: str = Field(alias="working-directory")
    # pushes must come from this repository
    url: str
    # cloned by `git subsplit init`, defaults to `url`
    repository_url: Optional[str] = Field(default=None, alias="repository-url")
    splits: List[str] = Field(min_length=1)
    slack_url: str = ""
    slack: SlackIdentity = SlackIdentity()
    parallel: int = Field(default=1, ge=1)
    redis: RedisConfig = RedisConfig()
    http: HTTPConfig = HTTPConfig()

    @property
    def source_url(self) -> str:
        return self.repository_url or self.url


def config_path(args: Sequence[str], default: Optional[str] = None) -> Path:
    if len(args) == 2:
        return Path(args[1])
    if default:
        return Path(default)
    return Path.cwd() / "config.json"


def load_config(args: Sequence[str]) -> AppConfig:
    path = config_path(args, default=settings.SUBSPLIT_CONFIG)
    log.info("looking for config", path=str(path))
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigError(f"Unable to open {path}: {e}") from e
    try:
        return AppConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"Unable to load config {path}: {e}") from e
