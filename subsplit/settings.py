from typing import Optional

from starlette.config import Config

config = Config(".env")

LOGGING_LEVEL: str = config("LOGGING_LEVEL", default="INFO")
SENTRY_DSN: Optional[str] = config("SENTRY_DSN", default=None)
# used when no config path is passed on the command line
SUBSPLIT_CONFIG: Optional[str] = config("SUBSPLIT_CONFIG", default=None)
WORKER_ENABLED: bool = config("WORKER_ENABLED", cast=bool, default=True)
