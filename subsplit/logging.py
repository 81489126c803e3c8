import logging
import sys
from typing import Any, Dict, Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration

_METHOD_LEVELS = {
    "critical": logging.CRITICAL,
    "exception": logging.ERROR,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class SentryProcessor:
    """
    Forward structlog events at or above `level` to Sentry as messages.

    Event keys other than the message are attached as extras.
    """

    def __init__(self, level: int = logging.WARNING) -> None:
        self.level = level

    def __call__(
        self, logger: Any, method_name: str, event_dict: Dict[str, Any]
    ) -> Dict[str, Any]:
        level = _METHOD_LEVELS.get(method_name, logging.NOTSET)
        if level >= self.level:
            extras = {k: repr(v) for k, v in event_dict.items() if k != "event"}
            sentry_sdk.capture_message(
                str(event_dict.get("event")),
                level=logging.getLevelName(level).lower(),
                extras=extras,
            )
        return event_dict


def configure_logging(level: str, sentry_dsn: Optional[str] = None) -> None:
    # for info on logging formats see: https://docs.python.org/3/library/logging.html#logrecord-attributes
    logging.basicConfig(
        stream=sys.stdout,
        level=level,
        format="%(levelname)s %(name)s:%(filename)s:%(lineno)d %(message)s",
    )
    # sentry is a no-op without a dsn
    sentry_sdk.init(
        dsn=sentry_dsn,
        send_default_pii=True,
        integrations=[LoggingIntegration(level=None, event_level=None)],
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            SentryProcessor(level=logging.WARNING),
            structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
