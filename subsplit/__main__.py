"""
Run the webhook endpoint and the split worker in one process.

    python -m subsplit [path/to/config.json]
"""
import asyncio
import sys
from typing import Optional, Sequence

import structlog
import uvicorn

from subsplit import settings
from subsplit.config import AppConfig, load_config
from subsplit.errors import ConfigError
from subsplit.logging import configure_logging
from subsplit.notify import Notifier
from subsplit.queue import create_queue
from subsplit.web import create_app
from subsplit.webhook_worker import process_jobs

log = structlog.get_logger()


async def serve(config: AppConfig) -> None:
    queue = create_queue(config.redis)
    notifier = Notifier(config.slack_url, config.slack)
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(config, queue),
            host="0.0.0.0",
            port=config.http.port,
            log_level=settings.LOGGING_LEVEL.lower(),
        )
    )

    tasks = [asyncio.create_task(server.serve())]
    if settings.WORKER_ENABLED:
        tasks.append(
            asyncio.create_task(
                process_jobs(queue=queue, config=config, notifier=notifier)
            )
        )
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                log.error("service crashed", error=repr(task.exception()))
    finally:
        await notifier.drain()
        await queue.redis.aclose()


def main(args: Optional[Sequence[str]] = None) -> None:
    configure_logging(settings.LOGGING_LEVEL, settings.SENTRY_DSN)
    try:
        config = load_config(sys.argv if args is None else args)
    except ConfigError as e:
        log.error("failed to load config", error=str(e))
        sys.exit(1)

    asyncio.run(serve(config))
    log.error("subsplit stopped")
    sys.exit(1)


if __name__ == "__main__":
    main()
