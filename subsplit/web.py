"""
An http server to accept push webhooks and add them to a Redis queue.

The body is queued verbatim; the worker validates it. Queueing failures are
logged but never reported to the sender.
"""
from typing import Optional

import structlog
from fastapi import Depends, FastAPI
from sentry_sdk.integrations.asgi import SentryAsgiMiddleware
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response

from subsplit.config import AppConfig
from subsplit.errors import HTTPBadRequest
from subsplit.queue import JobQueue, create_queue

log = structlog.get_logger()


def get_queue(request: Request) -> JobQueue:
    """
    Get the job queue for this app
    """
    return request.app.state.queue


async def root() -> Response:
    return Response("OK", media_type="text/plain")


async def push_webhook_event(
    request: Request, queue: JobQueue = Depends(get_queue)
) -> Response:
    """
    Entrypoint for push webhooks.
    """
    try:
        body = await request.body()
    except ClientDisconnect:
        raise HTTPBadRequest("Something went wrong !")

    await queue.enqueue(body)
    return Response("Thanks!", media_type="text/plain")


def create_app(config: AppConfig, queue: Optional[JobQueue] = None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SentryAsgiMiddleware)
    app.state.config = config
    app.state.queue = queue if queue is not None else create_queue(config.redis)
    app.add_api_route("/", root, methods=["GET"])
    app.add_api_route(config.http.route, push_webhook_event, methods=["POST"])
    log.info("webhook route registered", route=config.http.route, port=config.http.port)
    return app
