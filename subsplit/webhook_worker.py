"""
Webhook worker

1. claims a push payload from the Redis queue (moving it to the processing list)
2. checks the payload is a push to the configured repository for a branch or tag
3. runs the subtree split for the configured split set
4. removes the payload from the processing list

Jobs are handled one at a time. The next payload is only claimed once the
previous one is resolved, so two splits never share a workspace.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from subsplit.config import AppConfig
from subsplit.notify import Notifier
from subsplit.queue import JobQueue, Payload, PushEvent
from subsplit.refs import classify
from subsplit.split import Runner, execute_split_set, run_shell

log = structlog.get_logger()


class JobStatus(str, Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    SKIPPED = "skipped"


class JobResult(BaseModel):
    status: JobStatus
    reason: Optional[str] = None
    ref: Optional[str] = None
    duration: float = 0.0


def skip_job(start: float, reason: str, error: Optional[Exception] = None, **kw: Any) -> JobResult:
    duration = time.monotonic() - start
    if error is not None:
        log.error("skipping job", reason=reason, error=str(error), duration=duration, **kw)
    else:
        log.info("skipping job", reason=reason, duration=duration, **kw)
    return JobResult(status=JobStatus.SKIPPED, reason=reason, duration=duration)


async def handle_push(
    payload: Payload,
    *,
    config: AppConfig,
    notifier: Notifier,
    run: Runner = run_shell,
) -> JobResult:
    start = time.monotonic()
    try:
        event = PushEvent.model_validate_json(payload)
    except ValidationError as e:
        return skip_job(start, "decode error", error=e)

    if event.repository.url != config.url:
        return skip_job(start, "unsupported repository", repository=event.repository.url)

    instruction = classify(event.ref)
    if instruction is None:
        return skip_job(start, "unrecognized reference", ref=event.ref)

    notifier.notify(f"Started: splitting modules for {instruction.describe()}")
    published = await execute_split_set(
        config.working_directory,
        config.source_url,
        config.splits,
        instruction,
        parallel=config.parallel,
        run=run,
    )
    duration = time.monotonic() - start
    if published:
        msg = f"Finished: splitting modules. It took {duration:.1f}s"
        log.info(msg, ref=event.ref, duration=duration)
    else:
        msg = f"Failed: splitting modules for {instruction.describe()}. It took {duration:.1f}s"
        log.warning(msg, ref=event.ref, duration=duration)
    notifier.notify(msg)
    return JobResult(
        status=JobStatus.EXECUTED if published else JobStatus.FAILED,
        ref=event.ref,
        duration=duration,
    )


async def process_job(
    payload: Payload,
    *,
    queue: JobQueue,
    config: AppConfig,
    notifier: Notifier,
    run: Runner = run_shell,
) -> JobResult:
    """
    Handle one claimed payload and resolve it exactly once, whatever happened.
    """
    try:
        result = await handle_push(payload, config=config, notifier=notifier, run=run)
    except Exception as e:
        log.exception("unexpected error while processing job")
        result = JobResult(status=JobStatus.FAILED, reason=f"unexpected error: {e}")

    try:
        await queue.resolve(
            payload,
            failed=result.status is not JobStatus.EXECUTED,
            details=result.model_dump(mode="json"),
        )
    except RedisError:
        log.exception("failed to remove job from processing list")
    return result


async def process_jobs(
    *,
    queue: JobQueue,
    config: AppConfig,
    notifier: Notifier,
    run: Runner = run_shell,
    max_jobs: Optional[int] = None,
) -> None:
    """
    Claim and process jobs forever (or until `max_jobs` have been processed).

    Claim errors are retried straight away; nothing was claimed so nothing is
    lost.
    """
    processed = 0
    while max_jobs is None or processed < max_jobs:
        log.info("waiting for a new push to split")
        try:
            payload = await queue.claim()
        except RedisError as e:
            log.error("error while waiting for a message, retrying", error=str(e))
            # yield to the web server between attempts
            await asyncio.sleep(0)
            continue
        if payload is None:
            continue
        log.info("processing start")
        await process_job(payload, queue=queue, config=config, notifier=notifier, run=run)
        processed += 1
