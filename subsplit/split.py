"""
Split executor

Runs `git subsplit` for a set of split targets inside a scratch workspace:

1. init the subsplit metadata (an existing checkout is fine)
2. update it
3. publish every target for the pushed branch or tag

The workspace is removed when the run ends, whatever the outcome.
"""
import asyncio
import shlex
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Sequence, Union

import structlog
from starlette.concurrency import run_in_threadpool

from subsplit.errors import SplitError
from subsplit.refs import SplitInstruction

log = structlog.get_logger()

WORKSPACE_MODE = 0o750

Runner = Callable[[str, Path, str], Awaitable[None]]


def split_identity(splits: Sequence[str]) -> str:
    return " ".join(splits)


def workspace_path(working_dir: Union[str, Path], splits: Sequence[str]) -> Path:
    """
    Scratch directory for a split set.

    Hex encoding of the joined targets, truncated to 32 characters. Identical
    split sets (same targets, same order) always share a workspace.
    """
    digest = split_identity(splits).encode("utf-8").hex()[:32]
    return Path(working_dir) / digest


def publish_command(
    repo_url: str, splits: Sequence[str], instruction: SplitInstruction
) -> str:
    split = split_identity(splits)
    commands = [
        # init fails when the workspace already holds a checkout
        f"(git subsplit init {shlex.quote(repo_url)} || true)",
        "git subsplit update",
        " ".join(
            [
                "git subsplit publish",
                shlex.quote(split),
                shlex.quote(instruction.heads_filter),
                shlex.quote(instruction.tags_filter),
            ]
        ),
    ]
    return " && ".join(commands)


async def run_shell(command: str, cwd: Path, split: str) -> None:
    process = await asyncio.create_subprocess_shell(command, cwd=str(cwd))
    returncode = await process.wait()
    if returncode != 0:
        raise SplitError(split, returncode)


async def execute(
    working_dir: Union[str, Path],
    repo_url: str,
    splits: Sequence[str],
    instruction: SplitInstruction,
    run: Runner = run_shell,
) -> bool:
    """
    Split and publish `splits` for `instruction`.

    Failures are logged and reported through the return value, never raised.
    """
    split = split_identity(splits)
    workspace = workspace_path(working_dir, splits)
    try:
        # a workspace holds a full clone, keep file system work off the event loop
        await run_in_threadpool(
            workspace.mkdir, mode=WORKSPACE_MODE, parents=True, exist_ok=True
        )
        await run(publish_command(repo_url, splits, instruction), workspace, split)
    except (SplitError, OSError) as e:
        log.error("error while splitting", split=split, error=str(e))
        return False
    finally:
        await run_in_threadpool(shutil.rmtree, workspace, ignore_errors=True)
    log.info("split published", split=split, ref=instruction.describe())
    return True


async def execute_split_set(
    working_dir: Union[str, Path],
    repo_url: str,
    splits: Sequence[str],
    instruction: SplitInstruction,
    parallel: int = 1,
    run: Runner = run_shell,
) -> bool:
    """
    Run the split set, either as one combined publish or, when `parallel` is
    above one, as one publish per target with at most `parallel` running at a
    time.

    Targets whose workspaces collide run one after another.
    """
    if parallel <= 1:
        return await execute(working_dir, repo_url, splits, instruction, run=run)

    groups: Dict[Path, List[str]] = {}
    for target in splits:
        groups.setdefault(workspace_path(working_dir, [target]), []).append(target)

    semaphore = asyncio.Semaphore(parallel)

    async def run_group(targets: List[str]) -> bool:
        ok = True
        for target in targets:
            async with semaphore:
                published = await execute(
                    working_dir, repo_url, [target], instruction, run=run
                )
            ok = ok and published
        return ok

    results = await asyncio.gather(*(run_group(targets) for targets in groups.values()))
    return all(results)
