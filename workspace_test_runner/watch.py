"""Re-run tests whenever files in the workspace change."""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path

from workspace_test_runner.cancellation import CancellationSignal

log = logging.getLogger(__name__)

IGNORED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        ".venv",
        "__pycache__",
        "build",
        "coverage",
        "dist",
        "node_modules",
        "venv",
    }
)

type Snapshot = Mapping[str, int]


def snapshot(root: Path) -> Snapshot:
    """Modification times of every file under ``root``, by relative path."""
    mtimes: dict[str, int] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in IGNORED_DIRS]
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            try:
                mtimes[os.path.relpath(path, root)] = os.stat(path).st_mtime_ns
            except FileNotFoundError:
                continue  # deleted while walking
    return mtimes


def changed_paths(before: Snapshot, after: Snapshot) -> set[str]:
    """Paths added, removed or modified between two snapshots."""
    return {
        path
        for path in before.keys() | after.keys()
        if before.get(path) != after.get(path)
    }


async def watch(
    root: Path,
    run_once: Callable[[], Awaitable[object]],
    cancellation: CancellationSignal,
    interval: float = 2.0,
    max_runs: int | None = None,
) -> int:
    """Run once, then again after every change, until cancelled.

    The snapshot is taken after each run so files written by the tests
    themselves do not trigger another run.

    Args:
        root: Directory whose files are watched
        run_once: Coroutine function performing one run
        cancellation: Signal that ends watching
        interval: Seconds between snapshots
        max_runs: Stop after this many runs; ``None`` watches until cancelled

    Returns:
        Number of runs performed

    """
    runs = 0
    while not cancellation.is_set():
        await run_once()
        runs += 1
        if max_runs is not None and runs >= max_runs:
            break

        previous = await asyncio.to_thread(snapshot, root)
        log.info("Watching %s for changes (Ctrl+C to stop)", root)
        while not cancellation.is_set():
            if await wait_cancelled(cancellation, interval):
                break
            current = await asyncio.to_thread(snapshot, root)
            if changes := changed_paths(previous, current):
                log.info(
                    "Detected %d changed file(s), e.g. %s",
                    len(changes),
                    min(changes),
                )
                break
    return runs


async def wait_cancelled(cancellation: CancellationSignal, timeout: float) -> bool:
    """Sleep for ``timeout`` seconds, returning early (True) when cancelled."""
    try:
        await asyncio.wait_for(cancellation.wait(), timeout)
    except TimeoutError:
        return False
    return True
