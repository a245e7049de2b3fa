"""Run test commands as child processes with bounded concurrency."""

import asyncio
import logging
import os
import shlex
import signal
from collections import deque
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass

from workspace_test_runner.cancellation import CancellationSignal
from workspace_test_runner.errors import LaunchError
from workspace_test_runner.models.manifest import RunnerSettings
from workspace_test_runner.models.result import ExecutionStatus, RawExecutionResult
from workspace_test_runner.models.target import ProjectTarget

log = logging.getLogger(__name__)

type ResultCallback = Callable[[RawExecutionResult], Awaitable[None]]


@asynccontextmanager
async def managed_process(
    target: ProjectTarget, kill_grace_period: float
) -> AsyncGenerator[asyncio.subprocess.Process, None]:
    """Start the target's test command and guarantee it is gone on exit.

    The child gets its own session so the whole process group (package
    manager, test runner, workers) can be signalled together.

    Raises:
        LaunchError: If the command cannot be started

    """
    env = {**os.environ, **target.env} if target.env else None
    try:
        process = await asyncio.create_subprocess_exec(
            *target.command,
            cwd=target.path,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise LaunchError(f"Cannot launch '{shlex.join(target.command)}': {e}") from e

    try:
        yield process
    finally:
        await terminate_process(process, kill_grace_period)


async def terminate_process(
    process: asyncio.subprocess.Process, kill_grace_period: float
) -> None:
    """Stop a process group: SIGTERM, then SIGKILL once the grace period ends."""
    if process.returncode is not None:
        # Leader is gone; reap anything it left behind in its group.
        signal_process_group(process, signal.SIGKILL)
        return

    signal_process_group(process, signal.SIGTERM)
    try:
        await asyncio.wait_for(process.wait(), kill_grace_period)
        return
    except TimeoutError:
        log.warning("Process %d ignored SIGTERM, sending SIGKILL", process.pid)

    signal_process_group(process, signal.SIGKILL)
    await process.wait()


def signal_process_group(process: asyncio.subprocess.Process, sig: int) -> None:
    """Send ``sig`` to the process group, ignoring groups that are already gone."""
    with suppress(ProcessLookupError, PermissionError):
        os.killpg(process.pid, sig)


def decode(data: bytes) -> str:
    """Decode captured output as UTF-8, replacing invalid bytes."""
    return data.decode("utf-8", errors="replace")


@dataclass(frozen=True, kw_only=True)
class TestExecutor:
    """Runs targets as child processes, at most ``concurrency`` at a time.

    A single coordinating task admits a new target as soon as any running one
    finishes. Every target submitted yields exactly one result, whatever
    happens to its process.
    """

    __test__ = False

    concurrency: int = 1
    timeout: float = 600.0
    retries: int = 0
    kill_grace_period: float = 5.0

    def __post_init__(self) -> None:
        """Reject a window smaller than one target."""
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")

    @classmethod
    def from_settings(cls, settings: RunnerSettings) -> "TestExecutor":
        """Create an executor from the workspace settings."""
        return cls(
            concurrency=settings.concurrency,
            timeout=settings.timeout,
            retries=settings.retries,
            kill_grace_period=settings.kill_grace_period,
        )

    async def execute(
        self,
        targets: Sequence[ProjectTarget],
        cancellation: CancellationSignal | None = None,
        on_result: ResultCallback | None = None,
    ) -> Sequence[RawExecutionResult]:
        """Run every target and collect one result per target.

        Args:
            targets: Targets in submission order
            cancellation: Signal that stops admission and kills running targets;
                a signal that is already set cancels every target
            on_result: Awaited with each result, in completion order, by a
                separate task so that slow callbacks never hold back admission

        Returns:
            Results in submission order, regardless of completion order

        """
        if cancellation is None:
            cancellation = CancellationSignal()

        queue = deque(enumerate(targets))
        in_flight: dict[
            asyncio.Task[RawExecutionResult], tuple[int, ProjectTarget]
        ] = {}
        results: dict[int, RawExecutionResult] = {}
        deliveries: asyncio.Queue[RawExecutionResult | None] = asyncio.Queue()

        async def deliver(callback: ResultCallback) -> None:
            while (result := await deliveries.get()) is not None:
                await callback(result)

        consumer = (
            asyncio.create_task(deliver(on_result), name="tests:results")
            if on_result is not None
            else None
        )

        def record(result: RawExecutionResult) -> None:
            results[result.index] = result
            if consumer is not None:
                deliveries.put_nowait(result)

        try:
            while queue or in_flight:
                while (
                    queue
                    and len(in_flight) < self.concurrency
                    and not cancellation.is_set()
                ):
                    index, target = queue.popleft()
                    log.info(
                        "Starting %s (%d/%d): %s",
                        target.name,
                        index + 1,
                        len(targets),
                        shlex.join(target.command),
                    )
                    task = asyncio.create_task(
                        self.run_target(target, index, cancellation),
                        name=f"tests:{target.name}",
                    )
                    in_flight[task] = (index, target)

                if cancellation.is_set():
                    while queue:
                        index, target = queue.popleft()
                        record(
                            RawExecutionResult(
                                target=target,
                                index=index,
                                status="cancelled",
                                attempts=0,
                                message="Run cancelled before the target started",
                            )
                        )

                if not in_flight:
                    continue

                done, _ = await asyncio.wait(
                    set(in_flight), return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=lambda t: in_flight[t][0]):
                    index, target = in_flight.pop(task)
                    record(self._task_result(task, target, index))

            if consumer is not None:
                deliveries.put_nowait(None)
                await consumer
        finally:
            pending = [*in_flight]
            if consumer is not None and not consumer.done():
                pending.append(consumer)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return [results[index] for index in range(len(targets))]

    def _task_result(
        self,
        task: asyncio.Task[RawExecutionResult],
        target: ProjectTarget,
        index: int,
    ) -> RawExecutionResult:
        """Unwrap a finished task, turning unexpected errors into a result."""
        if (exc := task.exception()) is None:
            return task.result()

        log.error("Running %s failed: %s", target.name, exc, exc_info=exc)
        return RawExecutionResult(
            target=target,
            index=index,
            status="launch_failed",
            message=str(exc),
        )

    async def run_target(
        self,
        target: ProjectTarget,
        index: int,
        cancellation: CancellationSignal,
    ) -> RawExecutionResult:
        """Run one target, re-running it while the retry policy allows."""
        attempt = 1
        while True:
            result = await self.run_attempt(target, index, cancellation, attempt)
            if not self.should_retry(result, cancellation):
                return result
            attempt += 1
            log.warning(
                "Retrying %s after %s (attempt %d of %d)",
                target.name,
                result.message or f"exit code {result.exit_code}",
                attempt,
                self.retries + 1,
            )

    def should_retry(
        self, result: RawExecutionResult, cancellation: CancellationSignal
    ) -> bool:
        """Retry timeouts and non-zero exits; never launch failures or cancels."""
        if result.attempts > self.retries or cancellation.is_set():
            return False
        if result.status == "timeout":
            return True
        return result.status == "completed" and result.exit_code != 0

    async def run_attempt(
        self,
        target: ProjectTarget,
        index: int,
        cancellation: CancellationSignal,
        attempt: int = 1,
    ) -> RawExecutionResult:
        """Launch the target once and wait for it under the timeout."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        timeout = target.timeout or self.timeout

        try:
            async with managed_process(target, self.kill_grace_period) as process:
                status, stdout, stderr = await self.wait_for_process(
                    process, timeout, cancellation
                )
        except LaunchError as e:
            log.warning("Launch failed for %s: %s", target.name, e)
            return RawExecutionResult(
                target=target,
                index=index,
                status="launch_failed",
                duration=loop.time() - started,
                attempts=attempt,
                message=str(e),
            )

        duration = loop.time() - started
        message: str | None = None
        if status == "timeout":
            message = f"Timed out after {timeout:g}s"
            log.warning("%s: %s", target.name, message)
        elif status == "cancelled":
            message = cancellation.reason

        exit_code = process.returncode if status == "completed" else None
        log.info(
            "Finished %s: status=%s exit_code=%s duration=%.1fs",
            target.name,
            status,
            exit_code,
            duration,
        )
        return RawExecutionResult(
            target=target,
            index=index,
            status=status,
            exit_code=exit_code,
            stdout=decode(stdout),
            stderr=decode(stderr),
            duration=duration,
            attempts=attempt,
            message=message,
        )

    async def wait_for_process(
        self,
        process: asyncio.subprocess.Process,
        timeout: float,
        cancellation: CancellationSignal,
    ) -> tuple[ExecutionStatus, bytes, bytes]:
        """Wait for exit, the timeout or cancellation, whichever comes first.

        On timeout or cancellation the process group is terminated and the
        output it produced until then is returned.
        """
        communicate = asyncio.ensure_future(process.communicate())
        cancelled = asyncio.ensure_future(cancellation.wait())
        try:
            done, _ = await asyncio.wait(
                {communicate, cancelled},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if communicate in done:
                stdout, stderr = communicate.result()
                return "completed", stdout, stderr

            status: ExecutionStatus = "cancelled" if cancelled in done else "timeout"
            await terminate_process(process, self.kill_grace_period)

            # Pipes close once the group is dead, unless a grandchild escaped it.
            drained, _ = await asyncio.wait(
                {communicate}, timeout=max(self.kill_grace_period, 1.0)
            )
            if communicate in drained:
                stdout, stderr = communicate.result()
                return status, stdout, stderr
            return status, b"", b""
        finally:
            for future in (communicate, cancelled):
                if not future.done():
                    future.cancel()
