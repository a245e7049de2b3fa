"""CLI entry point for the workspace test runner."""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import AsyncExitStack, contextmanager
from pathlib import Path

from workspace_test_runner.aggregator import ResultAggregator
from workspace_test_runner.cancellation import CancellationSignal
from workspace_test_runner.config_loader import load_settings
from workspace_test_runner.discovery import discover_targets, select_targets
from workspace_test_runner.errors import DiscoveryError
from workspace_test_runner.executor import TestExecutor
from workspace_test_runner.models.manifest import RunnerSettings
from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.models.target import ProjectTarget
from workspace_test_runner.orchestrator import OutcomeListener, TestOrchestrator
from workspace_test_runner.publishers.base import PublishContext, ResultPublisher
from workspace_test_runner.publishers.loading import (
    PublisherNotFoundError,
    build_publisher_config,
    load_publisher_manifest,
)
from workspace_test_runner.reporting import format_output, render_html, render_text
from workspace_test_runner.watch import watch

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130

type ActivePublishers = Sequence[tuple[str, ResultPublisher]]

log = logging.getLogger("workspace_test_runner")


def parse_publisher_specs(
    keys: Sequence[str], configs: Sequence[str]
) -> Sequence[tuple[str, str]]:
    """Pair ``--publisher`` keys with their ``--publisher-config KEY=JSON`` values."""
    by_key: dict[str, str] = {}
    for item in configs:
        key, sep, config_json = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=JSON, got '{item}'")
        by_key[key.strip()] = config_json

    if unknown := sorted(set(by_key) - set(keys)):
        raise ValueError(f"Config given for publisher(s) not enabled: {unknown}")

    return tuple((key, by_key.get(key, "{}")) for key in dict.fromkeys(keys))


def load_runner_settings(
    workspace: Path,
    config_path: Path | None = None,
    **overrides: float | None,
) -> RunnerSettings:
    """Load settings from the workspace and apply command-line overrides."""
    settings = load_settings(workspace, config_path)
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return settings
    return RunnerSettings.model_validate({**settings.model_dump(), **updates})


async def open_publishers(
    stack: AsyncExitStack,
    specs: Sequence[tuple[str, str]],
    environ: Mapping[str, str],
) -> ActivePublishers:
    """Load, configure and open every requested publisher."""
    active: list[tuple[str, ResultPublisher]] = []
    for key, config_json in specs:
        manifest = load_publisher_manifest(key)
        config = build_publisher_config(manifest, config_json, environ)
        publisher = await stack.enter_async_context(manifest.publisher_factory(config))
        log.info("Publishing results with %s", key)
        active.append((key, publisher))
    return active


def log_publish_failures(
    active: ActivePublishers, results: Sequence[object | BaseException]
) -> None:
    """Log each failed publisher; re-raise anything that is not an ``Exception``."""
    for (key, _), result in zip(active, results, strict=True):
        if isinstance(result, Exception):
            log.error("Publisher %s failed: %s", key, result, exc_info=result)
        elif isinstance(result, BaseException):
            raise result


async def publish_summary(
    active: ActivePublishers, summary: RunSummary, context: PublishContext
) -> None:
    """Send the run summary to every publisher concurrently."""
    results = await asyncio.gather(
        *(publisher.publish_run(summary, context) for _, publisher in active),
        return_exceptions=True,
    )
    log_publish_failures(active, results)


def make_listener(active: ActivePublishers, context: PublishContext) -> OutcomeListener:
    """Listener forwarding each target's outcome to every publisher."""

    async def listener(target: ProjectTarget, outcome: TestOutcome) -> None:
        results = await asyncio.gather(
            *(
                publisher.publish_target(target, outcome, context)
                for _, publisher in active
            ),
            return_exceptions=True,
        )
        log_publish_failures(active, results)

    return listener


def write_html_report(path: Path, summary: RunSummary) -> None:
    """Write the HTML report to ``path``; I/O errors are logged."""
    try:
        path.write_text(render_html(summary), encoding="utf-8")
    except OSError as e:
        log.error("Cannot write HTML report to %s: %s", path, e)
        return
    log.info("HTML report written to %s", path)


def exit_code_for(summary: RunSummary) -> int:
    """Map a finished run to the process exit code; cancellation wins."""
    if summary.cancelled:
        return EXIT_CANCELLED
    return EXIT_PASSED if summary.passed else EXIT_FAILED


@contextmanager
def handle_signals(cancellation: CancellationSignal) -> Iterator[None]:
    """Turn SIGINT/SIGTERM into a cancellation of the current run."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancellation.set, f"received {sig.name}")
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def run_pipeline(
    workspace: Path,
    projects: Sequence[str],
    settings: RunnerSettings,
    orchestrator: TestOrchestrator,
    active: ActivePublishers,
    context: PublishContext,
    cancellation: CancellationSignal,
    json_output: bool = False,
    html_path: Path | None = None,
) -> int:
    """Discover, run, report and publish once; return the exit code.

    The cancellation signal is cleared here, before discovery, so a cancel
    that arrives at any later point stops this run.
    """
    cancellation.reset()
    log.info("Discovering projects in %s", workspace)
    try:
        targets = select_targets(discover_targets(workspace, settings), projects)
    except DiscoveryError as e:
        log.error("Discovery failed: %s", e)
        return EXIT_USAGE

    if targets:
        log.info("Projects: %s", ", ".join(target.name for target in targets))
        summary = await orchestrator.run_tests(targets, cancellation)
    else:
        log.info("No projects with tests found")
        summary = ResultAggregator(targets=[]).finalize()

    if json_output:
        print(json.dumps(format_output(summary), indent=2))
    else:
        print(render_text(summary))
    if html_path is not None:
        write_html_report(html_path, summary)

    await publish_summary(active, summary, context)
    return exit_code_for(summary)


async def run(
    workspace: Path,
    projects: Sequence[str] = (),
    *,
    config_path: Path | None = None,
    concurrency: int | None = None,
    timeout: float | None = None,
    retries: int | None = None,
    issue: int | None = None,
    publishers: Sequence[tuple[str, str]] = (),
    per_target_events: bool = False,
    json_output: bool = False,
    html_path: Path | None = None,
    watch_mode: bool = False,
    cancellation: CancellationSignal | None = None,
) -> int:
    """Run tests for the workspace and return the exit code."""
    cancellation = cancellation or CancellationSignal()

    try:
        settings = load_runner_settings(
            workspace,
            config_path,
            concurrency=concurrency,
            timeout=timeout,
            retries=retries,
        )
    except (OSError, ValueError) as e:
        log.error("Cannot load settings: %s", e)
        return EXIT_USAGE

    context = PublishContext(project=workspace.resolve().name, issue=issue)

    async with AsyncExitStack() as stack:
        try:
            active = await open_publishers(stack, publishers, os.environ)
        except (PublisherNotFoundError, ValueError) as e:
            log.error("Cannot configure publisher: %s", e)
            return EXIT_USAGE

        listener = make_listener(active, context) if per_target_events else None
        orchestrator = TestOrchestrator(
            executor=TestExecutor.from_settings(settings),
            listener=listener if active else None,
        )

        async def run_once() -> int:
            return await run_pipeline(
                workspace,
                projects,
                settings,
                orchestrator,
                active,
                context,
                cancellation,
                json_output,
                html_path,
            )

        exit_codes: list[int] = []

        with handle_signals(cancellation):
            if not watch_mode:
                return await run_once()

            async def run_and_record() -> None:
                exit_codes.append(await run_once())

            await watch(
                workspace, run_and_record, cancellation, settings.watch_interval
            )

        if cancellation.is_set() or not exit_codes:
            return EXIT_CANCELLED
        return exit_codes[-1]


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface definition."""
    parser = argparse.ArgumentParser(
        description="Run, aggregate and report tests across workspace projects"
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path.cwd(),
        help="Workspace root containing the projects (default: cwd)",
    )
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--project",
        dest="projects",
        action="append",
        default=[],
        help="Only run this project (repeatable)",
    )
    selection.add_argument(
        "--all",
        action="store_true",
        help="Run every discovered project (the default)",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        nargs="?",
        const=os.cpu_count() or 2,
        default=None,
        metavar="N",
        help="Run up to N projects at once (default without N: CPU count)",
    )
    parser.add_argument("--timeout", type=float, help="Per-project timeout in seconds")
    parser.add_argument("--retries", type=int, help="Re-runs of failing projects")
    parser.add_argument("--config", type=Path, help="Runner settings file")
    parser.add_argument("--issue", type=int, help="Issue to post the summary to")
    parser.add_argument(
        "--publisher",
        action="append",
        default=[],
        help="Publisher key (github-issues, supabase-events), repeatable",
    )
    parser.add_argument(
        "--publisher-config",
        action="append",
        default=[],
        metavar="KEY=JSON",
        help="JSON configuration for a publisher",
    )
    parser.add_argument(
        "--per-target-events",
        action="store_true",
        help="Publish each project's outcome as soon as it completes",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print a JSON report instead of text"
    )
    parser.add_argument(
        "--html", type=Path, metavar="PATH", help="Also write an HTML report to PATH"
    )
    parser.add_argument(
        "--watch", action="store_true", help="Re-run tests when files change"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        publishers = parse_publisher_specs(args.publisher, args.publisher_config)
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run(
            workspace=args.workspace,
            projects=args.projects,
            config_path=args.config,
            concurrency=args.parallel,
            timeout=args.timeout,
            retries=args.retries,
            issue=args.issue,
            publishers=publishers,
            per_target_events=args.per_target_events,
            json_output=args.json,
            html_path=args.html,
            watch_mode=args.watch,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
