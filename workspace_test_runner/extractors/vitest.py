"""Vitest summary extractor.

Vitest reports counts separated by pipes with the total in parentheses::

     Test Files  1 failed | 2 passed (3)
          Tests  1 failed | 5 passed | 2 skipped (8)
       Duration  1.23s (transform 20ms, setup 0ms, collect 40ms, tests 9ms)
"""

import re

from workspace_test_runner.extractors.base import (
    SummaryCounts,
    TextSummaryExtractor,
    counts_from,
    last_match,
    tally,
    to_seconds,
)

TESTS_LINE = re.compile(
    r"^\s*Tests\s+(?P<body>\d.*?)\s+\((?P<total>\d+)\)\s*$", re.MULTILINE
)
DURATION_LINE = re.compile(
    r"^\s*Duration\s+(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m)\b", re.MULTILINE
)
ALIASES = {
    "passed": "passed",
    "failed": "failed",
    "skipped": "skipped",
    "todo": "skipped",
}


class VitestExtractor(TextSummaryExtractor):
    """Reads the ``Tests`` and ``Duration`` lines of a Vitest run."""

    name = "vitest"

    def extract(self, text: str) -> SummaryCounts | None:
        """Counts from the last ``Tests`` line."""
        if (match := last_match(TESTS_LINE, text)) is None:
            return None

        duration = last_match(DURATION_LINE, text)
        return counts_from(
            tally(match["body"], ALIASES),
            total=int(match["total"]),
            duration=to_seconds(duration["value"], duration["unit"])
            if duration
            else None,
        )
