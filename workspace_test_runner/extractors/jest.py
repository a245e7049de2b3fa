"""Jest summary extractor.

Jest ends its output with a block like::

    Test Suites: 1 failed, 3 passed, 4 total
    Tests:       1 failed, 2 skipped, 9 passed, 12 total
    Time:        3.52 s
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

TESTS_LINE = re.compile(r"^Tests:\s+(?P<body>.*\d.*?)\s*$", re.MULTILINE)
TIME_LINE = re.compile(
    r"^Time:\s+(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m)\b", re.MULTILINE
)
ALIASES = {
    "passed": "passed",
    "failed": "failed",
    "skipped": "skipped",
    "todo": "skipped",
    "total": "total",
}


class JestExtractor(TextSummaryExtractor):
    """Reads the ``Tests:`` and ``Time:`` lines of a Jest run."""

    name = "jest"

    def extract(self, text: str) -> SummaryCounts | None:
        """Counts from the last ``Tests:`` line; ``total`` is taken as reported."""
        if (match := last_match(TESTS_LINE, text)) is None:
            return None

        counts = tally(match["body"], ALIASES)
        time = last_match(TIME_LINE, text)
        return counts_from(
            counts,
            total=counts.get("total"),
            duration=to_seconds(time["value"], time["unit"]) if time else None,
        )
