"""Pytest summary extractor.

Handles the banner form ``==== 1 failed, 5 passed, 2 skipped in 0.12s ====``
and the bare ``-q`` form ``5 passed in 0.12s``. Errors count as failures;
xfailed counts as skipped and xpassed as passed.
"""

import re

from workspace_test_runner.extractors.base import (
    SummaryCounts,
    TextSummaryExtractor,
    counts_from,
    last_match,
    tally,
)

SUMMARY_LINE = re.compile(
    r"^=*\s*(?P<body>no tests ran|\d+ \w+(?:, \d+ \w+)*)"
    r" in (?P<seconds>\d+(?:\.\d+)?)s\b",
    re.MULTILINE,
)
ALIASES = {
    "passed": "passed",
    "xpassed": "passed",
    "failed": "failed",
    "error": "failed",
    "errors": "failed",
    "skipped": "skipped",
    "xfailed": "skipped",
}


class PytestExtractor(TextSummaryExtractor):
    """Reads the ``=== ... in 1.23s ===`` line pytest prints last."""

    name = "pytest"

    def extract(self, text: str) -> SummaryCounts | None:
        """Counts and duration from the last summary line."""
        if (match := last_match(SUMMARY_LINE, text)) is None:
            return None

        return counts_from(
            tally(match["body"], ALIASES), duration=float(match["seconds"])
        )
