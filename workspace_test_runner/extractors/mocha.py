"""Mocha spec reporter extractor: ``5 passing (12ms)``, ``1 pending``, ``2 failing``."""

import re

from workspace_test_runner.extractors.base import (
    SummaryCounts,
    TextSummaryExtractor,
    last_match,
    to_seconds,
)

PASSING = re.compile(
    r"^\s*(?P<count>\d+) passing"
    r"(?: \((?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s|m)\))?\s*$",
    re.MULTILINE,
)
PENDING = re.compile(r"^\s*(?P<count>\d+) pending\s*$", re.MULTILINE)
FAILING = re.compile(r"^\s*(?P<count>\d+) failing\s*$", re.MULTILINE)


class MochaExtractor(TextSummaryExtractor):
    """Reads Mocha's ``passing`` / ``failing`` / ``pending`` lines."""

    name = "mocha"

    def extract(self, text: str) -> SummaryCounts | None:
        """Counts from the final report; pending tests count as skipped."""
        # Mocha always prints a passing line, even "0 passing".
        if (passing := last_match(PASSING, text)) is None:
            return None

        pending = last_match(PENDING, text)
        failing = last_match(FAILING, text)
        return SummaryCounts(
            passed=int(passing["count"]),
            failed=int(failing["count"]) if failing else 0,
            skipped=int(pending["count"]) if pending else 0,
            duration=to_seconds(passing["value"], passing["unit"])
            if passing["value"]
            else None,
        )
