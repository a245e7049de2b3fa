"""Fallback extractor for output no framework-specific extractor recognizes."""

import re

from workspace_test_runner.extractors.base import SummaryCounts, TextSummaryExtractor

COUNT_WORD = re.compile(
    r"\b(?P<count>\d+)\s+(?P<word>passed|passing|failed|failing|skipped|pending)\b",
    re.IGNORECASE,
)
KINDS = {
    "passed": "passed",
    "passing": "passed",
    "failed": "failed",
    "failing": "failed",
    "skipped": "skipped",
    "pending": "skipped",
}


class GenericExtractor(TextSummaryExtractor):
    """Reads ``N passed`` / ``N failed`` / ``N skipped`` wherever they appear.

    When a kind is mentioned several times the last mention wins.
    """

    name = "generic"

    def extract(self, text: str) -> SummaryCounts | None:
        """Counts from any mentions; ``None`` when no kind is mentioned."""
        counts: dict[str, int] = {}
        for match in COUNT_WORD.finditer(text):
            counts[KINDS[match["word"].lower()]] = int(match["count"])
        if not counts:
            return None

        return SummaryCounts(
            passed=counts.get("passed", 0),
            failed=counts.get("failed", 0),
            skipped=counts.get("skipped", 0),
        )
