"""Capability shared by every test-framework output extractor."""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import ClassVar

COUNT_PATTERN = re.compile(r"(\d+)\s+([a-z]+)", re.IGNORECASE)


@dataclass(frozen=True, kw_only=True)
class SummaryCounts:
    """Counts read from a framework's summary, before normalization."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int | None = None
    duration: float | None = None

    @property
    def computed_total(self) -> int:
        """Reported total, or the sum of the counts when none was reported."""
        if self.total is not None:
            return self.total
        return self.passed + self.failed + self.skipped


class TextSummaryExtractor(ABC):
    """Extracts pass/fail/skip counts and duration from test output.

    Subclasses recognize a single framework's summary format and return
    ``None`` for output they do not recognize, so callers can try the next one.
    """

    name: ClassVar[str]

    @abstractmethod
    def extract(self, text: str) -> SummaryCounts | None:
        """Read the summary from ANSI-free output, or ``None`` if not recognized."""


def tally(body: str, aliases: Mapping[str, str]) -> dict[str, int]:
    """Sum ``<n> <word>`` pairs, mapping each word to a count kind.

    Words missing from ``aliases`` (warnings, deselected, ...) are ignored.
    """
    counts: dict[str, int] = {}
    for number, word in COUNT_PATTERN.findall(body):
        if (kind := aliases.get(word.lower())) is not None:
            counts[kind] = counts.get(kind, 0) + int(number)
    return counts


def to_seconds(value: str, unit: str) -> float:
    """Convert a duration in ``ms``, ``s`` or ``m`` to seconds."""
    factor = {"ms": 0.001, "s": 1.0, "m": 60.0}[unit]
    return float(value) * factor


def last_match(pattern: re.Pattern[str], text: str) -> re.Match[str] | None:
    """Summaries come last, so the final match wins over earlier echoes."""
    match: re.Match[str] | None = None
    for match in pattern.finditer(text):
        pass
    return match


def counts_from(
    counts: Mapping[str, int],
    *,
    total: int | None = None,
    duration: float | None = None,
) -> SummaryCounts:
    """Build counts from a {kind: count} mapping as returned by ``tally``."""
    return SummaryCounts(
        passed=counts.get("passed", 0),
        failed=counts.get("failed", 0),
        skipped=counts.get("skipped", 0),
        total=total,
        duration=duration,
    )


def first_recognized(
    extractors: Iterable[TextSummaryExtractor], text: str
) -> tuple[TextSummaryExtractor, SummaryCounts] | None:
    """Return the first extractor that recognizes ``text``, with its counts."""
    for extractor in extractors:
        if (counts := extractor.extract(text)) is not None:
            return extractor, counts
    return None
