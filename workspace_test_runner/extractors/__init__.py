"""Test-framework output extractors, in the order they are tried."""

from collections.abc import Sequence

from workspace_test_runner.extractors.base import SummaryCounts, TextSummaryExtractor
from workspace_test_runner.extractors.coverage import extract_coverage
from workspace_test_runner.extractors.generic import GenericExtractor
from workspace_test_runner.extractors.jest import JestExtractor
from workspace_test_runner.extractors.mocha import MochaExtractor
from workspace_test_runner.extractors.pytest import PytestExtractor
from workspace_test_runner.extractors.vitest import VitestExtractor

# Most specific formats first; the generic extractor matches almost anything.
EXTRACTORS: Sequence[TextSummaryExtractor] = (
    VitestExtractor(),
    JestExtractor(),
    MochaExtractor(),
    PytestExtractor(),
    GenericExtractor(),
)


def extractors_for(hint: str | None) -> Sequence[TextSummaryExtractor]:
    """Extractors to try: the hinted framework first, then the priority order."""
    preferred = [extractor for extractor in EXTRACTORS if extractor.name == hint]
    return [*preferred, *(e for e in EXTRACTORS if e.name != hint)]


__all__ = [
    "EXTRACTORS",
    "GenericExtractor",
    "JestExtractor",
    "MochaExtractor",
    "PytestExtractor",
    "SummaryCounts",
    "TextSummaryExtractor",
    "VitestExtractor",
    "extract_coverage",
    "extractors_for",
]
