"""Coverage percentage extraction from Istanbul and coverage.py text reports."""

import re

from workspace_test_runner.extractors.base import last_match

# Istanbul text reporter: "All files |   85.5 |   70 |  90 |  86.1 |"
ISTANBUL_ALL_FILES = re.compile(
    r"^\s*All files\s*\|\s*(?P<percent>\d+(?:\.\d+)?)\s*\|", re.MULTILINE
)
# coverage.py / pytest-cov: "TOTAL   120   12   90%"
COVERAGE_PY_TOTAL = re.compile(
    r"^TOTAL\s.*?(?P<percent>\d+(?:\.\d+)?)%\s*$", re.MULTILINE
)


def extract_coverage(text: str) -> float | None:
    """Return the overall statement coverage percentage, if the output has one."""
    for pattern in (ISTANBUL_ALL_FILES, COVERAGE_PY_TOTAL):
        if (match := last_match(pattern, text)) is not None:
            return float(match["percent"])
    return None
