"""
Temporal markers in clinical notes.

Absolute references (calendar dates, POD n, HD n) anchor a note to a day of
the stay and are what "same temporal context" compares. Relative markers
(today, yesterday, this morning, n days ago) only count toward priority.
"""

import re
from typing import Any, FrozenSet, List, Tuple

from .cleaning import coerce_text

DATE_RE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})\b")
DAY_RE = re.compile(r"\b(POD|HD)\s*#?\s*(\d+)\b", re.IGNORECASE)
RELATIVE_RE = re.compile(
    r"\b(?:yesterday|today|tonight|this morning|this afternoon|this evening|overnight|"
    r"\d+\s+days?\s+ago)\b",
    re.IGNORECASE,
)


def _normalize_date(month: str, day: str, year: str) -> str:
    if len(year) == 2:
        year = "20" + year
    return f"{int(month)}/{int(day)}/{int(year)}"


def temporal_references(text: Any) -> FrozenSet[Tuple[str, str]]:
    """
    Absolute day references as ("pod", "3"), ("hd", "2"), ("date", "10/12/2024").
    """
    text = coerce_text(text)
    refs = set()
    for kind, num in DAY_RE.findall(text):
        refs.add((kind.lower(), str(int(num))))
    for m, d, y in DATE_RE.findall(text):
        refs.add(("date", _normalize_date(m, d, y)))
    return frozenset(refs)


def extract_temporal_markers(text: Any) -> List[str]:
    """Every marker occurrence, absolute and relative, in reading order."""
    text = coerce_text(text)
    found = []
    for pattern in (DATE_RE, DAY_RE, RELATIVE_RE):
        for match in pattern.finditer(text):
            found.append((match.start(), match.group(0)))
    found.sort()
    return [marker for _, marker in found]


def count_temporal_markers(text: Any) -> int:
    return len(extract_temporal_markers(text))


def temporal_concepts(text: Any) -> FrozenSet[Tuple[str, str]]:
    """References rendered as category-qualified concept tokens ("temporal", "pod 3")."""
    return frozenset(
        ("temporal", f"{kind} {value}" if kind != "date" else value)
        for kind, value in temporal_references(text)
    )
