"""
Text Normalizer.

normalize() turns raw note text into the immutable NormalizedText view that
every other component compares. Pure: same input, same output, no state.
"""

from typing import Any, FrozenSet, Tuple

from notededup.core.models import NormalizedText
from notededup.text.cleaning import clean_text, coerce_text, normalize_for_comparison, split_sentences
from notededup.text.lexicon import lookup_concepts
from notededup.text.temporal import temporal_concepts

EMPTY = NormalizedText()


def extract_concepts(text: Any) -> FrozenSet[Tuple[str, str]]:
    """Category-qualified concept tokens found in `text` (lexicon + temporal)."""
    words = normalize_for_comparison(text).split()
    return frozenset(lookup_concepts(words)) | temporal_concepts(coerce_text(text))


def count_entities(text: Any) -> int:
    """Number of distinct non-temporal concepts; the default entity counter."""
    return sum(1 for category, _ in extract_concepts(text) if category != "temporal")


def normalize(text: Any, remove_boilerplate: bool = True) -> NormalizedText:
    text = coerce_text(text)
    if not text.strip():
        return EMPTY

    clean = clean_text(text, remove_boilerplate=remove_boilerplate)
    lowercase = normalize_for_comparison(clean)
    return NormalizedText(
        clean=clean,
        lowercase=lowercase,
        words=tuple(lowercase.split()),
        sentences=tuple(split_sentences(clean)),
        concepts=extract_concepts(clean),
    )
