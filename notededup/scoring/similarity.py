"""
Similarity Scorer.

Three independent signals between two text spans, combined with fixed weights:
- jaccard:      word-set overlap
- levenshtein:  1 - edit_distance / max_len, on the lowercase comparison form
- semantic:     jaccard over category-qualified medical concepts

Every signal is symmetric, so score(a, b) == score(b, a) component-wise.
Malformed input is coerced to empty text; score() never raises.
"""

import math
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Union

from loguru import logger
from rapidfuzz.distance import Levenshtein

from notededup.core.models import NormalizedText, SimilarityScore
from notededup.core.settings import SimilarityWeights
from notededup.text.cleaning import coerce_text
from notededup.text.normalizer import normalize

ConceptLookup = Callable[[str], Iterable[Tuple[str, str]]]
TextLike = Union[str, NormalizedText, None]


def jaccard(a: Iterable[Any], b: Iterable[Any]) -> float:
    a, b = set(a), set(b)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def levenshtein_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    d = Levenshtein.distance(a, b)
    return min(1.0, max(0.0, 1.0 - d / longest))


class SimilarityScorer:
    def __init__(
        self,
        weights: Optional[SimilarityWeights] = None,
        concept_lookup: Optional[ConceptLookup] = None,
        remove_boilerplate: bool = True,
        cache: Optional[Dict[str, NormalizedText]] = None,
    ):
        self.weights = weights or SimilarityWeights()
        self.concept_lookup = concept_lookup
        self.remove_boilerplate = remove_boilerplate
        self.cache = cache if cache is not None else {}

    def view(self, text: TextLike) -> NormalizedText:
        if isinstance(text, NormalizedText):
            return text
        text = coerce_text(text)
        cached = self.cache.get(text)
        if cached is None:
            cached = normalize(text, remove_boilerplate=self.remove_boilerplate)
            self.cache[text] = cached
        return cached

    def concepts(self, view: NormalizedText) -> FrozenSet[Tuple[str, str]]:
        if self.concept_lookup is None:
            return view.concepts
        try:
            return frozenset(self.concept_lookup(view.clean))
        except Exception as e:
            logger.warning(f"[SimilarityScorer] concept lookup failed, treating as no concepts: {e}")
            return frozenset()

    def identical(self, a: TextLike, b: TextLike) -> bool:
        """Same non-blank raw text, or same non-empty comparison form."""
        if not isinstance(a, NormalizedText) and not isinstance(b, NormalizedText):
            ra, rb = coerce_text(a), coerce_text(b)
            if ra.strip() and ra == rb:
                return True
        va, vb = self.view(a), self.view(b)
        return bool(va.lowercase) and va.lowercase == vb.lowercase

    def score(self, a: TextLike, b: TextLike) -> SimilarityScore:
        if self.identical(a, b):
            return SimilarityScore(jaccard=1.0, levenshtein=1.0, semantic=1.0, combined=1.0)

        va, vb = self.view(a), self.view(b)
        j = jaccard(va.words, vb.words)
        lev = levenshtein_similarity(va.lowercase, vb.lowercase)
        sem = jaccard(self.concepts(va), self.concepts(vb))
        return SimilarityScore(jaccard=j, levenshtein=lev, semantic=sem, combined=self._combine(j, lev, sem))

    def combined(self, a: TextLike, b: TextLike) -> float:
        return self.score(a, b).combined

    def _combine(self, j: float, lev: float, sem: float) -> float:
        w = self.weights
        total = math.fsum((w.jaccard * j, w.levenshtein * lev, w.semantic * sem))
        return min(1.0, max(0.0, total))

    def upper_bound(self, a: TextLike, b: TextLike) -> float:
        """
        Cheap ceiling on score(a, b).combined, from sizes alone.

        Jaccard cannot exceed min/max of the word-set sizes, and the edit
        similarity cannot exceed min/max of the string lengths. Used to skip
        pairs that can never reach a threshold; it never changes an outcome.
        """
        if self.identical(a, b):
            return 1.0
        va, vb = self.view(a), self.view(b)

        wa, wb = set(va.words), set(vb.words)
        j_max = min(len(wa), len(wb)) / max(len(wa), len(wb)) if (wa or wb) else 0.0
        la, lb = len(va.lowercase), len(vb.lowercase)
        l_max = min(la, lb) / max(la, lb) if max(la, lb) else 1.0
        ca, cb = self.concepts(va), self.concepts(vb)
        s_max = 1.0 if (ca or cb) else 0.0
        return self._combine(j_max, l_max, s_max)

    def may_reach(self, a: TextLike, b: TextLike, threshold: float) -> bool:
        # small slack so float rounding in the bound never prunes a real match
        return self.upper_bound(a, b) + 1e-9 >= threshold


def similarity(a: Any, b: Any, weights: Optional[SimilarityWeights] = None) -> SimilarityScore:
    """One-off comparison with default settings."""
    return SimilarityScorer(weights=weights).score(a, b)
