import itertools

import pytest
from pydantic import ValidationError

from notededup.core.settings import SimilarityWeights
from notededup.scoring.similarity import SimilarityScorer, jaccard, levenshtein_similarity, similarity

from conftest import SCENARIO_B, SCENARIO_C, SCENARIO_D

SAMPLES = [
    *SCENARIO_B,
    *SCENARIO_C,
    *SCENARIO_D,
    "s/p coiling of ACOM aneurysm, TCDs today without vasospasm.",
    "CT head stable. Keppra continued.",
    "",
    "   ",
    None,
    12345,
]


def test_jaccard_edge_cases():
    assert jaccard([], []) == 0.0
    assert jaccard(["a"], ["a"]) == 1.0
    assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)


def test_levenshtein_edge_cases():
    assert levenshtein_similarity("", "") == 1.0
    assert levenshtein_similarity("abc", "") == 0.0
    assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


@pytest.mark.parametrize("a,b", list(itertools.combinations(SAMPLES, 2)))
def test_symmetry_and_range(scorer, a, b):
    ab, ba = scorer.score(a, b), scorer.score(b, a)
    assert ab == ba
    for value in (ab.jaccard, ab.levenshtein, ab.semantic, ab.combined):
        assert 0.0 <= value <= 1.0


@pytest.mark.parametrize("text", [t for t in SAMPLES if isinstance(t, str) and t.strip()])
def test_identity(scorer, text):
    s = scorer.score(text, text)
    assert s.combined == 1.0
    assert (s.jaccard, s.levenshtein, s.semantic) == (1.0, 1.0, 1.0)


@pytest.mark.parametrize("text", ["MRN: 12345", "Electronically signed by Dr. Smith\nPage 1 of 2"])
def test_identity_of_boilerplate_only_text(scorer, text):
    assert scorer.view(text).is_empty
    s = scorer.score(text, text)
    assert (s.jaccard, s.levenshtein, s.semantic, s.combined) == (1.0, 1.0, 1.0, 1.0)
    assert scorer.upper_bound(text, text) == 1.0
    # different boilerplate is not identical
    assert scorer.combined("MRN: 12345", "MRN: 99999") < 1.0


def test_empty_texts(scorer):
    s = scorer.score("", None)
    assert s.jaccard == 0.0
    assert s.levenshtein == 1.0
    assert s.semantic == 0.0


def test_abbreviation_variant_is_near_duplicate(scorer):
    s = scorer.score(*SCENARIO_B)
    assert s.jaccard == pytest.approx(5 / 6)
    assert s.levenshtein == pytest.approx(1 - 3 / 36)
    assert s.semantic == 1.0
    assert s.combined == pytest.approx(0.4 * 5 / 6 + 0.2 * (1 - 3 / 36) + 0.4)
    assert s.combined >= 0.85


def test_complementary_pair_falls_in_mid_band(scorer):
    s = scorer.score(*SCENARIO_C)
    assert s.jaccard == pytest.approx(2 / 12)
    assert s.semantic == 1.0
    assert 0.30 <= s.combined < 0.60


def test_unrelated_notes_score_low(scorer):
    s = scorer.score(*SCENARIO_D)
    assert s.semantic == 0.0
    assert s.combined < 0.30


def test_combined_is_weighted_sum():
    scorer = SimilarityScorer(weights=SimilarityWeights(jaccard=1.0, levenshtein=0.0, semantic=0.0))
    s = scorer.score(*SCENARIO_C)
    assert s.combined == pytest.approx(s.jaccard)


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError):
        SimilarityWeights(jaccard=0.5, levenshtein=0.5, semantic=0.5)
    with pytest.raises(ValidationError):
        SimilarityWeights(jaccard=1.2, levenshtein=-0.2, semantic=0.0)
    # tolerance of 1e-6
    SimilarityWeights(jaccard=0.4, levenshtein=0.2, semantic=0.4000001)


def test_upper_bound_never_below_score(scorer):
    for a, b in itertools.combinations(SAMPLES, 2):
        assert scorer.upper_bound(a, b) + 1e-9 >= scorer.score(a, b).combined


def test_injected_concept_lookup():
    lookup = lambda text: {("procedures", "x")} if "alpha" in text else set()
    scorer = SimilarityScorer(concept_lookup=lookup)
    assert scorer.score("alpha one", "alpha two").semantic == 1.0
    assert scorer.score("alpha one", "beta two").semantic == 0.0


def test_failing_concept_lookup_does_not_raise():
    def boom(text):
        raise RuntimeError("lexicon unavailable")

    s = SimilarityScorer(concept_lookup=boom).score("alpha one", "alpha two")
    assert s.semantic == 0.0


def test_module_level_helper():
    assert similarity("Patient stable.", "Patient stable.").combined == 1.0
