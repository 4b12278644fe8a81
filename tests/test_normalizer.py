from notededup.text.cleaning import clean_text, normalize_for_comparison, split_sentences
from notededup.text.lexicon import LEXICON_VERSION, lookup_concepts
from notededup.text.normalizer import count_entities, extract_concepts, normalize
from notededup.text.temporal import count_temporal_markers, temporal_references


def test_abbreviations_expand_for_comparison():
    assert normalize_for_comparison("Pt developed vasospasm POD#3.") == "patient developed vasospasm pod 3"
    assert normalize_for_comparison("s/p craniotomy") == "status post craniotomy"
    assert normalize_for_comparison("POD3 f/u") == "pod 3 follow up"


def test_pt_case_distinguishes_patient_from_therapy():
    assert normalize_for_comparison("Pt seen.") == "patient seen"
    assert normalize_for_comparison("Ambulating with PT.") == "ambulating with physical therapy"


def test_boilerplate_lines_removed():
    raw = (
        "NEUROSURGERY PROGRESS NOTE\n"
        "Date: 10/12/2024\n"
        "MRN: 1234567\n"
        "Patient stable overnight.\n"
        "Electronically signed by Dr. Jones"
    )
    assert clean_text(raw) == "Patient stable overnight."
    assert "MRN: 1234567" in clean_text(raw, remove_boilerplate=False)


def test_clean_text_collapses_whitespace_and_folds_unicode():
    assert clean_text("  Patient\t\tstable  —  afebrile \r\n\r\n next ") == "Patient stable - afebrile\nnext"


def test_split_sentences_respects_abbreviations_and_lines():
    text = "Seen by Dr. Smith this morning. Plan: repeat CT, e.g. if worse.\nFamily updated"
    assert split_sentences(text) == [
        "Seen by Dr. Smith this morning.",
        "Plan: repeat CT, e.g. if worse.",
        "Family updated",
    ]


def test_normalize_builds_all_views():
    view = normalize("Patient developed vasospasm on POD 3.")
    assert view.lowercase == "patient developed vasospasm on pod 3"
    assert view.words == ("patient", "developed", "vasospasm", "on", "pod", "3")
    assert view.sentences == ("Patient developed vasospasm on POD 3.",)
    assert ("pathologies", "vasospasm") in view.concepts
    assert ("temporal", "pod 3") in view.concepts


def test_normalize_never_raises_on_bad_input():
    for bad in (None, 42, "", "   ", ["text"], {"text": "x"}):
        assert normalize(bad).is_empty


def test_synonyms_map_to_canonical_concepts():
    concepts = extract_concepts("Keppra started after angiogram showed ACOM aneurysm")
    assert ("medications", "levetiracetam") in concepts
    assert ("imaging", "angiography") in concepts
    assert ("anatomy", "acom") in concepts
    assert ("pathologies", "aneurysm") in concepts


def test_concepts_are_category_qualified():
    found = lookup_concepts(["new", "seizure"])
    assert ("pathologies", "seizure") in found
    assert ("findings", "seizure") in found


def test_longest_match_consumes_span():
    found = lookup_concepts("coil embolization of the aneurysm".split())
    assert ("procedures", "aneurysm coiling") in found
    assert ("procedures", "embolization") not in found


def test_count_entities_ignores_temporal_concepts():
    assert count_entities("POD 3: patient afebrile, tolerating diet.") == 0
    assert count_entities("Nimodipine continued for vasospasm prophylaxis") == 2


def test_temporal_references_and_markers():
    assert temporal_references("POD#3, seen 10/12/24") == {("pod", "3"), ("date", "10/12/2024")}
    assert count_temporal_markers("POD 3. Yesterday febrile. Today afebrile.") == 3
    assert temporal_references(None) == frozenset()


def test_lexicon_is_versioned():
    assert LEXICON_VERSION.count(".") == 2
