"""
Static medical concept lexicon used by the semantic similarity signal.

The table is data, not code: category -> canonical concept -> surface forms.
Surface forms are written in *normalized* form (lowercase, no punctuation,
abbreviations already expanded), because lookup runs over the word list
produced by text.cleaning.normalize_for_comparison.

Concept tokens are category-qualified tuples, e.g. ("procedures",
"aneurysm coiling"), so the same word filed under two categories yields two
distinct tokens.

Bump LEXICON_VERSION whenever an entry changes: similarity scores are only
reproducible against the same lexicon version.
"""

from typing import Dict, List, Sequence, Set, Tuple

LEXICON_VERSION = "1.3.0"

CONCEPT_LEXICON: Dict[str, Dict[str, List[str]]] = {
    "procedures": {
        "aneurysm coiling": [
            "coiling", "coil embolization", "endovascular coiling", "aneurysm coiling",
            "coil", "coils", "embolization of aneurysm",
        ],
        "aneurysm clipping": [
            "clipping", "aneurysm clipping", "microsurgical clipping", "surgical clipping",
            "clip ligation",
        ],
        "craniotomy": [
            "craniotomy", "open craniotomy", "pterional craniotomy", "frontal craniotomy",
            "temporal craniotomy", "crani",
        ],
        "craniectomy": ["craniectomy", "decompressive craniectomy", "hemicraniectomy"],
        "evd placement": [
            "evd", "evd placement", "external ventricular drain", "ventriculostomy",
            "ventricular drain",
        ],
        "lumbar drain": ["lumbar drain", "lumbar drainage", "spinal drain"],
        "vp shunt": ["vp shunt", "ventriculoperitoneal shunt", "shunt", "shunt placement"],
        "tumor resection": [
            "resection", "tumor resection", "gross total resection", "gtr",
            "subtotal resection", "debulking",
        ],
        "biopsy": ["biopsy", "brain biopsy", "stereotactic biopsy", "needle biopsy"],
        "cranioplasty": ["cranioplasty", "cranial reconstruction", "bone flap replacement"],
        "embolization": ["embolization", "embolized", "endovascular embolization"],
        "laminectomy": ["laminectomy", "decompressive laminectomy"],
        "spinal fusion": ["fusion", "spinal fusion", "acdf", "posterior fusion"],
    },
    "pathologies": {
        "aneurysm": ["aneurysm", "aneurysmal"],
        "subarachnoid hemorrhage": ["subarachnoid hemorrhage", "sah"],
        "hemorrhage": ["hemorrhage", "bleeding", "rebleed", "rebleeding", "hematoma expansion"],
        "subdural hematoma": ["subdural hematoma", "sdh"],
        "epidural hematoma": ["epidural hematoma", "edh"],
        "tumor": ["tumor", "mass lesion", "neoplasm"],
        "glioblastoma": ["glioblastoma", "gbm"],
        "metastasis": ["metastasis", "metastases", "metastatic disease"],
        "vasospasm": ["vasospasm", "cerebral vasospasm", "spasm", "delayed cerebral ischemia", "dci"],
        "hydrocephalus": [
            "hydrocephalus", "ventriculomegaly", "obstructive hydrocephalus",
            "communicating hydrocephalus",
        ],
        "seizure": ["seizure", "seizures", "convulsion"],
        "infection": ["infection", "meningitis", "ventriculitis", "wound infection"],
        "stroke": ["stroke", "cva", "cerebrovascular accident", "infarct", "infarction"],
        "edema": ["edema", "cerebral edema", "brain swelling", "mass effect"],
        "herniation": ["herniation", "uncal herniation"],
    },
    "imaging": {
        "ct": ["ct", "ct head", "head ct", "noncontrast ct"],
        "cta": ["cta", "ct angiogram", "ct angiography"],
        "mri": ["mri", "mri brain", "brain mri"],
        "angiography": [
            "angiography", "angiogram", "dsa", "cerebral angiography",
            "digital subtraction angiography",
        ],
        "transcranial doppler": ["tcd", "tcds", "transcranial doppler"],
        "eeg": ["eeg", "continuous eeg"],
    },
    "medications": {
        "aspirin": ["aspirin", "asa", "acetylsalicylic acid"],
        "clopidogrel": ["clopidogrel", "plavix"],
        "warfarin": ["warfarin", "coumadin"],
        "apixaban": ["apixaban", "eliquis"],
        "rivaroxaban": ["rivaroxaban", "xarelto"],
        "heparin": ["heparin", "subcutaneous heparin", "sq heparin"],
        "levetiracetam": ["levetiracetam", "keppra"],
        "phenytoin": ["phenytoin", "dilantin", "fosphenytoin"],
        "dexamethasone": ["dexamethasone", "decadron", "dex"],
        "mannitol": ["mannitol", "osmotic therapy"],
        "hypertonic saline": ["hypertonic saline"],
        "nimodipine": ["nimodipine", "nimotop"],
        "labetalol": ["labetalol"],
        "nicardipine": ["nicardipine", "cardene", "nicardipine drip"],
        "pantoprazole": ["pantoprazole", "protonix"],
        "vancomycin": ["vancomycin", "vanc"],
    },
    "anatomy": {
        "frontal": ["frontal", "frontal lobe"],
        "parietal": ["parietal", "parietal lobe"],
        "temporal": ["temporal lobe", "temporal region"],
        "occipital": ["occipital", "occipital lobe"],
        "cerebellum": ["cerebellum", "cerebellar"],
        "brainstem": ["brainstem", "pons", "medulla"],
        "ventricle": ["ventricle", "ventricles", "ventricular system"],
        "acom": ["acom", "anterior communicating artery"],
        "pcom": ["pcom", "posterior communicating artery"],
        "mca": ["mca", "middle cerebral artery"],
        "basilar": ["basilar", "basilar artery"],
        "cervical spine": ["cervical spine", "c spine"],
        "lumbar spine": ["lumbar spine", "l spine"],
    },
    "findings": {
        "deficit": ["deficit", "focal deficit", "neurologic deficit"],
        "weakness": ["weakness", "hemiparesis", "paresis"],
        "numbness": ["numbness", "paresthesia", "paresthesias"],
        "headache": ["headache", "headaches", "ha"],
        "seizure": ["seizure", "seizures", "seizure activity"],
        "confusion": ["confusion", "confused", "altered mental status", "ams"],
        "coma": ["coma", "comatose", "unresponsive"],
        "aphasia": ["aphasia", "aphasic", "word finding difficulty"],
        "fever": ["fever", "febrile", "fevers"],
        "nausea": ["nausea", "vomiting", "emesis"],
    },
}


def _build_index() -> Tuple[Dict[str, List[Tuple[str, str]]], int]:
    index: Dict[str, List[Tuple[str, str]]] = {}
    longest = 1
    for category, concepts in CONCEPT_LEXICON.items():
        for canonical, forms in concepts.items():
            for form in forms:
                entry = (category, canonical)
                bucket = index.setdefault(form, [])
                if entry not in bucket:
                    bucket.append(entry)
                longest = max(longest, len(form.split()))
    return index, longest


# Built once at import; queried via pure lookup only
_KEYWORD_INDEX, _MAX_NGRAM = _build_index()


def lookup_concepts(words: Sequence[str]) -> Set[Tuple[str, str]]:
    """
    Greedy longest-match scan over a normalized word list.
    A matched span is consumed, so "coil embolization" does not also emit
    the bare "embolization" concept.
    """
    found: Set[Tuple[str, str]] = set()
    i = 0
    n = len(words)
    while i < n:
        step = 1
        for size in range(min(_MAX_NGRAM, n - i), 0, -1):
            hits = _KEYWORD_INDEX.get(" ".join(words[i:i + size]))
            if hits:
                found.update(hits)
                step = size
                break
        i += step
    return found


def categories() -> List[str]:
    return list(CONCEPT_LEXICON.keys())
