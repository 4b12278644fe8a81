from copy import deepcopy

import pytest

from notededup.configs.default_config import DEDUP_PIPELINE_CONFIG
from notededup.core.ingest import ingest_notes
from notededup.scoring.similarity import SimilarityScorer

SCENARIO_B = (
    "Patient developed vasospasm on POD 3.",
    "Pt developed vasospasm POD#3.",
)
SCENARIO_C = (
    "POD 3: patient afebrile, tolerating diet.",
    "POD 3: ambulating with PT, wound clean.",
)
SCENARIO_D = (
    "Craniotomy performed for left frontal tumor resection.",
    "Family meeting held to discuss discharge planning.",
)


@pytest.fixture
def scorer():
    return SimilarityScorer()


@pytest.fixture
def pipeline_config():
    cfg = deepcopy(DEDUP_PIPELINE_CONFIG)
    cfg["run_id"] = "test"
    return cfg


@pytest.fixture
def make_state():
    def _make(*notes):
        return ingest_notes(list(notes))
    return _make
