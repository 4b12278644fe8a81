import json
import time

import pytest
from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.errors import ConfigError
from notededup.core.factory import StepFactory
from notededup.core.orchestrator import PipelineOrchestrator
from notededup.core.models import SourceRole
from notededup.run import main
from notededup.service import deduplicate, run_deduplication

from conftest import SCENARIO_B, SCENARIO_C, SCENARIO_D

MIXED_CORPUS = [
    {"text": "NEUROSURGERY PROGRESS NOTE\nPatient stable overnight. Neuro exam intact.", "sourceRole": "resident"},
    {"text": "NEUROSURGERY PROGRESS NOTE\nPatient stable overnight. Neuro exam intact.", "sourceRole": "attending"},
    {"text": SCENARIO_B[1]},
    {"text": SCENARIO_B[0], "sourceRole": "attending"},
    {"text": "Neuro exam intact. Keppra continued for seizure prophylaxis."},
    {"text": SCENARIO_D[0], "sourceRole": "Operative Note"},
    {"text": SCENARIO_D[1], "sourceRole": "Neurosurgery Consult"},
]


class ExplodingStep(PipelineStep):
    def execute(self, state):
        state.notes = []
        raise RuntimeError("boom")


class SlowStep(PipelineStep):
    def execute(self, state):
        time.sleep(0.4)
        self.check_deadline(state)
        return state


@pytest.fixture
def custom_steps():
    StepFactory.register("explode", ExplodingStep)
    StepFactory.register("slow", SlowStep)
    yield
    StepFactory.unregister("explode")
    StepFactory.unregister("slow")


def test_scenario_a_exact_duplicates():
    result = deduplicate(["Patient stable overnight.", "Patient stable overnight."])
    assert result.input_count == 2
    assert result.output_count == 1
    assert result.reduction_percent == 50.0
    assert result.phase_stats.removed["exact_dedup"] == 1
    assert result.notes[0].provenance == (0, 1)


def test_scenario_b_near_duplicates():
    result = deduplicate([
        {"text": SCENARIO_B[0], "sourceRole": "attending"},
        {"text": SCENARIO_B[1]},
    ])
    assert result.output_count == 1
    assert result.cluster_count == 1
    assert result.texts == [SCENARIO_B[0]]
    assert result.notes[0].source_role == SourceRole.ATTENDING
    assert result.phase_stats.removed["near_dedup"] == 1


def test_scenario_c_complementary_merge():
    result = deduplicate([
        {"text": SCENARIO_C[0], "sequenceIndex": 0},
        {"text": SCENARIO_C[1], "sequenceIndex": 1},
    ])
    assert result.output_count == 1
    assert result.notes[0].text.splitlines() == list(SCENARIO_C)
    assert result.phase_stats.merged == 1
    assert result.phase_stats.sentences_removed == 0


def test_scenario_d_unrelated_notes_pass_through():
    result = deduplicate(list(SCENARIO_D))
    assert result.texts == list(SCENARIO_D)
    assert result.cluster_count == 2
    assert result.phase_stats.merged == 0
    assert result.reduction_percent == 0.0


def test_idempotence():
    first = deduplicate(MIXED_CORPUS)
    again = deduplicate(first.notes)
    assert again.texts == first.texts
    assert again.reduction_percent == 0.0

    from_json = deduplicate(run_deduplication(MIXED_CORPUS)["notes"])
    assert from_json.texts == first.texts


def test_result_fed_back_keeps_order_when_representative_is_later():
    first = deduplicate([
        {"text": SCENARIO_B[1], "sequenceIndex": 0},
        {"text": "CT head stable, no hemorrhage.", "sequenceIndex": 1},
        {"text": SCENARIO_B[0], "sourceRole": "attending", "sequenceIndex": 2},
    ])
    assert first.texts == [SCENARIO_B[0], "CT head stable, no hemorrhage."]
    assert first.notes[0].sequence_index == 2
    assert first.notes[0].anchor_index == 0

    again = deduplicate(first.notes)
    assert again.texts == first.texts


@pytest.mark.parametrize("notes", [
    [],
    ["Only note."],
    MIXED_CORPUS,
    ["Same."] * 5,
    [None, 3, "Valid note."],
])
def test_reduction_bound(notes):
    result = deduplicate(notes)
    assert 0.0 <= result.reduction_percent <= 100.0
    assert result.output_count <= result.input_count


def test_every_output_note_traces_to_inputs():
    result = deduplicate(MIXED_CORPUS)
    covered = set()
    for note in result.notes:
        assert note.provenance
        covered.update(note.provenance)
    assert covered == set(range(len(MIXED_CORPUS)))


def test_output_follows_earliest_member():
    result = deduplicate(MIXED_CORPUS)
    anchors = [n.anchor_index for n in result.notes]
    assert anchors == sorted(anchors)


def test_invalid_inputs_are_skipped():
    result = deduplicate([None, {"text": 5}, {"text": "   "}, "Valid note."])
    assert result.input_count == 1
    assert result.output_count == 1
    assert len(result.skipped_inputs) == 3
    assert result.reduction_percent == 0.0


def test_empty_input():
    result = deduplicate(None)
    assert result.notes == []
    assert result.reduction_percent == 0.0


def test_failing_phase_passes_input_through(pipeline_config, custom_steps):
    pipeline_config["steps"].insert(2, {"type": "explode"})
    result = PipelineOrchestrator(pipeline_config).run(list(SCENARIO_D))

    assert result.texts == list(SCENARIO_D)
    assert len(result.phase_stats.errors) == 1
    err = result.phase_stats.errors[0]
    assert (err.phase, err.error_type, err.message) == ("explode", "RuntimeError", "boom")


def test_total_phase_failure_still_returns_result(pipeline_config, custom_steps):
    pipeline_config["steps"] = [{"type": "explode"}, {"type": "explode"}]
    result = PipelineOrchestrator(pipeline_config).run(["Same.", "Same."])
    assert result.output_count == 2
    assert result.reduction_percent == 0.0
    assert len(result.phase_stats.errors) == 2


def test_timeout_returns_partial_result(pipeline_config, custom_steps):
    pipeline_config["settings"]["timeoutSeconds"] = 0.2
    pipeline_config["steps"] = [
        {"type": "normalize"},
        {"type": "exact_dedup"},
        {"type": "slow"},
        {"type": "near_dedup"},
    ]
    result = PipelineOrchestrator(pipeline_config).run(["Same.", "Same.", SCENARIO_B[0], SCENARIO_B[1]])

    assert result.partial is True
    # exact dedup completed, near dedup never ran
    assert result.output_count == 3
    assert "near_dedup" not in result.phase_stats.durations


@pytest.mark.parametrize("settings", [
    {"weights": {"jaccard": 0.5, "levenshtein": 0.5, "semantic": 0.5}},
    {"thresholdNear": 1.5},
    {"thresholdSentence": -0.1},
    {"complementaryRange": (0.6, 0.3)},
    {"thresholdNearr": 0.9},
])
def test_invalid_settings_rejected_at_construction(pipeline_config, settings):
    pipeline_config["settings"] = settings
    with pytest.raises(ConfigError):
        PipelineOrchestrator(pipeline_config)


def test_unknown_step_type_rejected(pipeline_config):
    pipeline_config["steps"].append({"type": "does_not_exist"})
    with pytest.raises(ConfigError):
        PipelineOrchestrator(pipeline_config)


def test_snake_case_settings_override_defaults():
    result = deduplicate(list(SCENARIO_B), settings={"threshold_near": 0.95, "threshold_sentence": 0.95})
    assert result.output_count == 2
    assert result.cluster_count == 2


def test_collaborators_can_be_dropped():
    result = deduplicate(
        [{"text": SCENARIO_B[0]}, {"text": SCENARIO_B[1], "sourceRole": "consultant"}],
        entity_counter=None,
        temporal_counter=None,
    )
    assert result.texts == [SCENARIO_B[1]]


def test_run_deduplication_is_json_ready():
    payload = run_deduplication(list(SCENARIO_B))
    assert json.loads(json.dumps(payload))["output_count"] == 1
    assert payload["notes"][0]["source_role"] == "unknown"


def test_debug_run_writes_log_and_summary(pipeline_config, tmp_path):
    pipeline_config.update(debug=True, log_dir=str(tmp_path))
    PipelineOrchestrator(pipeline_config).run(list(SCENARIO_C))

    log_file = tmp_path / "dedup_debug_test.log"
    content = log_file.read_text(encoding="utf-8")
    assert "LAUNCHING DEDUPLICATION" in content
    assert "EXECUTION SUMMARY" in content

    # the run's file sink is detached once the run is over
    logger.debug("after the run")
    assert "after the run" not in log_file.read_text(encoding="utf-8")


def test_host_sinks_survive_a_run(pipeline_config, tmp_path):
    seen = []
    sink_id = logger.add(seen.append, level="INFO")
    try:
        deduplicate(["a b c", "d e f"])
        pipeline_config.update(debug=True, log_dir=str(tmp_path))
        PipelineOrchestrator(pipeline_config).run(["a b c"])
        logger.info("host app message")
    finally:
        logger.remove(sink_id)
    assert any("host app message" in str(message) for message in seen)


def test_cli_writes_result(tmp_path, capsys):
    notes_path = tmp_path / "notes.json"
    out_path = tmp_path / "out.json"
    notes_path.write_text(json.dumps(["Patient stable.", "Patient stable."]), encoding="utf-8")

    assert main([str(notes_path), "--out", str(out_path)]) == 0
    data = json.loads(out_path.read_text(encoding="utf-8"))
    assert data["output_count"] == 1
    assert "FINAL REPORT" in capsys.readouterr().out
