from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Set, Tuple, Union

from notededup.configs.default_config import DEDUP_PIPELINE_CONFIG
from notededup.core.models import DeduplicationResult
from notededup.core.orchestrator import PipelineOrchestrator
from notededup.core.settings import DedupSettings, build_settings, merge_settings
from notededup.scoring.priority import PriorityScorer
from notededup.scoring.similarity import SimilarityScorer
from notededup.text.normalizer import count_entities
from notededup.text.temporal import count_temporal_markers

_DEFAULT = object()


def build_config(
    settings: Union[None, DedupSettings, Mapping[str, Any]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """Default pipeline dict with `settings` merged over the default settings."""
    cfg = deepcopy(DEDUP_PIPELINE_CONFIG)
    if isinstance(settings, DedupSettings):
        cfg["settings"] = settings
    elif settings:
        cfg["settings"] = merge_settings(cfg["settings"], settings)
    cfg.update(overrides)
    return cfg


def deduplicate(
    notes: Optional[Iterable[Any]],
    settings: Union[None, DedupSettings, Mapping[str, Any]] = None,
    entity_counter: Optional[Callable[[str], int]] = _DEFAULT,
    temporal_counter: Optional[Callable[[str], int]] = _DEFAULT,
    concept_lookup: Optional[Callable[[str], Set[Tuple[str, str]]]] = None,
    **config_overrides: Any,
) -> DeduplicationResult:
    """
    Run the default deduplication pipeline on `notes`.

    Counters default to the built-in lexicon/temporal counters; pass None to
    drop a signal (it then counts 0). `concept_lookup` replaces the built-in
    lexicon for the semantic score.
    """
    config = build_config(settings, **config_overrides)
    dedup_settings = build_settings(config.get("settings"))

    priority = PriorityScorer(
        entity_counter=count_entities if entity_counter is _DEFAULT else entity_counter,
        temporal_counter=count_temporal_markers if temporal_counter is _DEFAULT else temporal_counter,
    )
    similarity = SimilarityScorer(
        weights=dedup_settings.weights,
        concept_lookup=concept_lookup,
        remove_boilerplate=dedup_settings.remove_boilerplate,
    )

    orchestrator = PipelineOrchestrator(config, similarity=similarity, priority=priority)
    return orchestrator.run(notes)


def run_deduplication(
    notes: Optional[Iterable[Any]],
    settings: Union[None, DedupSettings, Mapping[str, Any]] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """JSON-ready variant of deduplicate()."""
    return deduplicate(notes, settings=settings, **kwargs).model_dump(mode="json")
