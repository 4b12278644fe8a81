import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from loguru import logger

from notededup.core.errors import PhaseFailure, PhaseTimeout
from notededup.core.logging import PipelineObserver
from notededup.core.models import DedupState, Note
from notededup.core.settings import DedupSettings
from notededup.scoring.priority import PriorityScorer
from notededup.scoring.similarity import SimilarityScorer
from notededup.text.normalizer import count_entities
from notededup.text.temporal import count_temporal_markers


class PipelineStep(ABC):
    def __init__(self, step_config: Dict[str, Any]):
        self.config = step_config
        self.step_name = self.config.get("name", self.__class__.__name__)
        self.debug = self.config.get("debug", False)

        self._settings: Optional[DedupSettings] = None
        self._similarity: Optional[SimilarityScorer] = None
        self._priority: Optional[PriorityScorer] = None

        # This will be injected by the Orchestrator
        self.observer: Optional[PipelineObserver] = None

    def bind(
        self,
        settings: DedupSettings,
        similarity: Optional[SimilarityScorer] = None,
        priority: Optional[PriorityScorer] = None,
    ) -> "PipelineStep":
        self._settings = settings
        self._similarity = similarity
        self._priority = priority
        return self

    @property
    def settings(self) -> DedupSettings:
        if self._settings is None:
            self._settings = DedupSettings()
        return self._settings

    @property
    def similarity(self) -> SimilarityScorer:
        if self._similarity is None:
            self._similarity = SimilarityScorer(
                weights=self.settings.weights,
                remove_boilerplate=self.settings.remove_boilerplate,
            )
        return self._similarity

    @property
    def priority(self) -> PriorityScorer:
        if self._priority is None:
            self._priority = PriorityScorer(
                entity_counter=count_entities,
                temporal_counter=count_temporal_markers,
            )
        return self._priority

    def priority_of(self, state: DedupState, note: Note) -> float:
        value = self.priority.value(note)
        state.priorities[note.id] = value
        return value

    def check_deadline(self, state: DedupState) -> None:
        """Call inside long loops; raises PhaseTimeout once the run deadline has passed."""
        if state.deadline is not None and time.monotonic() > state.deadline:
            raise PhaseTimeout(self.step_name)

    def run(self, state: DedupState) -> DedupState:
        """
        The standard execution wrapper.
        Handles timing, logging events, stats tracking and fail-closed recovery:
        execute() works on a deep copy, so a failing phase leaves its input untouched.
        DO NOT OVERRIDE. Override execute() instead.
        """
        start_time = time.time()
        notes_before = len(state.notes)

        # 1. Notify Start
        if self.observer:
            self.observer.on_step_start(self.step_name, self.config, 0)

        # 2. Execute Logic
        status = "ok"
        try:
            self.check_deadline(state)
            new_state = self.execute(state.model_copy(deep=True))
        except PhaseTimeout as e:
            logger.warning(f"[{self.__class__.__name__}] {e}; keeping results of completed phases")
            new_state = state
            new_state.partial = True
            status = "timeout"
        except Exception as e:
            failure = PhaseFailure(self.step_name, e)
            logger.opt(exception=e).error(f"[{self.__class__.__name__}] {failure}; passing input through")
            new_state = state
            new_state.phase_stats.errors.append(failure.to_record())
            status = "failed"

        # 3. Calculate Stats
        duration = time.time() - start_time
        new_state.phase_stats.durations[self.step_name] = duration

        # 4. Notify End
        if self.observer:
            state_json = new_state.model_dump_json(indent=2)
            self.observer.on_step_end(self.step_name, duration, status, state_json, 0)

        # 5. Record internal execution stats (for the final summary table)
        new_state.execution_log.append({
            "step": self.step_name,
            "duration": duration,
            "notes_before": notes_before,
            "notes_after": len(new_state.notes),
            "status": status,
        })

        return new_state

    def record_removed(self, state: DedupState, count: int) -> None:
        state.phase_stats.removed[self.step_name] = state.phase_stats.removed.get(self.step_name, 0) + count

    def log_artifact(self, label: str, data: Any):
        """
        Call this inside your execute() method to log intermediate data.
        """
        if self.observer:
            self.observer.on_artifact(label, data, depth=0)

    @abstractmethod
    def execute(self, state: DedupState) -> DedupState:
        pass
