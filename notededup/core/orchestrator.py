import io
import time
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from loguru import logger
# Rich is still used for the pretty terminal table
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from notededup.core.factory import StepFactory
from notededup.core.ingest import ingest_notes
from notededup.core.logging import PipelineLogger
from notededup.core.models import DedupState, DeduplicationResult
from notededup.core.settings import build_settings
from notededup.core.validator import validate_pipeline_config
from notededup.scoring.priority import PriorityScorer
from notededup.scoring.similarity import SimilarityScorer
from notededup.steps.chronology import chronological
from notededup.text.normalizer import count_entities
from notededup.text.temporal import count_temporal_markers

STATUS_STYLE = {"ok": "green", "failed": "bold red", "timeout": "yellow", "skipped": "dim"}


class PipelineOrchestrator:
    """
    Builds the phases of a declarative pipeline dict once, then runs them on
    note lists. All configuration problems surface here as ConfigError;
    run() always returns a DeduplicationResult.
    """

    def __init__(
        self,
        config: Dict,
        similarity: Optional[SimilarityScorer] = None,
        priority: Optional[PriorityScorer] = None,
    ):
        self.config = config
        self.name = config.get("name", "Deduplication")
        self.run_id = config.get("run_id") or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.debug = config.get("debug", False)
        self.show_summary = config.get("show_summary", False)

        # 1. Initialize the Logger Service
        self.logger = PipelineLogger(self.run_id, debug=self.debug, log_dir=config.get("log_dir"))

        # 2. Validate definition and settings (fatal to construction only)
        validate_pipeline_config(config)
        self.settings = build_settings(config.get("settings"))

        self.similarity = similarity or SimilarityScorer(
            weights=self.settings.weights,
            remove_boilerplate=self.settings.remove_boilerplate,
        )
        self.priority = priority or PriorityScorer(
            entity_counter=count_entities,
            temporal_counter=count_temporal_markers,
        )

        # 3. Build Steps
        self.steps = []
        for step_def in config.get("steps", []):
            step_settings = dict(step_def.get("settings") or {})
            step_settings.setdefault("name", step_def["type"])
            step_settings.setdefault("debug", self.debug)

            step = StepFactory.create({"type": step_def["type"], "settings": step_settings})
            step.bind(self.settings, similarity=self.similarity, priority=self.priority)

            # INJECT LOGGER
            step.observer = self.logger

            self.steps.append(step)

    def run(self, notes: Optional[Iterable[Any]]) -> DeduplicationResult:
        self.logger.on_run_start(self.name, self.run_id)
        try:
            return self._run(notes)
        finally:
            self.logger.close()

    def _run(self, notes: Optional[Iterable[Any]]) -> DeduplicationResult:
        total_start = time.time()
        # normalized views live for one run only
        self.similarity.cache.clear()

        state = ingest_notes(notes)
        if self.settings.timeout_seconds is not None:
            state.deadline = time.monotonic() + self.settings.timeout_seconds

        for step in self.steps:
            if not state.partial and state.deadline is not None and time.monotonic() > state.deadline:
                logger.warning(f"Deduplication deadline exceeded before '{step.step_name}'")
                state.partial = True
            if state.partial:
                state.execution_log.append({
                    "step": step.step_name, "duration": 0.0,
                    "notes_before": len(state.notes), "notes_after": len(state.notes),
                    "status": "skipped",
                })
                continue
            step.observer = self.logger
            state = step.run(state)

        total_duration = time.time() - total_start
        self.logger.on_run_end(total_duration)

        if self.debug or self.show_summary:
            self._print_and_log_summary(state, total_duration)

        return self._build_result(state)

    def _build_result(self, state: DedupState) -> DeduplicationResult:
        notes = list(state.notes)
        if self.settings.preserve_chronology:
            notes = chronological(notes)

        input_count = state.input_count
        output_count = len(notes)
        if input_count:
            reduction = round((input_count - output_count) / input_count * 100.0, 2)
        else:
            reduction = 0.0

        return DeduplicationResult(
            notes=notes,
            input_count=input_count,
            output_count=output_count,
            reduction_percent=min(100.0, max(0.0, reduction)),
            cluster_count=len(state.clusters),
            phase_stats=state.phase_stats,
            partial=state.partial,
            skipped_inputs=state.skipped_inputs,
        )

    def _print_and_log_summary(self, state: DedupState, total_duration: float):
        """
        Generates the Rich table, prints it to stdout, and logs it to file.
        """
        table = Table(
            title=f"EXECUTION SUMMARY: {self.name}",
            title_justify="left",
            box=box.ROUNDED,
            show_header=True
        )
        table.add_column("Phase", justify="left", no_wrap=True)
        table.add_column("Duration", justify="right")
        table.add_column("Notes In", justify="right")
        table.add_column("Notes Out", justify="right")
        table.add_column("Status", justify="left")

        for entry in state.execution_log:
            status = entry.get("status", "ok")
            table.add_row(
                str(entry.get("step", "Unknown")),
                f"{float(entry.get('duration', 0.0)):.4f}s",
                str(entry.get("notes_before", "-")),
                str(entry.get("notes_after", "-")),
                Text(status, style=STATUS_STYLE.get(status, "")),
            )

        table.add_section()
        table.add_row("TOTAL", f"{total_duration:.4f}s", str(state.input_count), str(len(state.notes)),
                      "partial" if state.partial else "")

        # 1. Print to Terminal
        term_console = Console()
        term_console.print(table)

        # 2. Save to Log File (via Logger Service)
        string_buffer = io.StringIO()
        file_console = Console(file=string_buffer, no_color=True, width=150)
        file_console.print(table)

        self.logger.log_summary(string_buffer.getvalue())
