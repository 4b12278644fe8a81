"""
Text normalization phase.

Builds the cached NormalizedText view (clean text, comparison form, words,
sentences, concepts) of every ingested note and the initial priority of each
note. Later phases read from the same cache, so each text is normalized once
per run.

Inputs:
- state.notes from ingestion.

Outputs:
- state.priorities: note id -> priority score.
- Notes themselves are unchanged.
"""

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import DedupState


class NormalizeStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        logger.info(f"[{self.__class__.__name__}] Normalizing {len(state.notes)} notes...")
        summary = []
        for note in state.notes:
            self.check_deadline(state)
            view = self.similarity.view(note.text)
            priority = self.priority_of(state, note)
            summary.append({
                "note_id": note.id,
                "role": note.source_role.value,
                "words": len(view.words),
                "sentences": len(view.sentences),
                "concepts": sorted(f"{c}:{t}" for c, t in view.concepts),
                "priority": round(priority, 2),
            })

        self.log_artifact("Normalized Notes", summary)
        return state
