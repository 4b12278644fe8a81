"""
Output ordering phase.

With preserve_chronology (default) notes are ordered by the earliest
sequence_index among the input notes each one stands for (anchor_index),
then by id. Otherwise the order left by the previous phases is kept.
"""

from typing import List

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import DedupState, Note


def chronological(notes: List[Note]) -> List[Note]:
    return sorted(notes, key=lambda n: (n.anchor_index, n.id))


class ChronologyStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        if not self.settings.preserve_chronology:
            logger.info(f"[{self.__class__.__name__}] preserve_chronology is off, keeping phase order")
            return state

        state.notes = chronological(state.notes)
        return state
