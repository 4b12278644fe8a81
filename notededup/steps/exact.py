"""
Exact-duplicate phase.

Groups notes by a SHA-256 fingerprint of their normalized comparison text and
keeps one representative per group: highest priority, then lowest
sequence_index. The representative takes over the provenance of the group.

Inputs:
- state.notes

Outputs:
- state.notes: one note per fingerprint, in order of first occurrence.
- state.phase_stats.removed[<phase name>]
"""

import hashlib
from typing import Dict, List, Union

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import DedupState, NormalizedText, Note


def fingerprint(view: Union[NormalizedText, str]) -> str:
    text = view.lowercase if isinstance(view, NormalizedText) else view
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ExactDedupStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        logger.info(f"[{self.__class__.__name__}] Fingerprinting {len(state.notes)} notes...")

        groups: Dict[str, List[Note]] = {}
        for note in state.notes:
            self.check_deadline(state)
            groups.setdefault(fingerprint(self.similarity.view(note.text)), []).append(note)

        survivors = []
        for digest, members in groups.items():
            if len(members) == 1:
                survivors.append(members[0])
                continue

            rep = max(
                members,
                key=lambda n: (self.priority_of(state, n), -n.sequence_index, -n.id),
            )
            others = [m for m in members if m.id != rep.id]
            survivors.append(rep.absorbing(others))
            self.log_artifact("Exact Duplicates", {
                "fingerprint": digest[:12],
                "kept": rep.id,
                "dropped": [m.id for m in others],
            })

        removed = len(state.notes) - len(survivors)
        self.record_removed(state, removed)
        logger.info(f"[{self.__class__.__name__}] Removed {removed} exact duplicate(s)")

        state.notes = survivors
        return state
