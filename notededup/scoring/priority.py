"""
Priority Scorer.

score = len(text)/100 + entities*10 + temporal_markers*5 + role_bonus
        + 15 per distinct operative keyword mentioned in the text

Entity and temporal counts come from injected `text -> int` counters. A
missing counter counts 0; a counter that raises is logged and counts 0.
"""

import re
from typing import Callable, Dict, Optional

from loguru import logger

from notededup.core.models import Note, PriorityScore, SourceRole

Counter = Callable[[str], int]

ROLE_BONUS: Dict[SourceRole, float] = {
    SourceRole.CONSULTANT: 30.0,
    SourceRole.ATTENDING: 20.0,
    SourceRole.OPERATIVE: 15.0,
    SourceRole.RESIDENT: 0.0,
    SourceRole.PT_OT: 0.0,
    SourceRole.UNKNOWN: 0.0,
}

OPERATIVE_MENTION_BONUS = 15.0
OPERATIVE_KEYWORDS = ("operative", "procedure")


class PriorityScorer:
    def __init__(
        self,
        entity_counter: Optional[Counter] = None,
        temporal_counter: Optional[Counter] = None,
    ):
        self.entity_counter = entity_counter
        self.temporal_counter = temporal_counter

    @staticmethod
    def _count(counter: Optional[Counter], text: str, label: str) -> int:
        if counter is None:
            return 0
        try:
            value = int(counter(text))
        except Exception as e:
            logger.warning(f"[PriorityScorer] {label} counter failed, counting 0: {e}")
            return 0
        return max(0, value)

    @staticmethod
    def operative_mentions(text: str) -> int:
        lowered = text.lower()
        return sum(1 for kw in OPERATIVE_KEYWORDS if re.search(rf"\b{kw}\b", lowered))

    def value(self, note: Note) -> float:
        text = note.text or ""
        entities = self._count(self.entity_counter, text, "entity")
        temporal = self._count(self.temporal_counter, text, "temporal")
        return (
            len(text) / 100.0
            + entities * 10.0
            + temporal * 5.0
            + ROLE_BONUS.get(note.source_role, 0.0)
            + self.operative_mentions(text) * OPERATIVE_MENTION_BONUS
        )

    def score(self, note: Note) -> PriorityScore:
        return PriorityScore(note_id=note.id, score=self.value(note))
