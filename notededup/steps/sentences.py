"""
Sentence-level deduplication phase.

Every sentence of every surviving note is visited in chronological order
(source sequence_index, then note id, then sentence position). A sentence
whose combined similarity to an already kept sentence reaches
threshold_sentence is dropped; the earlier one stays. Surviving content is
never reordered.

A note that loses some sentences is rebuilt from the ones it kept (one per
line). A note that loses all of them is removed and its provenance moves to
the note owning the first sentence it repeated.

Inputs:
- state.notes (near-dedup output)

Outputs:
- state.notes with repeated sentences removed.
- state.phase_stats.sentences_removed, state.phase_stats.removed[<phase name>]
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import DedupState, Note, Sentence
from notededup.scoring.similarity import SimilarityScorer


class SentenceIndex:
    """Kept sentences so far, with an exact-text fast path before full scoring."""

    def __init__(self, scorer: SimilarityScorer, threshold: float):
        self.scorer = scorer
        self.threshold = threshold
        self.kept: List[Sentence] = []
        self._by_lowercase: Dict[str, int] = {}

    def find_match(self, text: str) -> Optional[int]:
        view = self.scorer.view(text)
        if view.lowercase and view.lowercase in self._by_lowercase:
            return self._by_lowercase[view.lowercase]
        for idx, kept in enumerate(self.kept):
            if not self.scorer.may_reach(view, kept.text, self.threshold):
                continue
            if self.scorer.combined(view, kept.text) >= self.threshold:
                return idx
        return None

    def add(self, sentence: Sentence) -> None:
        lowercase = self.scorer.view(sentence.text).lowercase
        if lowercase:
            self._by_lowercase.setdefault(lowercase, len(self.kept))
        self.kept.append(sentence)


def unique_sentences(
    sentences: Sequence[Sentence],
    scorer: SimilarityScorer,
    threshold: float,
    check: Optional[Callable[[], None]] = None,
) -> Tuple[List[Sentence], List[Tuple[Sentence, Sentence]]]:
    """
    Greedy first-occurrence filter.
    Returns (kept, dropped) where dropped pairs each removed sentence with the kept one it repeats.
    """
    index = SentenceIndex(scorer, threshold)
    dropped = []
    for sentence in sentences:
        if check is not None:
            check()
        match = index.find_match(sentence.text)
        if match is None:
            index.add(sentence)
        else:
            dropped.append((sentence, index.kept[match]))
    return index.kept, dropped


def note_sentences(note: Note, scorer: SimilarityScorer) -> List[Sentence]:
    return [
        Sentence(source_note_id=note.id, position=pos, sequence_index=note.sequence_index, text=text)
        for pos, text in enumerate(scorer.view(note.text).sentences)
    ]


class SentenceDedupStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        threshold = self.settings.threshold_sentence
        ordered = sorted(state.notes, key=lambda n: (n.sequence_index, n.id))

        sentences: List[Sentence] = []
        for note in ordered:
            sentences.extend(note_sentences(note, self.similarity))
        logger.info(
            f"[{self.__class__.__name__}] Comparing {len(sentences)} sentences (threshold={threshold})..."
        )

        kept, dropped = unique_sentences(
            sentences, self.similarity, threshold, check=lambda: self.check_deadline(state)
        )
        if not dropped:
            return state

        kept_by_note: Dict[int, List[str]] = {}
        for s in kept:
            kept_by_note.setdefault(s.source_note_id, []).append(s.text)
        # emptied note id -> note owning the first sentence it repeated
        absorbed_by: Dict[int, int] = {}
        for removed, original in dropped:
            if removed.source_note_id not in kept_by_note:
                absorbed_by.setdefault(removed.source_note_id, original.source_note_id)

        by_id = {n.id: n for n in state.notes}
        dropped_ids = set(absorbed_by)
        absorbed: Dict[int, List[Note]] = {}
        for note_id, owner in absorbed_by.items():
            absorbed.setdefault(owner, []).append(by_id[note_id])

        changed = {s.source_note_id for s, _ in dropped}
        survivors = []
        for note in state.notes:
            if note.id in dropped_ids:
                continue
            if note.id in changed:
                note = note.model_copy(update={"text": "\n".join(kept_by_note[note.id])})
            if note.id in absorbed:
                note = note.absorbing(absorbed[note.id])
            survivors.append(note)

        state.phase_stats.sentences_removed += len(dropped)
        self.record_removed(state, len(dropped_ids))
        self.log_artifact("Dropped Sentences", [
            {"note_id": s.source_note_id, "position": s.position, "text": s.text,
             "repeats_note": k.source_note_id}
            for s, k in dropped
        ])
        logger.info(
            f"[{self.__class__.__name__}] Dropped {len(dropped)} sentence(s), "
            f"removed {len(dropped_ids)} emptied note(s)"
        )

        state.notes = survivors
        return state
