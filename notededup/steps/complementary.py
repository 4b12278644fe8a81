"""
Complementary merge phase.

Two notes whose combined similarity falls in the half-open band
complementary_range (default [0.30, 0.60)) and that share temporal context
are merged: union of their sentences, with sentence-level dedup re-applied.
Pairs outside the band pass through unmodified.

Same temporal context:
- both notes reference a common date / POD / HD  -> same
- both carry day references, none in common      -> different
- otherwise: neighbours in (anchor_index, id) order among the notes still
  present (gaps in sequenceIndex are ignored)

The merged note keeps the id and sequence_index of the earlier note and the
source role of the higher-priority one. Pairs are scanned greedily in
chronological order and the scan repeats until nothing merges, so running
the phase on its own output changes nothing. Pairs that reach threshold_near
after earlier edits collapse onto the higher-priority note.

Inputs:
- state.notes (sentence-dedup output)
- settings.merge_complementary, settings.complementary_range

Outputs:
- state.notes with merged notes.
- state.phase_stats.merged, state.phase_stats.removed[<phase name>]
"""

from typing import FrozenSet, Sequence, Set

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import DedupState, Note
from notededup.steps.sentences import note_sentences, unique_sentences
from notededup.text.temporal import temporal_references


def chronological_neighbours(notes: Sequence[Note]) -> Set[FrozenSet[int]]:
    """Id pairs that sit next to each other in (anchor_index, id) order."""
    ordered = sorted(notes, key=lambda n: (n.anchor_index, n.id))
    return {frozenset((x.id, y.id)) for x, y in zip(ordered, ordered[1:])}


def same_temporal_context(a: Note, b: Note, neighbours: Set[FrozenSet[int]]) -> bool:
    refs_a, refs_b = temporal_references(a.text), temporal_references(b.text)
    if refs_a & refs_b:
        return True
    if refs_a and refs_b:
        return False
    return frozenset((a.id, b.id)) in neighbours


class ComplementaryMergeStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        low, high = self.settings.complementary_range
        merge_enabled = self.settings.merge_complementary
        notes = sorted(state.notes, key=lambda n: (n.sequence_index, n.id))
        logger.info(
            f"[{self.__class__.__name__}] Scanning {len(notes)} notes for band [{low}, {high}) "
            f"(merge={'on' if merge_enabled else 'off'})..."
        )

        merged_count = 0
        collapsed_count = 0
        changed = True
        while changed:
            changed = False
            neighbours = chronological_neighbours(notes)
            i = 0
            while i < len(notes):
                j = i + 1
                while j < len(notes):
                    self.check_deadline(state)
                    a, b = notes[i], notes[j]
                    score = self.similarity.combined(a.text, b.text)

                    if score >= self.settings.threshold_near:
                        notes[i] = self._collapse(state, a, b)
                        del notes[j]
                        collapsed_count += 1
                        neighbours = chronological_neighbours(notes)
                        changed = True
                        continue
                    if merge_enabled and low <= score < high and same_temporal_context(a, b, neighbours):
                        notes[i] = self._merge(state, a, b)
                        del notes[j]
                        merged_count += 1
                        neighbours = chronological_neighbours(notes)
                        changed = True
                        self.log_artifact("Complementary Merge", {
                            "kept": a.id, "merged": b.id, "combined": round(score, 4),
                        })
                        continue
                    j += 1
                i += 1

        state.phase_stats.merged += merged_count
        self.record_removed(state, merged_count + collapsed_count)
        logger.info(
            f"[{self.__class__.__name__}] Merged {merged_count} pair(s), collapsed {collapsed_count}"
        )

        state.notes = notes
        return state

    def _collapse(self, state: DedupState, a: Note, b: Note) -> Note:
        if self.priority_of(state, b) > self.priority_of(state, a):
            return b.absorbing([a])
        return a.absorbing([b])

    def _merge(self, state: DedupState, first: Note, second: Note) -> Note:
        sentences = note_sentences(first, self.similarity) + note_sentences(second, self.similarity)
        kept, dropped = unique_sentences(sentences, self.similarity, self.settings.threshold_sentence)
        state.phase_stats.sentences_removed += len(dropped)

        role = first.source_role
        if self.priority_of(state, second) > self.priority_of(state, first):
            role = second.source_role

        return first.absorbing(
            [second],
            text="\n".join(s.text for s in kept),
            source_role=role,
        )
