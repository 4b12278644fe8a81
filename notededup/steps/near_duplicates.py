"""
Near-duplicate clustering phase.

Notes are visited in ascending sequence_index. Each note that has no cluster
yet seeds a new one and is compared with every later note that also has no
cluster; a combined similarity >= threshold_near joins the seed's cluster.
A note that has a cluster is never compared again.

Representative per cluster: highest priority, then longer normalized text,
then lowest sequence_index. It takes over the provenance of its cluster.

Pairwise scores can be computed on a thread pool (settings.max_workers);
results are keyed by candidate index, so scheduling never changes membership.

Inputs:
- state.notes (exact-dedup output)

Outputs:
- state.notes: one representative per cluster, in seed order.
- state.clusters
- state.phase_stats.removed[<phase name>]
"""

import concurrent.futures
from typing import Dict, List

from loguru import logger

from notededup.core.base import PipelineStep
from notededup.core.models import Cluster, DedupState, Note


class NearDedupStep(PipelineStep):
    def execute(self, state: DedupState) -> DedupState:
        threshold = self.settings.threshold_near
        notes = sorted(state.notes, key=lambda n: (n.sequence_index, n.id))
        logger.info(
            f"[{self.__class__.__name__}] Clustering {len(notes)} notes (threshold={threshold})..."
        )

        # warm the view cache before any worker threads read it
        for note in notes:
            self.similarity.view(note.text)

        assigned = [False] * len(notes)
        clusters: List[Cluster] = []
        survivors: List[Note] = []

        for i, seed in enumerate(notes):
            if assigned[i]:
                continue
            self.check_deadline(state)
            assigned[i] = True

            candidates = [j for j in range(i + 1, len(notes)) if not assigned[j]]
            matches = self._match(seed, notes, candidates, threshold)
            members = [seed]
            for j in candidates:
                if matches.get(j):
                    assigned[j] = True
                    members.append(notes[j])

            rep = self._representative(state, members)
            merged = rep.absorbing([m for m in members if m.id != rep.id])
            survivors.append(merged)
            clusters.append(Cluster(
                representative_note_id=merged.id,
                member_note_ids=set(merged.provenance),
            ))
            if len(members) > 1:
                self.log_artifact("Near-Duplicate Cluster", {
                    "representative": merged.id,
                    "members": [m.id for m in members],
                })

        removed = len(notes) - len(survivors)
        self.record_removed(state, removed)
        logger.info(
            f"[{self.__class__.__name__}] {len(clusters)} cluster(s), removed {removed} near duplicate(s)"
        )

        state.notes = survivors
        state.clusters = clusters
        return state

    def _is_match(self, a: Note, b: Note, threshold: float) -> bool:
        if not self.similarity.may_reach(a.text, b.text, threshold):
            return False
        return self.similarity.combined(a.text, b.text) >= threshold

    def _match(self, seed: Note, notes: List[Note], candidates: List[int], threshold: float) -> Dict[int, bool]:
        max_workers = min(self.settings.max_workers, len(candidates))
        results: Dict[int, bool] = {}

        if max_workers <= 1:
            for j in candidates:
                results[j] = self._is_match(seed, notes[j], threshold)
            return results

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_map = {
                executor.submit(self._is_match, seed, notes[j], threshold): j for j in candidates
            }
            for future in concurrent.futures.as_completed(future_map):
                results[future_map[future]] = future.result()
        return results

    def _representative(self, state: DedupState, members: List[Note]) -> Note:
        def rank(note: Note):
            view = self.similarity.view(note.text)
            return (-self.priority_of(state, note), -len(view.lowercase), note.sequence_index, note.id)

        return min(members, key=rank)
