from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SourceRole(str, Enum):
    """Authority of the clinician/service that authored a note.

    Resolved once at ingestion (see core.ingest.resolve_source_role) and
    never re-inferred downstream.
    """
    ATTENDING = "attending"
    RESIDENT = "resident"
    CONSULTANT = "consultant"
    PT_OT = "pt_ot"
    OPERATIVE = "operative"
    UNKNOWN = "unknown"


class Note(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    source_role: SourceRole = SourceRole.UNKNOWN
    sequence_index: int

    # Ids of every input note this note stands for (itself included)
    provenance: Tuple[int, ...] = ()
    # Earliest sequence_index among the provenance members
    anchor_index: int = 0

    @model_validator(mode="before")
    @classmethod
    def _anchor_defaults_to_sequence(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("anchor_index") is None and "sequence_index" in data:
            data = {**data, "anchor_index": data["sequence_index"]}
        return data

    def absorbing(self, others: Iterable["Note"], **update: Any) -> "Note":
        """Copy of this note that also stands for `others` (provenance + anchor)."""
        others = list(others)
        provenance = set(self.provenance or (self.id,))
        anchor = self.anchor_index
        for other in others:
            provenance.update(other.provenance or (other.id,))
            anchor = min(anchor, other.anchor_index)
        update.setdefault("provenance", tuple(sorted(provenance)))
        update.setdefault("anchor_index", anchor)
        return self.model_copy(update=update)


class NormalizedText(BaseModel):
    """Derived, cached view of a text. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    clean: str = ""
    lowercase: str = ""
    words: Tuple[str, ...] = ()
    sentences: Tuple[str, ...] = ()
    concepts: FrozenSet[Tuple[str, str]] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.lowercase


class SimilarityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    jaccard: float = Field(ge=0.0, le=1.0)
    levenshtein: float = Field(ge=0.0, le=1.0)
    semantic: float = Field(ge=0.0, le=1.0)
    combined: float = Field(ge=0.0, le=1.0)


class PriorityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    note_id: int
    score: float


class Sentence(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_note_id: int
    position: int
    sequence_index: int
    text: str


class Cluster(BaseModel):
    representative_note_id: int
    member_note_ids: Set[int] = Field(default_factory=set)


class PhaseError(BaseModel):
    phase: str
    error_type: str
    message: str


class PhaseStats(BaseModel):
    # notes removed per phase name
    removed: Dict[str, int] = Field(default_factory=dict)
    merged: int = 0
    sentences_removed: int = 0
    durations: Dict[str, float] = Field(default_factory=dict)
    errors: List[PhaseError] = Field(default_factory=list)


class DeduplicationResult(BaseModel):
    notes: List[Note] = Field(default_factory=list)
    input_count: int = 0
    output_count: int = 0
    reduction_percent: float = 0.0
    cluster_count: int = 0
    phase_stats: PhaseStats = Field(default_factory=PhaseStats)
    partial: bool = False
    skipped_inputs: List[str] = Field(default_factory=list)

    @property
    def texts(self) -> List[str]:
        return [n.text for n in self.notes]


class DedupState(BaseModel):
    """The 'Source of Truth' passing between phases."""
    notes: List[Note] = Field(default_factory=list)
    clusters: List[Cluster] = Field(default_factory=list)
    priorities: Dict[int, float] = Field(default_factory=dict)

    input_count: int = 0
    skipped_inputs: List[str] = Field(default_factory=list)

    phase_stats: PhaseStats = Field(default_factory=PhaseStats)
    execution_log: List[Dict[str, Any]] = Field(default_factory=list)
    partial: bool = False

    # monotonic deadline (time.monotonic()) for the whole run
    deadline: Optional[float] = Field(default=None, exclude=True)

    def to_json(self):
        return self.model_dump()
