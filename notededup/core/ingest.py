"""
Ingestion: raw input list -> DedupState.

Accepted items, in input order:
- {"text": ..., "sourceRole": ..., "sequenceIndex": ...}  (snake_case keys too)
- a bare string (role unknown, sequence = position)
- an already built Note, or a serialized result note; both re-enter at their
  anchor_index so a result fed back in keeps its order

Items whose text is null, non-text or blank raise InputError internally; they
are logged, listed in state.skipped_inputs and left out. Nothing here is fatal.
"""

import re
from typing import Any, Iterable, List, Optional, Tuple

from loguru import logger

from notededup.core.errors import InputError
from notededup.core.models import DedupState, Note, SourceRole

# Checked in order; first hit wins. "PT consult" is a therapy note, not a consultant's.
ROLE_KEYWORDS: List[Tuple[SourceRole, re.Pattern]] = [
    (SourceRole.PT_OT, re.compile(r"\b(?:pt|ot|pt/ot|physical therapy|occupational therapy|therapy)\b", re.I)),
    (SourceRole.CONSULTANT, re.compile(r"\bconsult(?:ant|ation|ing)?\b", re.I)),
    (SourceRole.OPERATIVE, re.compile(r"\b(?:operative|op note|procedure|brief op)\b", re.I)),
    (SourceRole.ATTENDING, re.compile(r"\battending\b", re.I)),
    (SourceRole.RESIDENT, re.compile(r"\b(?:resident|intern|house staff)\b", re.I)),
]


def resolve_source_role(value: Any) -> SourceRole:
    """Map a free-form source tag ("Attending Note", "PT consult", ...) onto SourceRole."""
    if isinstance(value, SourceRole):
        return value
    if not isinstance(value, str) or not value.strip():
        return SourceRole.UNKNOWN

    tag = value.strip()
    try:
        return SourceRole(tag.lower())
    except ValueError:
        pass
    for role, pattern in ROLE_KEYWORDS:
        if pattern.search(tag):
            return role
    return SourceRole.UNKNOWN


def _first(item: dict, *keys: str) -> Any:
    for key in keys:
        if key in item:
            return item[key]
    return None


def _sequence_index(value: Any, position: int) -> int:
    if value is None or isinstance(value, bool):
        return position
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        logger.warning(f"Input #{position}: sequenceIndex {value!r} is not an integer, using position")
        return position


def _to_note(item: Any, position: int) -> Note:
    if isinstance(item, Note):
        # a result note re-enters at its earliest member's position
        text, role, seq = item.text, item.source_role, item.anchor_index
    elif isinstance(item, str):
        text, role, seq = item, None, None
    elif isinstance(item, dict):
        text = _first(item, "text", "rawText", "raw_text")
        role = _first(item, "sourceRole", "source_role")
        seq = _first(item, "anchorIndex", "anchor_index", "sequenceIndex", "sequence_index")
    else:
        raise InputError(position, f"unsupported note type {type(item).__name__}")

    if text is None:
        raise InputError(position, "text is null")
    if not isinstance(text, str):
        raise InputError(position, f"text is {type(text).__name__}, not a string")
    if not text.strip():
        raise InputError(position, "text is blank")

    seq_index = _sequence_index(seq, position)
    return Note(
        id=position,
        text=text,
        source_role=resolve_source_role(role),
        sequence_index=seq_index,
        provenance=(position,),
        anchor_index=seq_index,
    )


def ingest_notes(raw_notes: Optional[Iterable[Any]]) -> DedupState:
    state = DedupState()
    if raw_notes is None:
        return state
    if isinstance(raw_notes, (str, dict, Note)):
        raw_notes = [raw_notes]

    for position, item in enumerate(raw_notes):
        try:
            note = _to_note(item, position)
        except InputError as e:
            logger.warning(str(e))
            state.skipped_inputs.append(str(e))
            continue
        state.notes.append(note)

    state.input_count = len(state.notes)
    return state
