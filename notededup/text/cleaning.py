"""
Text cleaning helpers for clinical notes.

Two views of a note are produced here:
- clean_text():                display form. Unicode folded, boilerplate
                               header/footer lines dropped, whitespace
                               collapsed per line. Sentences are cut from it.
- normalize_for_comparison():  comparison form. Abbreviations expanded,
                               lowercased, punctuation removed. Words,
                               fingerprints and edit distances use it.

All functions are pure and accept anything: non-text input becomes "".
"""

import re
import unicodedata
from typing import Any, List, Tuple

BOILERPLATE_PATTERNS = [
    r"^(?:[A-Z /&-]+\s)?(?:PROGRESS|ADMISSION|OPERATIVE|CONSULTATION|CONSULT|DISCHARGE|H&P)\s+NOTE\s*:?$",
    r"^Electronically signed by\b.*$",
    r"^Signed by\b.*$",
    r"^Date:.*$",
    r"^Time:.*$",
    r"^Attending:.*$",
    r"^Resident:.*$",
    r"^Medical Record Number:.*$",
    r"^MRN:.*$",
    r"^Page\s+\d+\s+of\s+\d+$",
]

BOILERPLATE_RE = re.compile("|".join(BOILERPLATE_PATTERNS), re.IGNORECASE)

# Case-sensitive on purpose: "Pt" is the patient, "PT" is physical therapy.
ABBREVIATIONS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\b(POD|HD)\s*#\s*(\d+)", re.IGNORECASE), r"\1 \2"),
    (re.compile(r"\b(POD|HD)(\d+)\b", re.IGNORECASE), r"\1 \2"),
    (re.compile(r"\b[Pp]ts?\b"), "patient"),
    (re.compile(r"\bPT\b"), "physical therapy"),
    (re.compile(r"\bOT\b"), "occupational therapy"),
    (re.compile(r"\bs/p\b", re.IGNORECASE), "status post"),
    (re.compile(r"\bw/o\b", re.IGNORECASE), "without"),
    (re.compile(r"\bw/(?=\s|\w)", re.IGNORECASE), "with "),
    (re.compile(r"\bc/o\b", re.IGNORECASE), "complains of"),
    (re.compile(r"\bh/o\b", re.IGNORECASE), "history of"),
    (re.compile(r"\bf/u\b", re.IGNORECASE), "follow up"),
    (re.compile(r"\bd/c\b", re.IGNORECASE), "discharge"),
    (re.compile(r"\bb/l\b", re.IGNORECASE), "bilateral"),
    (re.compile(r"\bhx\b", re.IGNORECASE), "history"),
    (re.compile(r"\byo\b"), "year old"),
]

# Abbreviations whose trailing period is not a sentence break
_NO_BREAK_RE = re.compile(r"\b(Dr|Mr|Mrs|Ms|Pt|vs|etc|approx|No|St|e\.g|i\.e)\.")
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")
_PLACEHOLDER = "\x00"

_WS_RE = re.compile(r"[ \t\f\v]+")
_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACES_RE = re.compile(r"\s+")


def coerce_text(value: Any) -> str:
    """Anything that is not text becomes the empty string."""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return ""
    return ""


def _normalize_unicode(s: str) -> str:
    s = unicodedata.normalize("NFKC", s)
    s = s.replace("–", "-").replace("—", "-")
    s = s.replace("−", "-")
    s = s.replace("•", "-").replace("·", "-")
    return s


def clean_text(text: Any, remove_boilerplate: bool = True) -> str:
    text = coerce_text(text)
    if not text:
        return ""

    text = _normalize_unicode(text).replace("\r\n", "\n").replace("\r", "\n")
    lines = []
    for line in text.split("\n"):
        line = _WS_RE.sub(" ", line).strip()
        if not line:
            continue
        if remove_boilerplate and BOILERPLATE_RE.match(line):
            continue
        lines.append(line)
    return "\n".join(lines)


def expand_abbreviations(text: str) -> str:
    for pattern, replacement in ABBREVIATIONS:
        text = pattern.sub(replacement, text)
    return text


def normalize_for_comparison(text: Any) -> str:
    """
    Lowercase comparison form: abbreviations expanded, punctuation removed,
    whitespace collapsed to single spaces.
    """
    text = coerce_text(text)
    if not text:
        return ""
    text = expand_abbreviations(_normalize_unicode(text))
    text = _PUNCT_RE.sub(" ", text.lower())
    return _SPACES_RE.sub(" ", text).strip()


def split_sentences(text: Any) -> List[str]:
    """
    Lines are hard boundaries; inside a line, break after . ! ? unless the
    period belongs to a known abbreviation (Dr., Pt., e.g., ...).
    """
    text = coerce_text(text)
    sentences: List[str] = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        protected = _NO_BREAK_RE.sub(lambda m: m.group(1) + _PLACEHOLDER, line)
        for part in _SENTENCE_BREAK_RE.split(protected):
            part = part.replace(_PLACEHOLDER, ".").strip()
            if part:
                sentences.append(part)
    return sentences
