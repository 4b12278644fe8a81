"""
Deduplication settings.

One immutable DedupSettings object is built when the orchestrator is
constructed and threaded through every phase. Keys accept both the
camelCase names of the external contract (thresholdNear, mergeComplementary,
...) and their snake_case attribute names.

Usage:
    from notededup.core.settings import build_settings
    settings = build_settings({"thresholdNear": 0.9})

Environment overrides (optional, read from the process env and a .env file):
    NOTEDEDUP_TIMEOUT_SECONDS, NOTEDEDUP_MAX_WORKERS,
    NOTEDEDUP_THRESHOLD_NEAR, NOTEDEDUP_THRESHOLD_SENTENCE
"""

import math
import os
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

WEIGHT_EPSILON = 1e-6
_ENV_PREFIX = "NOTEDEDUP_"


class SimilarityWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    jaccard: float = 0.4
    levenshtein: float = 0.2
    semantic: float = 0.4

    @model_validator(mode="after")
    def _weights_sum_to_one(self):
        values = (self.jaccard, self.levenshtein, self.semantic)
        if any(v < 0.0 or v > 1.0 for v in values):
            raise ValueError(f"similarity weights must each lie in [0, 1], got {values}")
        total = math.fsum(values)
        if abs(total - 1.0) > WEIGHT_EPSILON:
            raise ValueError(f"similarity weights must sum to 1.0, got {total:.6f}")
        return self


class DedupSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    weights: SimilarityWeights = Field(default_factory=SimilarityWeights)
    threshold_near: float = Field(0.85, alias="thresholdNear", ge=0.0, le=1.0)
    threshold_sentence: float = Field(0.85, alias="thresholdSentence", ge=0.0, le=1.0)
    # half-open band [low, high)
    complementary_range: Tuple[float, float] = Field((0.30, 0.60), alias="complementaryRange")
    preserve_chronology: bool = Field(True, alias="preserveChronology")
    merge_complementary: bool = Field(True, alias="mergeComplementary")
    remove_boilerplate: bool = Field(True, alias="removeBoilerplate")

    timeout_seconds: Optional[float] = Field(None, alias="timeoutSeconds", gt=0)
    max_workers: int = Field(1, alias="maxWorkers", ge=1)

    @field_validator("complementary_range")
    @classmethod
    def _band_is_ordered(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        low, high = v
        if not (0.0 <= low < high <= 1.0):
            raise ValueError(f"complementary range must satisfy 0 <= low < high <= 1, got {v}")
        return v


def build_settings(settings: Union[None, DedupSettings, Mapping[str, Any]] = None) -> DedupSettings:
    """
    Validate user settings once. Any violation surfaces as ConfigError.
    """
    if isinstance(settings, DedupSettings):
        return settings
    try:
        return DedupSettings(**dict(settings or {}))
    except (ValidationError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid deduplication settings: {e}") from e


def _canonical_key(key: str) -> str:
    for name, field in DedupSettings.model_fields.items():
        if key == name or key == field.alias:
            return name
    return key


def merge_settings(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge settings mappings left to right. camelCase and snake_case spellings
    of the same key are treated as one key, so later layers always win.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, val in dict(layer or {}).items():
            merged[_canonical_key(key)] = val
    return merged


def _getenv_float(name: str) -> Optional[float]:
    val = os.getenv(_ENV_PREFIX + name)
    if val is None or val == "":
        return None
    try:
        return float(val)
    except ValueError as e:
        raise ConfigError(f"{_ENV_PREFIX + name} must be a number, got {val!r}") from e


def _getenv_int(name: str) -> Optional[int]:
    val = os.getenv(_ENV_PREFIX + name)
    if val is None or val == "":
        return None
    try:
        return int(val)
    except ValueError as e:
        raise ConfigError(f"{_ENV_PREFIX + name} must be an integer, got {val!r}") from e


def load_settings_from_env(base: Optional[Mapping[str, Any]] = None) -> DedupSettings:
    """
    Overlay NOTEDEDUP_* environment variables on top of `base`.
    A .env file is read once; already-set variables are never overridden.
    """
    load_dotenv(override=False)

    overrides = {
        "timeout_seconds": _getenv_float("TIMEOUT_SECONDS"),
        "max_workers": _getenv_int("MAX_WORKERS"),
        "threshold_near": _getenv_float("THRESHOLD_NEAR"),
        "threshold_sentence": _getenv_float("THRESHOLD_SENTENCE"),
    }
    return build_settings(merge_settings(base, {k: v for k, v in overrides.items() if v is not None}))
