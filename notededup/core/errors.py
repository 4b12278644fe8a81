"""
Error taxonomy for the deduplication engine.

- InputError:   a single ingested note is null, non-text or blank. The note is
                skipped with a warning; never fatal.
- ConfigError:  invalid settings or pipeline definition. Raised while the
                orchestrator is being constructed and nowhere else.
- PhaseFailure: wraps an unexpected exception raised inside a phase. The
                orchestrator records it and passes the phase input through.
- PhaseTimeout: the run deadline expired inside (or before) a phase.
"""

from typing import Optional

from .models import PhaseError


class DedupError(Exception):
    """Base class for every error raised by the engine."""


class InputError(DedupError):
    def __init__(self, position: int, reason: str):
        self.position = position
        self.reason = reason
        super().__init__(f"Input #{position} skipped: {reason}")


class ConfigError(DedupError):
    pass


class PhaseFailure(DedupError):
    def __init__(self, phase: str, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Phase '{phase}' failed: {type(cause).__name__}: {cause}")

    def to_record(self) -> PhaseError:
        return PhaseError(
            phase=self.phase,
            error_type=type(self.cause).__name__,
            message=str(self.cause),
        )


class PhaseTimeout(DedupError):
    def __init__(self, phase: Optional[str] = None):
        self.phase = phase
        where = f" during '{phase}'" if phase else ""
        super().__init__(f"Deduplication deadline exceeded{where}")
