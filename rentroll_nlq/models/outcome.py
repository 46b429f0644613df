"""Per-stage outcome type used by the query pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from rentroll_nlq.utils.exceptions import NLQueryError


class OutcomeKind(str, Enum):
    """How the pipeline should treat a stage result."""

    OK = "ok"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class StageOutcome:
    """Result of running one pipeline stage.

    ``OK`` carries the stage value, ``RECOVERABLE`` carries a default value
    and the absorbed error, ``FATAL`` carries the error to surface.
    """

    kind: OutcomeKind
    value: Any = None
    error: Optional[NLQueryError] = None

    @classmethod
    def ok(cls, value: Any) -> "StageOutcome":
        return cls(kind=OutcomeKind.OK, value=value)

    @classmethod
    def recoverable(cls, default: Any, error: NLQueryError) -> "StageOutcome":
        return cls(kind=OutcomeKind.RECOVERABLE, value=default, error=error)

    @classmethod
    def fatal(cls, error: NLQueryError) -> "StageOutcome":
        return cls(kind=OutcomeKind.FATAL, error=error)
