"""Tagged stage outcomes shared by the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

_T = TypeVar("_T")


class StageStatus(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StageResult(Generic[_T]):
    """Outcome of one pipeline stage.

    A stage either completes with a value, is skipped with a reason, or fails
    with a reason. Stages report skips and failures through this value instead
    of raising, so the caller decides whether to continue.
    """

    status: StageStatus
    value: _T | None = None
    reason: str = ""

    @classmethod
    def completed(cls, value: _T) -> StageResult[_T]:
        return cls(status=StageStatus.COMPLETED, value=value)

    @classmethod
    def skipped(cls, reason: str) -> StageResult[_T]:
        return cls(status=StageStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> StageResult[_T]:
        return cls(status=StageStatus.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        """Return True when the stage completed with a value."""
        return self.status is StageStatus.COMPLETED
