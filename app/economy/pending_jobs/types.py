from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PendingJobType(str, Enum):
    DELAYED_CREDIT = "DELAYED_CREDIT"


class PendingJobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class JobOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    MISSING = "missing"
    RETRYABLE_FAILURE = "retryable_failure"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class SweepResult:
    examined: int
    processed: int
    skipped: int
    retryable_failure: int
    failed: int

    def as_dict(self) -> dict[str, int]:
        return {
            "examined": self.examined,
            "processed": self.processed,
            "skipped": self.skipped,
            "retryable_failure": self.retryable_failure,
            "failed": self.failed,
        }
