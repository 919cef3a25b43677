from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ResultStatus(str, Enum):
    """Outcome of a field-level check."""

    ACCEPTED = "ACCEPTED"
    ACCEPTED_NULL = "ACCEPTED_NULL"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class ValidationResult:
    """
    Immutable result of a field validator.

    - ACCEPTED carries the normalized value
    - ACCEPTED_NULL means the value is legitimately absent
    - REJECTED carries the reason
    """

    status: ResultStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def accepted(cls, value: Any) -> "ValidationResult":
        if value is None:
            return cls.accepted_null()
        return cls(status=ResultStatus.ACCEPTED, value=value)

    @classmethod
    def accepted_null(cls) -> "ValidationResult":
        return cls(status=ResultStatus.ACCEPTED_NULL)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationResult":
        return cls(status=ResultStatus.REJECTED, error=reason or "validation failed")

    @property
    def is_valid(self) -> bool:
        return self.status is not ResultStatus.REJECTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "value": self.value,
            "error": self.error,
        }
