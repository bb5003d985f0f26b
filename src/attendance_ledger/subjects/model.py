from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import SubjectType


@dataclass(frozen=True)
class SubjectRef:
    """Composite reference to a student or employee."""

    subject_id: int
    subject_type: SubjectType

    def __str__(self) -> str:
        return f"{self.subject_type.value}:{self.subject_id}"
