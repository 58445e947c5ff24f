from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LearnerSummary:
    """Read-only learner view served by the organizational directory."""

    learner_id: int
    first_name: str
    last_name: str
    document_number: str
    cohort_id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
