from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import LearnerSummary


class DirectoryLookup(Protocol):
    """Read-only organizational directory.

    A person is a learner when a cohort resolves for it; the learner id is the
    person id.
    """

    def learner_cohort(self, person_id: int) -> Optional[int]:
        raise NotImplementedError

    def active_learners(self, cohort_id: int) -> Sequence[int]:
        raise NotImplementedError

    def learner_summaries(self, learner_ids: Sequence[int]) -> Mapping[int, LearnerSummary]:
        raise NotImplementedError
