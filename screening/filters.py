"""
Candidate filtering and summary statistics for a job's candidate list.

Works on anything exposing ``match_score``, ``is_shortlisted``, ``skills``
and ``experience`` attributes (ORM rows, schemas, plain objects).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

DEFAULT_SCORE_RANGE = (0, 100)
DEFAULT_MIN_SCORE_THRESHOLD = 60


class ShortlistState(str, Enum):
    UNDECIDED = "undecided"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "ShortlistState":
        if flag is None:
            return cls.UNDECIDED
        return cls.SHORTLISTED if flag else cls.REJECTED

    def to_flag(self) -> Optional[bool]:
        if self is ShortlistState.UNDECIDED:
            return None
        return self is ShortlistState.SHORTLISTED


class StatusFilter(str, Enum):
    ALL = "all"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    PENDING = "pending"

    def accepts(self, state: ShortlistState) -> bool:
        if self is StatusFilter.ALL:
            return True
        if self is StatusFilter.PENDING:
            return state is ShortlistState.UNDECIDED
        return state.value == self.value


@dataclass(frozen=True)
class FilterSpec:
    score_range: Tuple[int, int] = DEFAULT_SCORE_RANGE
    skill_search: str = ""
    experience_search: str = ""
    shortlist_status: StatusFilter = StatusFilter.ALL

    def __post_init__(self):
        lo, hi = self.score_range
        if not (0 <= lo <= hi <= 100):
            raise ValueError(f"Invalid score range {lo}-{hi}: expected 0 <= min <= max <= 100")
        object.__setattr__(self, "score_range", (lo, hi))
        object.__setattr__(self, "shortlist_status", StatusFilter(self.shortlist_status))

    @property
    def skill_terms(self) -> List[str]:
        return [t.strip().lower() for t in self.skill_search.split(",") if t.strip()]

    @property
    def experience_term(self) -> str:
        return self.experience_search.strip().lower()


@dataclass(frozen=True)
class CandidateStats:
    total: int = 0
    shortlisted: int = 0
    rejected: int = 0
    pending: int = 0
    auto_qualified: int = 0


def _score(candidate) -> int:
    # Unscored candidates are ranged as 0.
    return candidate.match_score if candidate.match_score is not None else 0


def _matches_skills(candidate, terms: List[str]) -> bool:
    skills = [s.lower() for s in (candidate.skills or [])]
    return any(term in skill for term in terms for skill in skills)


def matches(candidate, spec: FilterSpec) -> bool:
    lo, hi = spec.score_range
    if not lo <= _score(candidate) <= hi:
        return False
    if not spec.shortlist_status.accepts(ShortlistState.from_flag(candidate.is_shortlisted)):
        return False
    terms = spec.skill_terms
    if terms and not _matches_skills(candidate, terms):
        return False
    experience = spec.experience_term
    if experience and experience not in (candidate.experience or "").lower():
        return False
    return True


def filter_candidates(candidates: Iterable, spec: FilterSpec) -> list:
    """Return the candidates passing every filter dimension, in input order."""
    return [c for c in candidates if matches(c, spec)]


def rank_candidates(candidates: Iterable) -> list:
    """Order by match score descending with unscored candidates last."""
    return sorted(candidates, key=lambda c: (c.match_score is None, -(c.match_score or 0)))


def is_auto_qualified(candidate, min_score_threshold: Optional[int] = None) -> bool:
    threshold = DEFAULT_MIN_SCORE_THRESHOLD if min_score_threshold is None else min_score_threshold
    return (
        candidate.is_shortlisted is None
        and candidate.match_score is not None
        and candidate.match_score >= threshold
    )


def compute_stats(candidates: Sequence, min_score_threshold: Optional[int] = None) -> CandidateStats:
    """Summary counts over the full (unfiltered) candidate set of a job."""
    states = [ShortlistState.from_flag(c.is_shortlisted) for c in candidates]
    return CandidateStats(
        total=len(states),
        shortlisted=states.count(ShortlistState.SHORTLISTED),
        rejected=states.count(ShortlistState.REJECTED),
        pending=states.count(ShortlistState.UNDECIDED),
        auto_qualified=sum(1 for c in candidates if is_auto_qualified(c, min_score_threshold)),
    )


def active_filter_count(spec: FilterSpec) -> int:
    return sum([
        spec.score_range != DEFAULT_SCORE_RANGE,
        bool(spec.skill_search.strip()),
        bool(spec.experience_search.strip()),
        spec.shortlist_status is not StatusFilter.ALL,
    ])
