"""Value types shared by every stage of the grading pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Mapping

from .validators import ConfigError, check_criterion_ranges, check_norm_ladder

UNASSIGNED_FACILITATOR = "Unassigned"


class Department(str, Enum):
    DAYCARE = "Daycare"
    NURSERY = "Nursery"
    KINDERGARTEN = "Kindergarten"
    LOWER_BASIC = "Lower Basic School"
    UPPER_BASIC = "Upper Basic School"
    JUNIOR_HIGH = "Junior High School"

    @property
    def is_early_childhood(self) -> bool:
        return self in (Department.DAYCARE, Department.NURSERY, Department.KINDERGARTEN)


class GradingStrategy(str, Enum):
    NORM_REFERENCED = "norm_referenced"
    CRITERION_REFERENCED = "criterion_referenced"


class AggregatePolicy(str, Enum):
    """How a student with fewer than ``best_of`` graded subjects is aggregated."""

    SUM_AVAILABLE = "sum_available"
    PAD_WITH_WORST = "pad_with_worst"


def is_missing(score) -> bool:
    """True for an unrecorded score (None, NaN or blank)."""
    if score is None:
        return True
    if isinstance(score, str):
        return not score.strip()
    try:
        return math.isnan(score)
    except TypeError:
        return False


def clamp_score(score: float, low: float = 0, high: float = 100) -> float:
    return min(max(float(score), low), high)


@dataclass(frozen=True)
class GradeThreshold:
    """One rung of a z-score ladder; ``z_threshold`` is None for the catch-all."""
    symbol: str
    z_threshold: float | None
    color_tag: str = ""


@dataclass(frozen=True)
class GradeRange:
    """A fixed score band of a criterion-referenced scale (bounds inclusive)."""
    symbol: str
    min_score: float
    max_score: float
    color_tag: str = ""
    remark: str = ""

    def contains(self, score: float) -> bool:
        return self.min_score <= score <= self.max_score


@dataclass(frozen=True)
class NormScale:
    """
    Norm-referenced grading scale (immutable).

    Attributes:
        thresholds: Ladder of grades, best first. The last entry is the
            catch-all for any z-score below the lowest threshold.
        remarks: Symbol to remark text. Missing symbols fall back to the
            symbol itself.

    Invariants:
        - At least one grade, symbols unique
        - Thresholds strictly decreasing; only the last may be None
    """
    strategy: ClassVar[GradingStrategy] = GradingStrategy.NORM_REFERENCED

    thresholds: tuple[GradeThreshold, ...]
    remarks: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "thresholds", tuple(self.thresholds))
        object.__setattr__(self, "remarks", dict(self.remarks))
        problems = check_norm_ladder([(t.symbol, t.z_threshold) for t in self.thresholds])
        if problems:
            raise ConfigError(problems)

    def __len__(self) -> int:
        return len(self.thresholds)

    @property
    def symbols(self) -> list[str]:
        return [t.symbol for t in self.thresholds]

    def grade_point(self, symbol: str) -> int:
        """Rank of a symbol in the ladder, 1 for the best grade."""
        return self.symbols.index(symbol) + 1

    def remark_for(self, symbol: str) -> str:
        return self.remarks.get(symbol) or symbol


@dataclass(frozen=True)
class CriterionScale:
    """
    Criterion-referenced grading scale (immutable).

    Ranges are stored best first (highest ``min_score`` first) whatever
    order they were given in. Remarks default to each range's own remark.

    Invariants:
        - Ranges cover ``score_min``..``score_max`` with no gaps or overlaps
    """
    strategy: ClassVar[GradingStrategy] = GradingStrategy.CRITERION_REFERENCED

    ranges: tuple[GradeRange, ...]
    remarks: Mapping[str, str] = field(default_factory=dict)
    score_min: float = 0
    score_max: float = 100

    def __post_init__(self):
        ranges = tuple(sorted(self.ranges, key=lambda r: r.min_score, reverse=True))
        object.__setattr__(self, "ranges", ranges)
        problems = check_criterion_ranges(
            [(r.symbol, r.min_score, r.max_score) for r in ranges],
            self.score_min,
            self.score_max,
        )
        if problems:
            raise ConfigError(problems)
        remarks = {r.symbol: r.remark for r in ranges if r.remark}
        remarks.update(self.remarks)
        object.__setattr__(self, "remarks", remarks)

    def __len__(self) -> int:
        return len(self.ranges)

    @property
    def symbols(self) -> list[str]:
        return [r.symbol for r in self.ranges]

    def grade_point(self, symbol: str) -> int:
        return self.symbols.index(symbol) + 1

    def remark_for(self, symbol: str) -> str:
        return self.remarks.get(symbol) or symbol


GradingScale = NormScale | CriterionScale


@dataclass(frozen=True)
class GradeResult:
    """Outcome of classifying one score."""
    symbol: str
    remark: str
    color_tag: str
    grade_point: int


@dataclass(frozen=True)
class Student:
    """
    One roster entry as supplied by the roster provider.

    ``scores`` maps subject to raw mark; None (or NaN) means not recorded.
    ``final_remark``, ``recommendation`` and ``promoted_to`` are edits made
    on the report card and win over the derived values when non-blank.
    """
    student_id: str
    name: str
    scores: Mapping[str, float | None] = field(default_factory=dict)
    attendance: int = 0
    admission_id: str = ""
    present_class: str = ""
    final_remark: str = ""
    recommendation: str = ""
    promoted_to: str = ""

    def score_for(self, subject: str) -> float | None:
        score = self.scores.get(subject)
        if is_missing(score):
            return None
        return float(score)

    @property
    def is_enrolled(self) -> bool:
        return bool(str(self.admission_id or "").strip())


@dataclass(frozen=True)
class SubjectStatistics:
    subject: str
    mean: float = 0.0
    std_dev: float = 0.0
    sample_size: int = 0


@dataclass(frozen=True)
class ClassStatistics:
    """Per-subject cohort statistics plus the cohort's average aggregate."""
    subjects: Mapping[str, SubjectStatistics]
    average_aggregate: float = 0.0

    def for_subject(self, subject: str) -> SubjectStatistics:
        return self.subjects.get(subject) or SubjectStatistics(subject)

    @property
    def subject_means(self) -> dict[str, float]:
        return {name: stats.mean for name, stats in self.subjects.items()}


@dataclass(frozen=True)
class GradedSubject:
    subject: str
    score: float
    grade: str
    remark: str
    facilitator: str
    grade_point: int
    color_tag: str = ""


@dataclass(frozen=True)
class ProcessedStudent:
    """A student's graded snapshot; rebuilt wholesale on every run."""
    student_id: str
    name: str
    subjects: tuple[GradedSubject, ...]
    best_six_aggregate: int
    category: str
    overall_remark: str
    recommendation: str
    attendance: int
    promoted_to: str
    promoted: bool = False
    exceptional: bool = False
    below_min_attendance: bool = False
    admission_id: str = ""
    present_class: str = ""
    aggregate_subjects: tuple[str, ...] = ()


@dataclass(frozen=True)
class FacilitatorStats:
    """
    Roll-up of one facilitator's graded entries.

    ``student_count`` counts distinct students; the averages are taken
    over every graded subject entry attributed to the facilitator.
    """
    name: str
    subjects_taught: frozenset[str]
    student_count: int
    average_score: float
    average_grade_point: float
    entry_count: int = 0
    subject_student_counts: Mapping[str, int] = field(default_factory=dict)
