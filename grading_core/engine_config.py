"""Typed, validated configuration consumed by the grading pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .config_schema import (
    DEPARTMENT_CLASSES,
    DEPARTMENT_SUBJECTS,
    DEPARTMENTS,
    FINAL_CLASS_OUTCOME,
    merge_config,
    resolve_scale_ranges,
    unknown_keys,
)
from .models import (
    UNASSIGNED_FACILITATOR,
    AggregatePolicy,
    CriterionScale,
    Department,
    GradeRange,
    GradeThreshold,
    GradingScale,
    NormScale,
)
from .validators import ConfigError, validate_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionConfig:
    """
    Thresholds deciding category, promotion and the exceptional flag.

    Attributes:
        metric: What the cutoff is measured on (only "Aggregate" is used)
        cutoff_value: Highest aggregate that still earns promotion
        min_attendance: Days present required for promotion
        exceptional_cutoff: Aggregate at or below which a student is exceptional
        attendance_total: Number of school days in the term
        best_of: Number of subjects counted toward the aggregate
        partial_aggregate: Policy for students with fewer than best_of subjects
    """
    metric: str = "Aggregate"
    cutoff_value: float = 36
    min_attendance: int = 45
    exceptional_cutoff: float = 10
    attendance_total: int = 60
    best_of: int = 6
    partial_aggregate: AggregatePolicy = AggregatePolicy.SUM_AVAILABLE


@dataclass(frozen=True)
class CategoryBand:
    label: str
    max_aggregate: float


@dataclass(frozen=True)
class CategoryConfig:
    """Bands in ascending ``max_aggregate`` order, then the catch-all ``lowest``."""
    bands: tuple[CategoryBand, ...] = ()
    lowest: str = "Fail"
    remarks: Mapping[str, str] = field(default_factory=dict)

    def categorize(self, aggregate: float) -> str:
        for band in self.bands:
            if aggregate <= band.max_aggregate:
                return band.label
        return self.lowest

    def remark_for(self, category: str) -> str:
        return self.remarks.get(category, "")


@dataclass(frozen=True)
class EngineConfig:
    """
    Everything one pipeline run needs, resolved for a single class.

    Attributes:
        department: Department the class belongs to
        class_name: Class being graded (used for promotion targets)
        subjects: Active subject list in display order
        scales: Subject to the grading scale chosen for it
        facilitators: Subject to facilitator name
        promotion: Promotion thresholds
        categories: Aggregate category bands
        score_min: Lower clamp bound for scores
        score_max: Upper clamp bound for scores
    """
    department: Department
    class_name: str
    subjects: tuple[str, ...]
    scales: Mapping[str, GradingScale]
    facilitators: Mapping[str, str] = field(default_factory=dict)
    promotion: PromotionConfig = field(default_factory=PromotionConfig)
    categories: CategoryConfig = field(default_factory=CategoryConfig)
    score_min: float = 0
    score_max: float = 100

    def facilitator_for(self, subject: str) -> str:
        return self.facilitators.get(subject) or UNASSIGNED_FACILITATOR

    @property
    def worst_grade_point(self) -> int:
        return max((len(scale) for scale in self.scales.values()), default=1)

    def next_class(self) -> str:
        """Class a promoted student moves to; empty when the class is unknown."""
        progression = [c for d in DEPARTMENTS for c in DEPARTMENT_CLASSES[d]]
        if self.class_name not in progression:
            return ""
        index = progression.index(self.class_name)
        if index + 1 < len(progression):
            return progression[index + 1]
        return FINAL_CLASS_OUTCOME


def build_subject_list(
    department: Department,
    custom_subjects: Sequence[str] = (),
    disabled_subjects: Sequence[str] = (),
    active_indicators: Sequence[str] = (),
) -> list[str]:
    """
    Build the active subject list for a department.

    Core subjects come first, then custom subjects, minus disabled ones.
    Early-childhood departments append developmental indicators that are
    not already in the list.
    """
    subjects = []
    for subject in list(DEPARTMENT_SUBJECTS[department.value]) + list(custom_subjects):
        if subject not in subjects:
            subjects.append(subject)
    subjects = [s for s in subjects if s not in disabled_subjects]

    if department.is_early_childhood:
        present = set(subjects)
        for indicator in active_indicators:
            if indicator not in present:
                subjects.append(indicator)
                present.add(indicator)

    return subjects


def resolve_facilitators(
    subjects: Sequence[str],
    mapping: Mapping[str, str],
    staff: Sequence[Mapping[str, Any]] = (),
) -> dict[str, str]:
    """
    Attribute a facilitator to every subject.

    The explicit mapping wins, then the first staff member listing the
    subject, then the unassigned sentinel.
    """
    resolved = {}
    for subject in subjects:
        name = str(mapping.get(subject) or "").strip()
        if not name:
            for member in staff:
                if subject in (member.get("subjects") or []):
                    name = str(member.get("name") or "").strip()
                    if name:
                        break
        resolved[subject] = name or UNASSIGNED_FACILITATOR
    return resolved


def _criterion_scale(kind: str, setting: Any, score_min: float, score_max: float) -> CriterionScale:
    ranges = resolve_scale_ranges(kind, setting)
    return CriterionScale(
        ranges=tuple(
            GradeRange(
                symbol=r["symbol"],
                min_score=r["min"],
                max_score=r["max"],
                color_tag=r.get("color", ""),
                remark=r.get("remark", ""),
            )
            for r in ranges
        ),
        score_min=score_min,
        score_max=score_max,
    )


def load_engine_config(user_config: dict[str, Any]) -> EngineConfig:
    """
    Validate a user configuration once and build the typed engine config.

    Args:
        user_config: Configuration dict, usually parsed from JSON. Missing
            keys take their defaults; unknown keys are dropped.

    Returns:
        EngineConfig ready for compute_all.

    Raises:
        ConfigError: Listing every error found.
    """
    if not isinstance(user_config, dict):
        raise ConfigError(f"Configuration must be a JSON object, got {type(user_config).__name__}")

    for key in unknown_keys(user_config):
        logger.warning("Ignoring unknown configuration key '%s'", key)

    config = merge_config(user_config)
    issues = validate_config(config)
    for issue in issues:
        if issue["type"] == "warning":
            logger.warning("Configuration warning: %s", issue["message"])
    errors = [issue["message"] for issue in issues if issue["type"] == "error"]
    if errors:
        raise ConfigError(errors)

    department = Department(config["department"])
    score_min = config["scale"]["min"]
    score_max = config["scale"]["max"]
    grading = config["grading"]

    subjects = build_subject_list(
        department,
        config["custom_subjects"],
        config["disabled_subjects"],
        config["active_indicators"],
    )

    norm_scale = NormScale(
        thresholds=tuple(
            GradeThreshold(t["symbol"], t.get("z"), t.get("color", ""))
            for t in grading["thresholds"]
        ),
        remarks=grading["remarks"],
    )

    scales: dict[str, GradingScale] = {}
    if department.is_early_childhood:
        core_scale = _criterion_scale("core", grading["early_childhood"]["core"], score_min, score_max)
        indicator_scale = _criterion_scale(
            "indicators", grading["early_childhood"]["indicators"], score_min, score_max
        )
        scored = set(DEPARTMENT_SUBJECTS[department.value]) | set(config["custom_subjects"])
        for subject in subjects:
            scales[subject] = core_scale if subject in scored else indicator_scale
    else:
        for subject in subjects:
            scales[subject] = norm_scale

    promotion = config["promotion"]
    categories = config["categories"]

    engine_config = EngineConfig(
        department=department,
        class_name=config["class_name"],
        subjects=tuple(subjects),
        scales=scales,
        facilitators=resolve_facilitators(subjects, config["facilitators"], config["staff"]),
        promotion=PromotionConfig(
            metric=promotion["metric"],
            cutoff_value=promotion["cutoff_value"],
            min_attendance=promotion["min_attendance"],
            exceptional_cutoff=promotion["exceptional_cutoff"],
            attendance_total=promotion["attendance_total"],
            best_of=promotion["best_of"],
            partial_aggregate=AggregatePolicy(promotion["partial_aggregate"]),
        ),
        categories=CategoryConfig(
            bands=tuple(CategoryBand(b["label"], b["max_aggregate"]) for b in categories["bands"]),
            lowest=categories["lowest"],
            remarks=categories["remarks"],
        ),
        score_min=score_min,
        score_max=score_max,
    )
    logger.debug(
        "Loaded configuration for %s %s with %d subjects",
        department.value,
        engine_config.class_name,
        len(subjects),
    )
    return engine_config
