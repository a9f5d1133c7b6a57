"""Per-student grading, best-six aggregate, category and promotion."""

import logging
from typing import Sequence

from .classifier import classify
from .engine_config import EngineConfig, PromotionConfig
from .models import (
    AggregatePolicy,
    ClassStatistics,
    GradedSubject,
    ProcessedStudent,
    Student,
    clamp_score,
)

logger = logging.getLogger(__name__)


def grade_subjects(
    student: Student,
    stats: ClassStatistics,
    config: EngineConfig,
) -> list[GradedSubject]:
    """Grade every active subject the student has a score for, in subject-list order."""
    graded = []
    for subject in config.subjects:
        raw = student.score_for(subject)
        if raw is None:
            continue
        score = clamp_score(raw, config.score_min, config.score_max)
        result = classify(score, stats.for_subject(subject), config.scales[subject])
        graded.append(GradedSubject(
            subject=subject,
            score=score,
            grade=result.symbol,
            remark=result.remark,
            facilitator=config.facilitator_for(subject),
            grade_point=result.grade_point,
            color_tag=result.color_tag,
        ))
    return graded


def select_best_subjects(graded: Sequence[GradedSubject], best_of: int = 6) -> list[GradedSubject]:
    """
    Pick the best_of subjects with the lowest grade points.

    Ties keep the order of ``graded`` (the subject-list order), so the
    selection is deterministic.
    """
    return sorted(graded, key=lambda g: g.grade_point)[:best_of]


def best_six_aggregate(
    graded: Sequence[GradedSubject],
    best_of: int = 6,
    policy: AggregatePolicy = AggregatePolicy.SUM_AVAILABLE,
    worst_grade_point: int = 9,
) -> int:
    """
    Sum the grade points of the best subjects; lower is better.

    A student with no graded subjects scores 0. With fewer than best_of
    subjects the policy decides: sum what is there, or count every missing
    slot as the worst grade.
    """
    if not graded:
        return 0
    chosen = select_best_subjects(graded, best_of)
    total = sum(g.grade_point for g in chosen)
    if policy is AggregatePolicy.PAD_WITH_WORST and len(chosen) < best_of:
        total += (best_of - len(chosen)) * worst_grade_point
    return total


def derive_recommendation(
    category: str,
    promotion: PromotionConfig,
    *,
    has_subjects: bool,
    exceptional: bool,
    promoted: bool,
    below_min_attendance: bool,
) -> str:
    parts = [f"{category}."]
    if not has_subjects:
        parts.append("No scores recorded this term.")
    if exceptional:
        parts.append("Exceptional performance.")
    if below_min_attendance:
        parts.append(f"Attendance is below the required {promotion.min_attendance} days.")
    parts.append("Recommended for promotion." if promoted else "Not recommended for promotion.")
    return " ".join(parts)


def process_student(
    student: Student,
    stats: ClassStatistics,
    config: EngineConfig,
) -> ProcessedStudent:
    """Build the processed snapshot for one student."""
    promotion = config.promotion
    graded = grade_subjects(student, stats, config)

    aggregate = best_six_aggregate(
        graded,
        promotion.best_of,
        promotion.partial_aggregate,
        config.worst_grade_point,
    )
    has_subjects = bool(graded)
    if has_subjects:
        category = config.categories.categorize(aggregate)
    else:
        category = config.categories.lowest

    below_min_attendance = student.attendance < promotion.min_attendance
    exceptional = has_subjects and aggregate <= promotion.exceptional_cutoff
    promoted = has_subjects and aggregate <= promotion.cutoff_value and not below_min_attendance

    promoted_to = student.promoted_to.strip()
    if not promoted_to:
        promoted_to = config.next_class() if promoted else (student.present_class or config.class_name)

    recommendation = student.recommendation.strip() or derive_recommendation(
        category,
        promotion,
        has_subjects=has_subjects,
        exceptional=exceptional,
        promoted=promoted,
        below_min_attendance=below_min_attendance,
    )

    # Stable sort: equal scores stay in subject-list order
    display_order = sorted(graded, key=lambda g: g.score, reverse=True)

    return ProcessedStudent(
        student_id=student.student_id,
        name=student.name,
        subjects=tuple(display_order),
        best_six_aggregate=aggregate,
        category=category,
        overall_remark=student.final_remark.strip() or config.categories.remark_for(category),
        recommendation=recommendation,
        attendance=student.attendance,
        promoted_to=promoted_to,
        promoted=promoted,
        exceptional=exceptional,
        below_min_attendance=below_min_attendance,
        admission_id=student.admission_id,
        present_class=student.present_class,
        aggregate_subjects=tuple(g.subject for g in select_best_subjects(graded, promotion.best_of)),
    )


def process_students(
    stats: ClassStatistics,
    students: Sequence[Student],
    config: EngineConfig,
) -> tuple[ProcessedStudent, ...]:
    """Process every student, keeping roster order."""
    processed = tuple(process_student(student, stats, config) for student in students)
    logger.debug("Processed %d students over %d subjects", len(processed), len(config.subjects))
    return processed
