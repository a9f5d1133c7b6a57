"""Grade classification: z-score ladder and fixed score-range strategies."""

from .models import (
    CriterionScale,
    GradeResult,
    GradingScale,
    GradingStrategy,
    NormScale,
    SubjectStatistics,
    clamp_score,
)


def z_score(score: float, mean: float, std_dev: float) -> float:
    """Standardised score; 0 when the subject has no dispersion."""
    if std_dev > 0:
        return (score - mean) / std_dev
    return 0.0


def classify_norm(score: float, stats: SubjectStatistics, scale: NormScale) -> GradeResult:
    """
    Grade a score by its position relative to the cohort.

    Walks the ladder from the best grade down and returns the first rung
    whose threshold is at or below the z-score. The last rung catches
    everything below the lowest threshold.
    """
    z = z_score(score, stats.mean, stats.std_dev)
    chosen = scale.thresholds[-1]
    for threshold in scale.thresholds:
        if threshold.z_threshold is not None and threshold.z_threshold <= z:
            chosen = threshold
            break
    return GradeResult(
        symbol=chosen.symbol,
        remark=scale.remark_for(chosen.symbol),
        color_tag=chosen.color_tag,
        grade_point=scale.grade_point(chosen.symbol),
    )


def classify_criterion(score: float, scale: CriterionScale) -> GradeResult:
    """
    Grade a score by the fixed range it falls in.

    Scores are clamped to the scale first. Ranges are walked best first and
    the first one whose minimum the score reaches wins, so a fractional mark
    between two whole-mark ranges (69.5 between 40-69 and 70-100) takes the
    lower one, as it would on a printed grading key.
    """
    score = clamp_score(score, scale.score_min, scale.score_max)
    chosen = scale.ranges[-1]
    for grade_range in scale.ranges:
        if score >= grade_range.min_score:
            chosen = grade_range
            break
    return GradeResult(
        symbol=chosen.symbol,
        remark=scale.remark_for(chosen.symbol),
        color_tag=chosen.color_tag,
        grade_point=scale.grade_point(chosen.symbol),
    )


def classify(score: float, stats: SubjectStatistics, scale: GradingScale) -> GradeResult:
    """Classify with whichever strategy the scale carries."""
    if scale.strategy is GradingStrategy.NORM_REFERENCED:
        return classify_norm(score, stats, scale)
    return classify_criterion(score, scale)
