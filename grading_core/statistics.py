"""Per-subject cohort statistics."""

import logging
import math
from typing import Sequence

from .models import ClassStatistics, Student, SubjectStatistics, clamp_score

logger = logging.getLogger(__name__)


def subject_statistics(subject: str, scores: Sequence[float]) -> SubjectStatistics:
    """
    Mean and population standard deviation of one subject's scores.

    The cohort is the whole population being graded, so squared deviations
    are divided by the count, not count - 1. math.fsum keeps the result
    independent of the order the scores arrive in.
    """
    count = len(scores)
    if count == 0:
        return SubjectStatistics(subject, 0.0, 0.0, 0)

    mean = math.fsum(scores) / count
    if count == 1:
        return SubjectStatistics(subject, mean, 0.0, 1)

    variance = math.fsum((score - mean) ** 2 for score in scores) / count
    return SubjectStatistics(subject, mean, math.sqrt(variance), count)


def calculate_class_statistics(
    students: Sequence[Student],
    subjects: Sequence[str],
    score_min: float = 0,
    score_max: float = 100,
) -> ClassStatistics:
    """
    Compute statistics for every subject in the active list.

    Students without a recorded score for a subject are left out of that
    subject's statistics. Scores are clamped the same way they are when
    graded.
    """
    per_subject = {}
    for subject in subjects:
        scores = []
        for student in students:
            score = student.score_for(subject)
            if score is not None:
                scores.append(clamp_score(score, score_min, score_max))
        per_subject[subject] = subject_statistics(subject, scores)
        logger.debug(
            "%s: n=%d mean=%.3f sd=%.3f",
            subject,
            per_subject[subject].sample_size,
            per_subject[subject].mean,
            per_subject[subject].std_dev,
        )
    return ClassStatistics(subjects=per_subject)
