"""End-to-end grading pipeline: statistics, grades, students, facilitators."""

import hashlib
import json
import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, Sequence

from .engine_config import EngineConfig
from .facilitators import calculate_facilitator_stats
from .models import ClassStatistics, FacilitatorStats, ProcessedStudent, Student, is_missing
from .processor import process_students
from .statistics import calculate_class_statistics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    statistics: ClassStatistics
    students: tuple[ProcessedStudent, ...]
    facilitators: dict[str, FacilitatorStats]


def filter_enrolled(students: Iterable[Student]) -> list[Student]:
    """Keep students that have been given an admission ID."""
    return [student for student in students if student.is_enrolled]


def compute_all(roster: Sequence[Student], config: EngineConfig) -> PipelineResult:
    """
    Run the whole pipeline over an enrolled roster.

    Pure and deterministic: the same roster and config always give equal
    results, and nothing passed in is modified. Callers that want to skip
    repeat work should memoize on inputs_fingerprint().

    Args:
        roster: Enrolled students, in display order
        config: Loaded engine configuration

    Returns:
        PipelineResult with statistics, processed students (roster order)
        and facilitator roll-up.
    """
    stats = calculate_class_statistics(roster, config.subjects, config.score_min, config.score_max)
    processed = process_students(stats, roster, config)
    if processed:
        average = math.fsum(s.best_six_aggregate for s in processed) / len(processed)
    else:
        average = 0.0
    stats = replace(stats, average_aggregate=average)
    facilitators = calculate_facilitator_stats(processed)
    logger.debug(
        "Pipeline finished: %d students, %d facilitators, class aggregate %.2f",
        len(processed),
        len(facilitators),
        average,
    )
    return PipelineResult(statistics=stats, students=processed, facilitators=facilitators)


def _student_key(student: Student) -> dict[str, Any]:
    return {
        "id": student.student_id,
        "name": student.name,
        "scores": {
            subject: None if is_missing(score) else float(score)
            for subject, score in sorted(student.scores.items())
        },
        "attendance": student.attendance,
        "admission_id": student.admission_id,
        "present_class": student.present_class,
        "final_remark": student.final_remark,
        "recommendation": student.recommendation,
        "promoted_to": student.promoted_to,
    }


def inputs_fingerprint(roster: Sequence[Student], user_config: dict[str, Any]) -> str:
    """
    Stable hash of the pipeline inputs, for callers that cache results.

    Two calls with structurally identical roster and configuration return
    the same digest.
    """
    payload = {
        "roster": [_student_key(student) for student in roster],
        "config": user_config,
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
