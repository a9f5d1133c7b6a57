"""Performance roll-up per facilitator (the staff member taking a subject)."""

from typing import Sequence

from .models import FacilitatorStats, ProcessedStudent


def calculate_facilitator_stats(students: Sequence[ProcessedStudent]) -> dict[str, FacilitatorStats]:
    """
    Group every graded subject by facilitator.

    A student taught two subjects by the same facilitator counts once in
    ``student_count`` but twice in ``entry_count``; averages are over
    entries. Students are told apart by roster position, so two rows that
    share an ID still count twice. Facilitators with nothing attributed do
    not appear.
    """
    subjects: dict[str, set[str]] = {}
    pupils: dict[str, set[int]] = {}
    per_subject: dict[str, dict[str, set[int]]] = {}
    score_sums: dict[str, float] = {}
    point_sums: dict[str, int] = {}
    entries: dict[str, int] = {}

    for position, student in enumerate(students):
        for graded in student.subjects:
            name = graded.facilitator
            if name not in entries:
                subjects[name] = set()
                pupils[name] = set()
                per_subject[name] = {}
                score_sums[name] = 0.0
                point_sums[name] = 0
                entries[name] = 0
            subjects[name].add(graded.subject)
            pupils[name].add(position)
            per_subject[name].setdefault(graded.subject, set()).add(position)
            score_sums[name] += graded.score
            point_sums[name] += graded.grade_point
            entries[name] += 1

    return {
        name: FacilitatorStats(
            name=name,
            subjects_taught=frozenset(subjects[name]),
            student_count=len(pupils[name]),
            average_score=score_sums[name] / count,
            average_grade_point=point_sums[name] / count,
            entry_count=count,
            subject_student_counts={s: len(ids) for s, ids in per_subject[name].items()},
        )
        for name, count in entries.items()
    }
