"""Conversion between score-sheet DataFrames and roster/result values."""

import logging
from typing import Any, Sequence

import pandas as pd

from .engine_config import EngineConfig
from .models import Student
from .pipeline import PipelineResult

logger = logging.getLogger(__name__)

ID_COLUMN = "Pupil ID"
NAME_COLUMN = "Name"
CLASS_COLUMN = "Class"
ATTENDANCE_COLUMN = "Attendance"
REMARK_COLUMN = "Remark"
RECOMMENDATION_COLUMN = "Recommendation"
PROMOTED_TO_COLUMN = "Promoted To"

LEADING_COLUMNS = [ID_COLUMN, NAME_COLUMN, CLASS_COLUMN, ATTENDANCE_COLUMN]
TRAILING_COLUMNS = [REMARK_COLUMN, RECOMMENDATION_COLUMN, PROMOTED_TO_COLUMN]


def _text(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


def _score(value: Any) -> float | None:
    if value is None or pd.isna(value) or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _attendance(value: Any) -> int:
    score = _score(value)
    return int(score) if score is not None else 0


def subject_columns(df: pd.DataFrame) -> list[str]:
    """Columns of a score sheet that hold subject scores."""
    fixed = set(LEADING_COLUMNS) | set(TRAILING_COLUMNS)
    return [col for col in df.columns if col not in fixed]


def roster_from_frame(df: pd.DataFrame, subjects: Sequence[str] | None = None) -> list[Student]:
    """
    Read students from a score sheet.

    Blank cells are missing scores. Cells that are not numbers are also
    treated as missing; validate_scores reports them.

    Args:
        df: Score sheet with the leading identity columns and one column
            per subject
        subjects: Subject columns to read (default: every non-identity column)

    Returns:
        Students in sheet order.
    """
    if subjects is None:
        subjects = subject_columns(df)
    present = [s for s in subjects if s in df.columns]

    students = []
    for position, (idx, row) in enumerate(df.iterrows()):
        pupil_id = _text(row.get(ID_COLUMN))
        scores = {}
        for subject in present:
            scores[subject] = _score(row[subject])
            if scores[subject] is None and _text(row[subject]):
                logger.warning("Ignoring non-numeric score %r for %s in row %s", row[subject], subject, idx)
        students.append(Student(
            student_id=pupil_id or f"row-{position + 1}",
            name=_text(row.get(NAME_COLUMN)),
            scores=scores,
            attendance=_attendance(row.get(ATTENDANCE_COLUMN)),
            admission_id=pupil_id,
            present_class=_text(row.get(CLASS_COLUMN)),
            final_remark=_text(row.get(REMARK_COLUMN)),
            recommendation=_text(row.get(RECOMMENDATION_COLUMN)),
            promoted_to=_text(row.get(PROMOTED_TO_COLUMN)),
        ))
    return students


def load_roster_csv(source) -> pd.DataFrame:
    """Read a score-sheet CSV from a path or file-like object."""
    df = pd.read_csv(source, dtype={ID_COLUMN: str})
    df.columns = [str(col).strip() for col in df.columns]
    return df


def create_roster_template(
    subjects: Sequence[str],
    names: Sequence[str] = (),
    class_name: str = "",
) -> pd.DataFrame:
    """Create an empty score sheet with proper columns."""
    data = {
        ID_COLUMN: [""] * len(names),
        NAME_COLUMN: list(names),
        CLASS_COLUMN: [class_name] * len(names),
        ATTENDANCE_COLUMN: [None] * len(names),
    }
    for subject in subjects:
        data[subject] = [None] * len(names)
    for col in TRAILING_COLUMNS:
        data[col] = [""] * len(names)
    return pd.DataFrame(data)


def roster_to_frame(students: Sequence[Student], subjects: Sequence[str]) -> pd.DataFrame:
    """Write students back out as a score sheet."""
    rows = []
    for student in students:
        row = {
            ID_COLUMN: student.admission_id,
            NAME_COLUMN: student.name,
            CLASS_COLUMN: student.present_class,
            ATTENDANCE_COLUMN: student.attendance,
        }
        for subject in subjects:
            row[subject] = student.score_for(subject)
        row[REMARK_COLUMN] = student.final_remark
        row[RECOMMENDATION_COLUMN] = student.recommendation
        row[PROMOTED_TO_COLUMN] = student.promoted_to
        rows.append(row)
    return pd.DataFrame(rows, columns=LEADING_COLUMNS + list(subjects) + TRAILING_COLUMNS)


def results_to_frames(result: PipelineResult, config: EngineConfig) -> dict[str, pd.DataFrame]:
    """
    Flatten pipeline output into display tables.

    Returns:
        Dict with "Master Sheet", "Subject Statistics" and "Facilitators"
        DataFrames.
    """
    master_rows = []
    for student in result.students:
        row = {ID_COLUMN: student.admission_id or student.student_id, NAME_COLUMN: student.name}
        by_subject = {g.subject: g for g in student.subjects}
        for subject in config.subjects:
            graded = by_subject.get(subject)
            row[subject] = graded.score if graded else None
            row[f"{subject} Grade"] = graded.grade if graded else ""
        row["Aggregate"] = student.best_six_aggregate
        row["Category"] = student.category
        row[ATTENDANCE_COLUMN] = student.attendance
        row[PROMOTED_TO_COLUMN] = student.promoted_to
        row[RECOMMENDATION_COLUMN] = student.recommendation
        master_rows.append(row)

    stats_rows = [
        {
            "Subject": subject,
            "Students": stats.sample_size,
            "Mean": stats.mean,
            "Std Dev": stats.std_dev,
            "Facilitator": config.facilitator_for(subject),
        }
        for subject, stats in result.statistics.subjects.items()
    ]

    facilitator_rows = [
        {
            "Facilitator": name,
            "Subjects": ", ".join(s for s in config.subjects if s in stats.subjects_taught),
            "Students": stats.student_count,
            "Average Score": stats.average_score,
            "Average Grade Point": stats.average_grade_point,
        }
        for name, stats in result.facilitators.items()
    ]

    return {
        "Master Sheet": pd.DataFrame(master_rows),
        "Subject Statistics": pd.DataFrame(
            stats_rows, columns=["Subject", "Students", "Mean", "Std Dev", "Facilitator"]
        ),
        "Facilitators": pd.DataFrame(
            facilitator_rows,
            columns=["Facilitator", "Subjects", "Students", "Average Score", "Average Grade Point"],
        ),
    }
