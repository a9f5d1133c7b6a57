"""Excel workbook export of grading results."""

from typing import Any
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from .engine_config import EngineConfig
from .models import CriterionScale, NormScale
from .pipeline import PipelineResult

# Fill colours for grade colour tags
TAG_FILLS = {
    "green": "C6EFCE",
    "teal": "DDEBF7",
    "blue": "BDD7EE",
    "amber": "FFE699",
    "red": "F8CBAD",
    "gray": "D9D9D9",
}

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F3864", end_color="1F3864", fill_type="solid")
SUBJECT_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
AGGREGATE_FILL = PatternFill(start_color="F4B183", end_color="F4B183", fill_type="solid")
CENTER_ALIGN = Alignment(horizontal="center", vertical="center")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin")
)


def col_letter(col_num: int) -> str:
    """Convert 1-based column number to Excel column letter."""
    return get_column_letter(col_num)


def tag_fill(color_tag: str) -> PatternFill | None:
    """Return the fill for a grade colour tag, or None when untagged."""
    color = TAG_FILLS.get(color_tag)
    if color is None:
        return None
    return PatternFill(start_color=color, end_color=color, fill_type="solid")


def _header(ws, row: int, column: int, value: Any, fill: PatternFill = HEADER_FILL):
    cell = ws.cell(row=row, column=column, value=value)
    cell.font = HEADER_FONT
    cell.fill = fill
    cell.alignment = CENTER_ALIGN
    cell.border = THIN_BORDER
    return cell


def _body(ws, row: int, column: int, value: Any, center: bool = True):
    cell = ws.cell(row=row, column=column, value=value)
    if center:
        cell.alignment = CENTER_ALIGN
    cell.border = THIN_BORDER
    return cell


def create_master_sheet(ws, result: PipelineResult, config: EngineConfig, decimal_places: int = 1):
    """
    Create the master board: one row per student, score and grade per subject.

    Grade cells are filled by colour tag; subjects counted in the
    aggregate are shown in bold.
    """
    subjects = list(config.subjects)

    # Build column structure
    col_id = 1
    col_name = 2
    col_subjects_start = 3
    col = col_subjects_start + 2 * len(subjects)
    col_aggregate = col
    col_category = col + 1
    col_attendance = col + 2
    col_promoted = col + 3
    col_recommendation = col + 4

    # --- Row 1: Main headers ---
    row = 1
    _header(ws, row, col_id, "Pupil ID")
    _header(ws, row, col_name, "Name")
    for i, subject in enumerate(subjects):
        c = col_subjects_start + 2 * i
        _header(ws, row, c, subject, SUBJECT_FILL)
        _header(ws, row, c + 1, None, SUBJECT_FILL)
        ws.merge_cells(start_row=row, start_column=c, end_row=row, end_column=c + 1)
    _header(ws, row, col_aggregate, f"Agg. (Best {config.promotion.best_of})", AGGREGATE_FILL)
    _header(ws, row, col_category, "Category")
    _header(ws, row, col_attendance, "Attendance")
    _header(ws, row, col_promoted, "Promoted To")
    _header(ws, row, col_recommendation, "Recommendation")

    # --- Row 2: Score / grade labels ---
    row = 2
    for c in (col_id, col_name, col_aggregate, col_category, col_attendance, col_promoted, col_recommendation):
        _body(ws, row, c, "")
    for i in range(len(subjects)):
        c = col_subjects_start + 2 * i
        _body(ws, row, c, "Score").font = Font(bold=True)
        _body(ws, row, c + 1, "Grd").font = Font(bold=True)

    # --- Student rows ---
    for student_idx, student in enumerate(result.students):
        row = 3 + student_idx
        by_subject = {g.subject: g for g in student.subjects}

        _body(ws, row, col_id, student.admission_id or student.student_id)
        _body(ws, row, col_name, student.name, center=False)

        for i, subject in enumerate(subjects):
            c = col_subjects_start + 2 * i
            graded = by_subject.get(subject)
            if graded is None:
                _body(ws, row, c, "")
                _body(ws, row, c + 1, "-")
                continue
            _body(ws, row, c, round(graded.score, decimal_places))
            grade_cell = _body(ws, row, c + 1, graded.grade)
            fill = tag_fill(graded.color_tag)
            if fill is not None:
                grade_cell.fill = fill
            if subject in student.aggregate_subjects:
                grade_cell.font = Font(bold=True)

        aggregate_cell = _body(ws, row, col_aggregate, student.best_six_aggregate)
        aggregate_cell.fill = AGGREGATE_FILL
        _body(ws, row, col_category, student.category)
        attendance_cell = _body(
            ws, row, col_attendance, f"{student.attendance}/{config.promotion.attendance_total}"
        )
        if student.below_min_attendance:
            attendance_cell.font = Font(bold=True, color="C00000")
        _body(ws, row, col_promoted, student.promoted_to)
        _body(ws, row, col_recommendation, student.recommendation, center=False)

    # --- Class average row ---
    row = 3 + len(result.students)
    ws.cell(row=row, column=col_name, value="Class Average").font = Font(bold=True)
    for i, subject in enumerate(subjects):
        stats = result.statistics.for_subject(subject)
        if stats.sample_size:
            c = col_subjects_start + 2 * i
            ws.cell(row=row, column=c, value=round(stats.mean, decimal_places)).alignment = CENTER_ALIGN
    ws.cell(
        row=row,
        column=col_aggregate,
        value=round(result.statistics.average_aggregate, decimal_places)
    ).alignment = CENTER_ALIGN

    # Adjust column widths
    ws.column_dimensions[col_letter(col_id)].width = 14
    ws.column_dimensions[col_letter(col_name)].width = 28
    for i in range(len(subjects)):
        c = col_subjects_start + 2 * i
        ws.column_dimensions[col_letter(c)].width = 9
        ws.column_dimensions[col_letter(c + 1)].width = 7
    ws.column_dimensions[col_letter(col_aggregate)].width = 14
    ws.column_dimensions[col_letter(col_category)].width = 14
    ws.column_dimensions[col_letter(col_attendance)].width = 12
    ws.column_dimensions[col_letter(col_promoted)].width = 14
    ws.column_dimensions[col_letter(col_recommendation)].width = 60
    ws.freeze_panes = "C3"


def create_statistics_sheet(ws, result: PipelineResult, config: EngineConfig, decimal_places: int = 1):
    """Create a sheet with per-subject cohort statistics."""
    headers = ["Subject", "Students", "Mean", "Std Dev", "Grading", "Facilitator"]
    for col_idx, header in enumerate(headers, 1):
        _header(ws, 1, col_idx, header)

    for row_idx, subject in enumerate(config.subjects, 2):
        stats = result.statistics.for_subject(subject)
        scale = config.scales[subject]
        grading = "Norm-referenced" if isinstance(scale, NormScale) else "Criterion-referenced"
        _body(ws, row_idx, 1, subject, center=False)
        _body(ws, row_idx, 2, stats.sample_size)
        _body(ws, row_idx, 3, round(stats.mean, decimal_places))
        _body(ws, row_idx, 4, round(stats.std_dev, decimal_places + 2))
        _body(ws, row_idx, 5, grading)
        _body(ws, row_idx, 6, config.facilitator_for(subject), center=False)

    row = len(config.subjects) + 3
    ws.cell(row=row, column=1, value="Class Average Aggregate").font = Font(bold=True)
    ws.cell(row=row, column=3, value=round(result.statistics.average_aggregate, decimal_places))

    for col_idx, width in enumerate([32, 10, 10, 10, 22, 28], 1):
        ws.column_dimensions[col_letter(col_idx)].width = width


def create_facilitator_sheet(ws, result: PipelineResult, config: EngineConfig, decimal_places: int = 1):
    """Create a sheet summarising each facilitator's classes."""
    headers = ["Facilitator", "Subjects Taught", "Students", "Average Score", "Average Grade Point"]
    for col_idx, header in enumerate(headers, 1):
        _header(ws, 1, col_idx, header)

    for row_idx, (name, stats) in enumerate(result.facilitators.items(), 2):
        taught = [s for s in config.subjects if s in stats.subjects_taught]
        _body(ws, row_idx, 1, name, center=False)
        _body(ws, row_idx, 2, ", ".join(taught), center=False)
        _body(ws, row_idx, 3, stats.student_count)
        _body(ws, row_idx, 4, round(stats.average_score, decimal_places))
        _body(ws, row_idx, 5, round(stats.average_grade_point, 2))

    for col_idx, width in enumerate([28, 50, 10, 14, 20], 1):
        ws.column_dimensions[col_letter(col_idx)].width = width


def generate_workbook(
    result: PipelineResult,
    config: EngineConfig,
    interpretations: dict[str, str] | None = None,
    decimal_places: int = 1
) -> Workbook:
    """
    Generate the results workbook.

    Args:
        result: Output of compute_all
        config: Engine configuration the result was computed with
        interpretations: Optional symbol to description text for the
            grading key
        decimal_places: Rounding for scores and averages

    Returns:
        openpyxl Workbook object
    """
    interpretations = interpretations or {}
    wb = Workbook()

    # Remove default sheet
    wb.remove(wb.active)

    create_master_sheet(wb.create_sheet(title="Master Sheet"), result, config, decimal_places)
    create_statistics_sheet(wb.create_sheet(title="Subject Statistics"), result, config, decimal_places)
    if result.facilitators:
        create_facilitator_sheet(wb.create_sheet(title="Facilitators"), result, config, decimal_places)

    # Create instructions / grading key sheet
    ws_info = wb.create_sheet(title="Grading Key", index=0)
    ws_info["A1"] = f"{config.department.value}: {config.class_name}"
    ws_info["A1"].font = Font(bold=True, size=16)
    ws_info["A3"] = f"Students: {len(result.students)}"
    ws_info["A4"] = f"Class average aggregate: {round(result.statistics.average_aggregate, decimal_places)}"
    ws_info["A5"] = (
        f"Aggregate: best {config.promotion.best_of} subjects, lower is better. "
        f"Promotion at or below {config.promotion.cutoff_value} with at least "
        f"{config.promotion.min_attendance} of {config.promotion.attendance_total} days attended."
    )

    row = 7
    seen = []
    for scale in config.scales.values():
        if any(scale is other for other in seen):
            continue
        seen.append(scale)
        if isinstance(scale, NormScale):
            ws_info[f"A{row}"] = "Grades (relative to class mean):"
            ws_info[f"A{row}"].font = Font(bold=True)
            row += 1
            for threshold in scale.thresholds:
                text = interpretations.get(threshold.symbol, "")
                ws_info[f"A{row}"] = f"  {threshold.symbol} = {scale.remark_for(threshold.symbol)}  {text}".rstrip()
                fill = tag_fill(threshold.color_tag)
                if fill is not None:
                    ws_info[f"A{row}"].fill = fill
                row += 1
        elif isinstance(scale, CriterionScale):
            ws_info[f"A{row}"] = "Grades (fixed score ranges):"
            ws_info[f"A{row}"].font = Font(bold=True)
            row += 1
            for grade_range in scale.ranges:
                ws_info[f"A{row}"] = (
                    f"  {grade_range.symbol} = {scale.remark_for(grade_range.symbol)}: "
                    f"{grade_range.min_score} - {grade_range.max_score}"
                )
                fill = tag_fill(grade_range.color_tag)
                if fill is not None:
                    ws_info[f"A{row}"].fill = fill
                row += 1
        row += 1

    if config.categories.bands:
        ws_info[f"A{row}"] = "Categories:"
        ws_info[f"A{row}"].font = Font(bold=True)
        row += 1
        for band in config.categories.bands:
            ws_info[f"A{row}"] = f"  {band.label}: aggregate up to {band.max_aggregate}"
            row += 1
        ws_info[f"A{row}"] = f"  {config.categories.lowest}: anything higher"

    ws_info.column_dimensions["A"].width = 80

    return wb
