"""
Unit Tests for Excel Export

Tests for generate_workbook sheet layout.
"""

import pytest
from openpyxl import load_workbook

from grading_core.excel_generator import generate_workbook, tag_fill
from grading_core.pipeline import compute_all


@pytest.fixture
def result(make_student, two_subject_config):
    students = [
        make_student("1", {"English Language": 90, "Mathematics": 90}),
        make_student("2", {"English Language": 50, "Mathematics": 50}, attendance=20),
    ]
    return compute_all(students, two_subject_config)


class TestGenerateWorkbook:
    """Tests for the workbook built from a pipeline result."""

    def test_generate_when_result_given_then_all_sheets_present(self, result, two_subject_config):
        wb = generate_workbook(result, two_subject_config)
        assert wb.sheetnames == ["Grading Key", "Master Sheet", "Subject Statistics", "Facilitators"]

    def test_generate_when_no_facilitators_then_sheet_omitted(self, two_subject_config):
        wb = generate_workbook(compute_all([], two_subject_config), two_subject_config)
        assert "Facilitators" not in wb.sheetnames

    def test_master_sheet_when_saved_then_scores_and_grades_in_pairs(self, result, two_subject_config, tmp_path):
        # Arrange
        path = tmp_path / "results.xlsx"

        # Act
        generate_workbook(result, two_subject_config).save(path)
        ws = load_workbook(path)["Master Sheet"]

        # Assert
        assert ws.cell(row=1, column=1).value == "Pupil ID"
        assert ws.cell(row=1, column=3).value == "English Language"
        assert ws.cell(row=1, column=5).value == "Mathematics"
        assert ws.cell(row=2, column=3).value == "Score"
        assert ws.cell(row=2, column=4).value == "Grd"
        assert ws.cell(row=3, column=1).value == "ADM-1"
        assert ws.cell(row=3, column=3).value == 90
        assert ws.cell(row=3, column=4).value == "B3"
        assert ws.cell(row=3, column=7).value == 6
        assert ws.cell(row=4, column=6).value == "C6"
        assert ws.cell(row=5, column=2).value == "Class Average"
        assert ws.cell(row=5, column=3).value == 70

    def test_master_sheet_when_attendance_short_then_kept_in_class(self, result, two_subject_config):
        ws = generate_workbook(result, two_subject_config)["Master Sheet"]
        assert ws.cell(row=4, column=9).value == "20/60"
        assert ws.cell(row=4, column=10).value == "Basic 8"

    def test_statistics_sheet_when_generated_then_one_row_per_subject(self, result, two_subject_config):
        ws = generate_workbook(result, two_subject_config)["Subject Statistics"]
        assert [ws.cell(row=r, column=1).value for r in (2, 3)] == ["English Language", "Mathematics"]
        assert ws.cell(row=3, column=4).value == 20
        assert ws.cell(row=3, column=6).value == "Mr. Owusu"

    def test_grading_key_when_interpretations_given_then_listed(self, result, two_subject_config):
        wb = generate_workbook(result, two_subject_config, interpretations={"A1": "Top of the class"})
        text = [cell.value for cell in wb["Grading Key"]["A"] if cell.value]
        assert any("A1 = Excellent  Top of the class" in line for line in text)
        assert text[0] == "Junior High School: Basic 8"

    def test_tag_fill_when_unknown_tag_then_none(self):
        assert tag_fill("purple") is None
        assert tag_fill("green") is not None
