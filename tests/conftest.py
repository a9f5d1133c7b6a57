import pytest
import sys
from pathlib import Path

# Add the repo root to sys.path so grading_core imports without installing
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from grading_core.engine_config import load_engine_config  # noqa: E402
from grading_core.models import Student  # noqa: E402


# Common test fixtures
@pytest.fixture
def two_subject_config():
    """Junior High config narrowed to English and Mathematics."""
    return load_engine_config({
        "department": "Junior High School",
        "class_name": "Basic 8",
        "disabled_subjects": [
            "Integrated Science",
            "Social Studies",
            "Career Technology",
            "Creative Arts and Design",
            "Ghanaian Language",
            "Religious and Moral Education",
            "Computing",
            "French",
        ],
        "facilitators": {"English Language": "Mrs. Boateng", "Mathematics": "Mr. Owusu"},
    })


@pytest.fixture
def jhs_config():
    """Full default Junior High School configuration."""
    return load_engine_config({})


@pytest.fixture
def kindergarten_config():
    return load_engine_config({
        "department": "Kindergarten",
        "class_name": "KG 1",
        "active_indicators": ["Shares with Others"],
    })


@pytest.fixture
def make_student():
    """Factory for enrolled students."""
    def _make(student_id: str, scores: dict, attendance: int = 60, **kwargs) -> Student:
        kwargs.setdefault("admission_id", f"ADM-{student_id}")
        kwargs.setdefault("name", f"Pupil {student_id}")
        return Student(student_id=student_id, scores=scores, attendance=attendance, **kwargs)
    return _make
