"""Core module for class grading, statistics and facilitator reports."""

from .config_schema import DEFAULT_CONFIG, get_default_config, merge_config
from .validators import ConfigError, validate_config, validate_scores, validate_students
from .models import (
    UNASSIGNED_FACILITATOR,
    ClassStatistics,
    Department,
    FacilitatorStats,
    GradedSubject,
    ProcessedStudent,
    Student,
    SubjectStatistics,
)
from .engine_config import EngineConfig, build_subject_list, load_engine_config
from .pipeline import PipelineResult, compute_all, filter_enrolled, inputs_fingerprint
from .roster import create_roster_template, load_roster_csv, results_to_frames, roster_from_frame
from .excel_generator import generate_workbook

__all__ = [
    "DEFAULT_CONFIG",
    "get_default_config",
    "merge_config",
    "ConfigError",
    "validate_config",
    "validate_scores",
    "validate_students",
    "UNASSIGNED_FACILITATOR",
    "ClassStatistics",
    "Department",
    "FacilitatorStats",
    "GradedSubject",
    "ProcessedStudent",
    "Student",
    "SubjectStatistics",
    "EngineConfig",
    "build_subject_list",
    "load_engine_config",
    "PipelineResult",
    "compute_all",
    "filter_enrolled",
    "inputs_fingerprint",
    "create_roster_template",
    "load_roster_csv",
    "results_to_frames",
    "roster_from_frame",
    "generate_workbook",
]
