"""Configuration schema and defaults for the grading engine."""

from typing import Any
import copy

DEPARTMENTS = [
    "Daycare",
    "Nursery",
    "Kindergarten",
    "Lower Basic School",
    "Upper Basic School",
    "Junior High School",
]

EARLY_CHILDHOOD_SUBJECTS = [
    "Language and Literacy",
    "Numeracy",
    "Our World Our People",
    "Creative Activities",
    "Physical Development",
]

DEPARTMENT_SUBJECTS: dict[str, list[str]] = {
    "Daycare": EARLY_CHILDHOOD_SUBJECTS,
    "Nursery": EARLY_CHILDHOOD_SUBJECTS,
    "Kindergarten": EARLY_CHILDHOOD_SUBJECTS,
    "Lower Basic School": [
        "English Language",
        "Mathematics",
        "Science",
        "Our World Our People",
        "Creative Arts",
        "Ghanaian Language",
        "Religious and Moral Education",
        "Physical Education",
    ],
    "Upper Basic School": [
        "English Language",
        "Mathematics",
        "Science",
        "Our World Our People",
        "Creative Arts",
        "Ghanaian Language",
        "Religious and Moral Education",
        "Computing",
        "French",
    ],
    "Junior High School": [
        "English Language",
        "Mathematics",
        "Integrated Science",
        "Social Studies",
        "Career Technology",
        "Creative Arts and Design",
        "Ghanaian Language",
        "Religious and Moral Education",
        "Computing",
        "French",
    ],
}

DEPARTMENT_CLASSES: dict[str, list[str]] = {
    "Daycare": ["Creche", "Daycare"],
    "Nursery": ["Nursery 1", "Nursery 2"],
    "Kindergarten": ["KG 1", "KG 2"],
    "Lower Basic School": ["Basic 1", "Basic 2", "Basic 3"],
    "Upper Basic School": ["Basic 4", "Basic 5", "Basic 6"],
    "Junior High School": ["Basic 7", "Basic 8", "Basic 9"],
}

FINAL_CLASS_OUTCOME = "Graduated"

DAYCARE_INDICATORS = [
    "Responds to Instructions",
    "Shares with Others",
    "Fine Motor Skills",
    "Gross Motor Skills",
    "Self-Help Skills",
    "Expresses Needs Verbally",
    "Recognises Colours",
    "Recognises Shapes",
]

DEFAULT_GRADING_REMARKS = {
    "A1": "Excellent",
    "B2": "Very Good",
    "B3": "Good",
    "C4": "Credit",
    "C5": "Credit",
    "C6": "Credit",
    "D7": "Pass",
    "E8": "Pass",
    "F9": "Fail",
}

EC_CORE_SCALES: dict[str, list[dict[str, Any]]] = {
    "3_point": [
        {"symbol": "A", "min": 70, "max": 100, "color": "green", "remark": "Advanced"},
        {"symbol": "P", "min": 40, "max": 69, "color": "blue", "remark": "Proficient"},
        {"symbol": "D", "min": 0, "max": 39, "color": "red", "remark": "Developing"},
    ],
    "5_point": [
        {"symbol": "A", "min": 80, "max": 100, "color": "green", "remark": "Excellent"},
        {"symbol": "B", "min": 70, "max": 79, "color": "teal", "remark": "Very Good"},
        {"symbol": "C", "min": 60, "max": 69, "color": "blue", "remark": "Good"},
        {"symbol": "D", "min": 50, "max": 59, "color": "amber", "remark": "Fair"},
        {"symbol": "E", "min": 0, "max": 49, "color": "red", "remark": "Needs Improvement"},
    ],
    "9_point": [
        {"symbol": "A1", "min": 80, "max": 100, "color": "green", "remark": "Excellent"},
        {"symbol": "B2", "min": 75, "max": 79, "color": "teal", "remark": "Very Good"},
        {"symbol": "B3", "min": 70, "max": 74, "color": "teal", "remark": "Good"},
        {"symbol": "C4", "min": 65, "max": 69, "color": "blue", "remark": "Credit"},
        {"symbol": "C5", "min": 60, "max": 64, "color": "blue", "remark": "Credit"},
        {"symbol": "C6", "min": 55, "max": 59, "color": "blue", "remark": "Credit"},
        {"symbol": "D7", "min": 50, "max": 54, "color": "amber", "remark": "Pass"},
        {"symbol": "E8", "min": 45, "max": 49, "color": "amber", "remark": "Pass"},
        {"symbol": "F9", "min": 0, "max": 44, "color": "red", "remark": "Fail"},
    ],
}

INDICATOR_SCALES: dict[str, list[dict[str, Any]]] = {
    "3_point": [
        {"symbol": "C", "min": 70, "max": 100, "color": "green", "remark": "Consistently"},
        {"symbol": "S", "min": 40, "max": 69, "color": "amber", "remark": "Sometimes"},
        {"symbol": "N", "min": 0, "max": 39, "color": "red", "remark": "Not Yet"},
    ],
    "5_point": [
        {"symbol": "5", "min": 90, "max": 100, "color": "green", "remark": "Exceptional"},
        {"symbol": "4", "min": 75, "max": 89, "color": "teal", "remark": "Secure"},
        {"symbol": "3", "min": 50, "max": 74, "color": "blue", "remark": "Developing"},
        {"symbol": "2", "min": 25, "max": 49, "color": "amber", "remark": "Emerging"},
        {"symbol": "1", "min": 0, "max": 24, "color": "red", "remark": "Not Observed"},
    ],
}

DEFAULT_CONFIG: dict[str, Any] = {
    "scale": {
        "min": 0,
        "max": 100,
        "decimal_places": 1
    },
    "department": "Junior High School",
    "class_name": "Basic 9",
    "custom_subjects": [],
    "disabled_subjects": [],
    "active_indicators": list(DAYCARE_INDICATORS),
    "grading": {
        "thresholds": [
            {"symbol": "A1", "z": 1.645, "color": "green"},
            {"symbol": "B2", "z": 1.036, "color": "teal"},
            {"symbol": "B3", "z": 0.524, "color": "teal"},
            {"symbol": "C4", "z": 0.0, "color": "blue"},
            {"symbol": "C5", "z": -0.524, "color": "blue"},
            {"symbol": "C6", "z": -1.036, "color": "blue"},
            {"symbol": "D7", "z": -1.645, "color": "amber"},
            {"symbol": "E8", "z": -2.326, "color": "amber"},
            {"symbol": "F9", "z": None, "color": "red"}
        ],
        "remarks": dict(DEFAULT_GRADING_REMARKS),
        "interpretations": {
            "A1": "Score >= Mean + 1.645 SD",
            "B2": "Score >= Mean + 1.036 SD",
            "B3": "Score >= Mean + 0.524 SD",
            "C4": "Score >= Mean",
            "C5": "Score >= Mean - 0.524 SD",
            "C6": "Score >= Mean - 1.036 SD",
            "D7": "Score >= Mean - 1.645 SD",
            "E8": "Score >= Mean - 2.326 SD",
            "F9": "Score < Mean - 2.326 SD"
        },
        "early_childhood": {
            "core": "3_point",
            "indicators": "3_point"
        }
    },
    "facilitators": {},
    "staff": [],
    "promotion": {
        "metric": "Aggregate",
        "cutoff_value": 36,
        "min_attendance": 45,
        "exceptional_cutoff": 10,
        "attendance_total": 60,
        "best_of": 6,
        "partial_aggregate": "sum_available"
    },
    "categories": {
        "bands": [
            {"label": "Distinction", "max_aggregate": 12},
            {"label": "Credit", "max_aggregate": 24},
            {"label": "Pass", "max_aggregate": 36}
        ],
        "lowest": "Fail",
        "remarks": {
            "Distinction": "An outstanding performance. Keep it up.",
            "Credit": "A good performance with room to do even better.",
            "Pass": "A fair performance. More effort is needed.",
            "Fail": "Performance is below expectation and needs serious attention."
        }
    },
    "output_file": "results.xlsx"
}

# Sections merged key by key; everything else is replaced wholesale
_NESTED_SECTIONS = ("scale", "grading", "promotion", "categories")


def get_default_config() -> dict[str, Any]:
    """Return a deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def unknown_keys(user_config: dict[str, Any]) -> list[str]:
    """List keys in a user configuration that the engine does not recognise."""
    unknown = [key for key in user_config if key not in DEFAULT_CONFIG]
    for section in _NESTED_SECTIONS:
        value = user_config.get(section)
        if isinstance(value, dict):
            unknown.extend(
                f"{section}.{key}" for key in value if key not in DEFAULT_CONFIG[section]
            )
    return unknown


def merge_config(user_config: dict[str, Any]) -> dict[str, Any]:
    """
    Merge user configuration with defaults.

    User config values override defaults. Missing keys use default values.
    Unknown keys are dropped. A section given as something other than an
    object is kept as given so validate_config can report it.
    """
    result = get_default_config()

    for section in _NESTED_SECTIONS:
        if section not in user_config:
            continue
        value = user_config[section]
        if not isinstance(value, dict):
            result[section] = copy.deepcopy(value)
            continue
        known = {k: copy.deepcopy(v) for k, v in value.items() if k in result[section]}
        if section == "grading" and "early_childhood" in known:
            early_childhood = known.pop("early_childhood")
            if isinstance(early_childhood, dict):
                result["grading"]["early_childhood"].update(early_childhood)
            elif early_childhood is not None:
                result["grading"]["early_childhood"] = early_childhood
        result[section].update(known)

    for key in DEFAULT_CONFIG:
        if key in _NESTED_SECTIONS or key not in user_config:
            continue
        result[key] = copy.deepcopy(user_config[key])

    return result


def resolve_scale_ranges(kind: str, value: Any) -> list[dict[str, Any]]:
    """
    Turn an early-childhood scale setting into a list of range dicts.

    Args:
        kind: "core" or "indicators"
        value: Preset name, a dict with a "ranges" list, a list of ranges,
            or None for the 3-point default.

    Raises:
        KeyError: If a preset name is not known.
    """
    presets = EC_CORE_SCALES if kind == "core" else INDICATOR_SCALES
    if value is None:
        value = "3_point"
    if isinstance(value, str):
        if value not in presets:
            raise KeyError(
                f"Unknown {kind} scale preset '{value}' (choose from {', '.join(presets)})"
            )
        return copy.deepcopy(presets[value])
    if isinstance(value, dict):
        return copy.deepcopy(value.get("ranges", []))
    return copy.deepcopy(list(value))
