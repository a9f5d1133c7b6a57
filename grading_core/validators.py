"""Validation utilities for grading configuration and score sheets."""

from typing import Any, Sequence
import pandas as pd


class ConfigError(ValueError):
    """Raised when a grading configuration cannot be used."""

    def __init__(self, problems: Sequence[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


def is_number(value: Any) -> bool:
    """True for int or float values; bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_norm_ladder(entries: Sequence[tuple[str, float | None]]) -> list[str]:
    """
    Check a z-score ladder given as (symbol, threshold) pairs, best grade first.

    Only the final entry may omit its threshold; it is the catch-all grade.
    """
    if not entries:
        return ["Grading ladder has no grades defined"]

    problems = []
    symbols = [symbol for symbol, _ in entries]
    duplicates = sorted({str(s) for s in symbols if symbols.count(s) > 1})
    if duplicates:
        problems.append(f"Duplicate grade symbols in ladder: {', '.join(duplicates)}")

    previous = None
    for i, (symbol, threshold) in enumerate(entries):
        if not isinstance(symbol, str) or not symbol.strip():
            problems.append(f"Ladder entry {i + 1} needs a non-empty text symbol")
        if threshold is None:
            if i != len(entries) - 1:
                problems.append(f"Only the last grade may omit its threshold ('{symbol}' does)")
            continue
        if not is_number(threshold):
            problems.append(f"Threshold for '{symbol}' must be a number, got {threshold!r}")
            continue
        if previous is not None and threshold >= previous:
            problems.append(
                f"Ladder thresholds must strictly decrease: '{symbol}' at {threshold} "
                f"is not below {previous}"
            )
        previous = threshold

    return problems


def check_criterion_ranges(
    entries: Sequence[tuple[str, float, float]],
    scale_min: float = 0,
    scale_max: float = 100,
) -> list[str]:
    """
    Check (symbol, min, max) score ranges for gaps and overlaps.

    Ranges follow the whole-mark convention of the qualitative grade table:
    a range ending at 39 is followed by one starting at 40.
    """
    if not entries:
        return ["Score ranges are empty"]

    problems = []
    symbols = [symbol for symbol, _, _ in entries]
    duplicates = sorted({str(s) for s in symbols if symbols.count(s) > 1})
    if duplicates:
        problems.append(f"Duplicate grade symbols in ranges: {', '.join(duplicates)}")

    for symbol, low, high in entries:
        if not isinstance(symbol, str) or not symbol.strip():
            problems.append(f"Range {low}-{high} needs a non-empty text symbol")
        if not is_number(low) or not is_number(high):
            problems.append(f"Range '{symbol}' bounds must be numbers, got {low!r} and {high!r}")
        elif low > high:
            problems.append(f"Range '{symbol}' has min {low} above max {high}")
    if any(not is_number(low) or not is_number(high) for _, low, high in entries):
        return problems
    if not is_number(scale_min) or not is_number(scale_max):
        return problems

    ordered = sorted(entries, key=lambda entry: entry[1])
    lowest_symbol, lowest_min, _ = ordered[0]
    if lowest_min > scale_min:
        problems.append(f"Scores from {scale_min} to {lowest_min} are not covered (below '{lowest_symbol}')")
    highest_symbol, _, highest_max = ordered[-1]
    if highest_max < scale_max:
        problems.append(f"Scores from {highest_max} to {scale_max} are not covered (above '{highest_symbol}')")

    for (prev_symbol, _, prev_max), (symbol, low, _) in zip(ordered, ordered[1:]):
        if low <= prev_max:
            problems.append(f"Ranges '{prev_symbol}' and '{symbol}' overlap")
        elif low > prev_max + 1:
            problems.append(f"Gap between '{prev_symbol}' (ends {prev_max}) and '{symbol}' (starts {low})")

    return problems


def _error(issues: list, message: str):
    issues.append({"type": "error", "message": message})


def _section(config: dict[str, Any], name: str, issues: list) -> dict[str, Any]:
    """Return a config section, reporting it and returning {} when it is not an object."""
    value = config.get(name, {})
    if not isinstance(value, dict):
        _error(issues, f"'{name}' must be an object, got {type(value).__name__}")
        return {}
    return value


def _check_text_list(config: dict[str, Any], key: str, issues: list):
    value = config.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        _error(issues, f"'{key}' must be a list of subject names")


def _check_ranges(key: str, ranges: Any, scale_min: Any, scale_max: Any, issues: list):
    if not isinstance(ranges, list) or not all(isinstance(r, dict) for r in ranges):
        _error(issues, f"Early childhood {key} scale must be a preset name or a list of ranges")
        return
    entries = [(r.get("symbol", ""), r.get("min"), r.get("max")) for r in ranges]
    for problem in check_criterion_ranges(entries, scale_min, scale_max):
        _error(issues, f"Early childhood {key} scale: {problem}")


def validate_config(config: dict[str, Any]) -> list[dict[str, str]]:
    """
    Validate a merged configuration and return list of issues.

    Values of the wrong type are reported as errors; checks that depend on
    them are skipped.

    Returns:
        List of dicts with 'type' (error/warning) and 'message'.
    """
    # Imported here: config_schema pulls presets that only validation needs
    from .config_schema import DEPARTMENTS, resolve_scale_ranges

    issues = []

    scale = _section(config, "scale", issues)
    scale_min = scale.get("min", 0)
    scale_max = scale.get("max", 100)
    scale_ok = is_number(scale_min) and is_number(scale_max)
    if not scale_ok:
        _error(issues, f"Score scale min and max must be numbers, got {scale_min!r} and {scale_max!r}")
    elif scale_min >= scale_max:
        _error(issues, f"Score scale min ({scale_min}) must be below max ({scale_max})")
    decimal_places = scale.get("decimal_places", 1)
    if not is_whole_number(decimal_places) or decimal_places < 0:
        _error(issues, "Score scale 'decimal_places' must be a whole number of at least 0")

    department = config.get("department")
    if not isinstance(department, str) or department not in DEPARTMENTS:
        _error(issues, f"Unknown department '{department}'")
    if not isinstance(config.get("class_name", ""), str):
        _error(issues, "'class_name' must be text")

    for key in ("custom_subjects", "disabled_subjects", "active_indicators"):
        _check_text_list(config, key, issues)

    grading = _section(config, "grading", issues)
    thresholds = grading.get("thresholds", [])
    if not isinstance(thresholds, list) or not all(isinstance(t, dict) for t in thresholds):
        _error(issues, "Grading 'thresholds' must be a list of {symbol, z} objects")
        ladder = []
    else:
        ladder = [(t.get("symbol", ""), t.get("z")) for t in thresholds]
        for problem in check_norm_ladder(ladder):
            _error(issues, problem)

    # Missing remarks fall back to the bare symbol
    remarks = grading.get("remarks", {})
    if not isinstance(remarks, dict):
        _error(issues, "Grading 'remarks' must map grade symbols to text")
    else:
        missing = [s for s, _ in ladder if isinstance(s, str) and s and s not in remarks]
        if missing:
            issues.append({
                "type": "warning",
                "message": f"No remark for grade(s) {', '.join(missing)}; the symbol will be shown instead"
            })

    early_childhood = grading.get("early_childhood", {})
    if not isinstance(early_childhood, dict):
        _error(issues, "Grading 'early_childhood' must be an object with 'core' and 'indicators'")
    else:
        for key in ("core", "indicators"):
            setting = early_childhood.get(key)
            if setting is not None and not isinstance(setting, (str, dict, list)):
                _error(issues, f"Early childhood {key} scale must be a preset name or a list of ranges")
                continue
            try:
                ranges = resolve_scale_ranges(key, setting)
            except KeyError as e:
                _error(issues, str(e.args[0]))
                continue
            _check_ranges(key, ranges, scale_min if scale_ok else 0, scale_max if scale_ok else 100, issues)

    promotion = _section(config, "promotion", issues)
    numeric = {}
    for key in ("cutoff_value", "min_attendance", "exceptional_cutoff", "attendance_total"):
        value = promotion.get(key, 0)
        if not is_number(value) or value < 0:
            _error(issues, f"Promotion setting '{key}' must be a non-negative number")
        else:
            numeric[key] = value
    best_of = promotion.get("best_of", 6)
    if not is_whole_number(best_of) or best_of < 1:
        _error(issues, "Promotion setting 'best_of' must be a whole number of at least 1")
    if promotion.get("partial_aggregate") not in ("sum_available", "pad_with_worst"):
        _error(issues, f"Unknown partial aggregate policy '{promotion.get('partial_aggregate')}'")
    if not isinstance(promotion.get("metric", "Aggregate"), str):
        _error(issues, "Promotion setting 'metric' must be text")
    if numeric.get("exceptional_cutoff", 0) > numeric.get("cutoff_value", float("inf")):
        issues.append({
            "type": "warning",
            "message": "Exceptional cutoff is above the promotion cutoff"
        })
    if numeric.get("min_attendance", 0) > numeric.get("attendance_total", float("inf")):
        issues.append({
            "type": "warning",
            "message": "Minimum attendance is above the total number of school days"
        })

    categories = _section(config, "categories", issues)
    bands = categories.get("bands", [])
    if not isinstance(bands, list) or not all(isinstance(b, dict) for b in bands):
        _error(issues, "Category 'bands' must be a list of {label, max_aggregate} objects")
    else:
        limits = [band.get("max_aggregate") for band in bands]
        if not all(is_number(limit) for limit in limits):
            _error(issues, "Category band 'max_aggregate' values must be numbers")
        elif any(upper <= lower for lower, upper in zip(limits, limits[1:])):
            _error(issues, "Category bands must have strictly increasing max_aggregate values")
        if not all(isinstance(band.get("label"), str) and band["label"].strip() for band in bands):
            _error(issues, "Every category band needs a label")
    lowest = categories.get("lowest", "")
    if not isinstance(lowest, str) or not lowest.strip():
        _error(issues, "No lowest category defined")
    if not isinstance(categories.get("remarks", {}), dict):
        _error(issues, "Category 'remarks' must map categories to text")

    facilitators = config.get("facilitators", {})
    if not isinstance(facilitators, dict):
        _error(issues, "'facilitators' must map subjects to facilitator names")
    else:
        blank = [subject for subject, name in facilitators.items() if not str(name or "").strip()]
        if blank:
            issues.append({
                "type": "warning",
                "message": f"Blank facilitator for: {', '.join(blank)}"
            })

    staff = config.get("staff", [])
    if not isinstance(staff, list) or not all(
        isinstance(member, dict) and isinstance(member.get("subjects") or [], list)
        for member in staff
    ):
        _error(issues, "'staff' must be a list of {name, subjects} objects")

    if not isinstance(config.get("output_file", ""), str):
        _error(issues, "'output_file' must be a file name")

    return issues


def validate_scores(
    scores_df: pd.DataFrame,
    subjects: list[str],
    config: dict[str, Any]
) -> list[dict[str, Any]]:
    """
    Validate scores in a roster DataFrame against the configured scale.

    Out-of-range scores are reported but still accepted; they are clamped
    when graded.

    Returns:
        List of dicts with 'row', 'column', 'value', 'type' and 'message'.
    """
    issues = []

    scale = config.get("scale", {})
    scale_min = scale.get("min", 0)
    scale_max = scale.get("max", 100)

    for col in subjects:
        if col not in scores_df.columns:
            continue

        for idx, value in scores_df[col].items():
            if pd.isna(value) or value == "":
                continue

            try:
                num_value = float(value)
                if num_value < scale_min or num_value > scale_max:
                    issues.append({
                        "row": idx,
                        "column": col,
                        "value": value,
                        "type": "warning",
                        "message": f"Score {value} is outside scale ({scale_min}-{scale_max}) and will be clamped"
                    })
            except (ValueError, TypeError):
                issues.append({
                    "row": idx,
                    "column": col,
                    "value": value,
                    "type": "error",
                    "message": f"Invalid score value: {value}"
                })

    return issues


def validate_students(students: list[dict[str, Any]]) -> list[dict[str, str]]:
    """
    Validate roster identities and return issues.

    Args:
        students: Dicts with at least 'id' and 'name' keys.

    Returns:
        List of dicts with 'type' and 'message'.
    """
    issues = []

    if not students:
        issues.append({
            "type": "error",
            "message": "No students provided"
        })
        return issues

    seen = set()
    duplicates = []
    for student in students:
        student_id = student.get("id")
        if student_id in seen:
            duplicates.append(str(student_id))
        seen.add(student_id)

    if duplicates:
        issues.append({
            "type": "error",
            "message": f"Duplicate pupil IDs: {', '.join(duplicates)}"
        })

    empty_count = sum(1 for s in students if not str(s.get("name") or "").strip())
    if empty_count:
        issues.append({
            "type": "warning",
            "message": f"{empty_count} empty student name(s) found"
        })

    unenrolled = sum(1 for s in students if not str(s.get("admission_id") or "").strip())
    if unenrolled:
        issues.append({
            "type": "warning",
            "message": f"{unenrolled} pupil(s) have no admission ID and will be left out of results"
        })

    return issues
