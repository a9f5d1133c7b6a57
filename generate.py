#!/usr/bin/env python3
"""
Class Results Generator

Reads configuration from config.json and scores from roster.csv, grades
every enrolled pupil, then writes an Excel workbook with the master sheet,
subject statistics and facilitator summary.

Usage:
    1. Edit config.json to set the department, class, grading keys and
       facilitators (missing keys use the defaults)
    2. Fill in roster.csv: Pupil ID, Name, Class, Attendance, one column per
       subject (run once without it to get a template)
    3. Run: python generate.py
    4. Open the generated Excel file
"""

import json
from pathlib import Path

from grading_core import (
    ConfigError,
    compute_all,
    create_roster_template,
    filter_enrolled,
    generate_workbook,
    load_engine_config,
    load_roster_csv,
    merge_config,
    roster_from_frame,
    validate_scores,
)


def load_config(config_path: str = "config.json") -> dict:
    """Load configuration from JSON file."""
    with open(config_path, "r") as f:
        return json.load(f)


def main():
    """Main entry point."""
    print("📊 Class Results Generator")
    print("=" * 40)

    # Load configuration
    config_path = Path("config.json")
    if config_path.exists():
        user_config = load_config(config_path)
        print(f"✓ Loaded configuration from {config_path}")
    else:
        user_config = {}
        print("ℹ️  config.json not found, using default configuration")

    try:
        engine_config = load_engine_config(user_config)
    except ConfigError as e:
        print("❌ Error: configuration is invalid:")
        for problem in e.problems:
            print(f"   - {problem}")
        return

    merged = merge_config(user_config)
    subjects = list(engine_config.subjects)
    print(f"✓ {engine_config.department.value}, {engine_config.class_name}: {len(subjects)} subjects")

    # Load scores
    roster_path = Path("roster.csv")
    if not roster_path.exists():
        template_path = Path("roster_template.csv")
        create_roster_template(subjects, class_name=engine_config.class_name).to_csv(template_path, index=False)
        print("❌ Error: roster.csv not found!")
        print(f"   A blank template was written to {template_path}.")
        return

    roster_df = load_roster_csv(roster_path)
    issues = validate_scores(roster_df, subjects, merged)
    for issue in issues:
        marker = "⚠️ " if issue["type"] == "warning" else "❌"
        print(f"{marker} Row {issue['row'] + 2}, {issue['column']}: {issue['message']}")

    students = filter_enrolled(roster_from_frame(roster_df, subjects))
    if not students:
        print("❌ Error: No enrolled pupils found in roster.csv!")
        print("   Every pupil needs a Pupil ID to be graded.")
        return

    print(f"✓ Loaded {len(students)} enrolled pupils from {roster_path}")

    # Grade
    print("\n📝 Grading...")
    result = compute_all(students, engine_config)

    wb = generate_workbook(
        result,
        engine_config,
        interpretations=merged["grading"]["interpretations"],
        decimal_places=merged["scale"]["decimal_places"],
    )

    output_file = merged.get("output_file", "results.xlsx")
    wb.save(output_file)
    print(f"✓ Saved to {output_file}")

    # Summary
    print("\n" + "=" * 40)
    print("📋 Summary:")
    print(f"   Pupils: {len(result.students)}")
    print(f"   Class average aggregate: {result.statistics.average_aggregate:.1f}")
    categories = {}
    for student in result.students:
        categories[student.category] = categories.get(student.category, 0) + 1
    for category, count in categories.items():
        print(f"   {category}: {count}")
    promoted = sum(1 for s in result.students if s.promoted)
    print(f"   Recommended for promotion: {promoted}")
    print(f"   Facilitators: {len(result.facilitators)}")

    print(f"\n🎉 Open {output_file} to review the results!")


if __name__ == "__main__":
    main()
