"""
Streamlit Class Results Portal

Grades a class from a score sheet: cohort statistics, letter grades,
best-six aggregates, categories and facilitator summaries.
"""

import streamlit as st
import pandas as pd
import json
import io
from typing import Any

from grading_core import (
    ConfigError,
    DEFAULT_CONFIG,
    compute_all,
    create_roster_template,
    filter_enrolled,
    generate_workbook,
    get_default_config,
    inputs_fingerprint,
    load_engine_config,
    load_roster_csv,
    merge_config,
    results_to_frames,
    roster_from_frame,
    validate_config,
    validate_scores,
    validate_students,
)
from grading_core.config_schema import DEPARTMENT_CLASSES, DEPARTMENTS
from grading_core.roster import ID_COLUMN, NAME_COLUMN


# Page configuration
st.set_page_config(
    page_title="Class Results Portal",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="collapsed"
)


def init_session_state():
    """Initialize session state with default values."""
    if "config" not in st.session_state:
        st.session_state.config = get_default_config()

    if "config_loaded" not in st.session_state:
        st.session_state.config_loaded = False

    if "roster_df" not in st.session_state:
        st.session_state.roster_df = None


def config_to_json(config: dict) -> str:
    """Convert config dict to JSON string."""
    return json.dumps(config, indent=2)


@st.cache_data(show_spinner=False)
def run_pipeline(fingerprint: str, _students: list, user_config: str):
    """
    Grade the class; cached on the input fingerprint.

    Streamlit skips hashing arguments that start with an underscore, so the
    fingerprint alone decides whether the cached result is reused.
    """
    engine_config = load_engine_config(json.loads(user_config))
    return engine_config, compute_all(_students, engine_config)


def get_workflow_status() -> dict:
    """Get the completion status of each workflow step."""
    roster_df = st.session_state.roster_df
    return {
        "config": st.session_state.config_loaded,
        "roster": roster_df is not None and not roster_df.empty,
    }


def render_sidebar():
    """Render a minimal sidebar for quick config access."""
    st.sidebar.header("Quick Access")

    uploaded_config = st.sidebar.file_uploader(
        "Upload config JSON",
        type=["json"],
        key="sidebar_config_uploader",
        help="Quick upload for config file"
    )

    if uploaded_config is not None:
        try:
            user_config = json.load(uploaded_config)
            if isinstance(user_config, dict):
                st.session_state.config = merge_config(user_config)
                st.session_state.config_loaded = True
                st.sidebar.success("✓ Config loaded!")
            else:
                st.sidebar.error("Config must be a JSON object")
        except json.JSONDecodeError:
            st.sidebar.error("Invalid JSON file")

    st.sidebar.download_button(
        "📥 Download Config",
        data=config_to_json(st.session_state.config),
        file_name="grading_config.json",
        mime="application/json"
    )


def render_config_summary(config: dict):
    """Render the grading key, promotion rules and categories side by side."""
    promotion = config["promotion"]
    c1, c2, c3 = st.columns(3)

    with c1:
        st.markdown("**Grading Key:**")
        remarks = config["grading"]["remarks"]
        for threshold in config["grading"]["thresholds"]:
            symbol = threshold["symbol"]
            st.markdown(f"- {symbol}: {remarks.get(symbol, symbol)}")

    with c2:
        st.markdown(f"""
**Promotion cutoff:** aggregate ≤ {promotion['cutoff_value']}

**Exceptional:** aggregate ≤ {promotion['exceptional_cutoff']}

**Attendance:** {promotion['min_attendance']} of {promotion['attendance_total']} days

**Best of:** {promotion['best_of']} subjects
""")

    with c3:
        st.markdown("**Categories:**")
        for band in config["categories"]["bands"]:
            st.markdown(f"- {band['label']}: ≤ {band['max_aggregate']}")
        st.markdown(f"- {config['categories']['lowest']}: above")


def render_step1_config():
    """Render Step 1: Configuration."""
    status = get_workflow_status()

    if status["config"]:
        st.header("Step 1: Configuration ✓")
    else:
        st.header("Step 1: Configuration")

    st.markdown("Upload a JSON configuration file or pick a department and class below.")

    config = st.session_state.config
    col1, col2 = st.columns([1, 2])

    with col1:
        uploaded_config = st.file_uploader(
            "Upload config JSON",
            type=["json"],
            key="config_uploader",
            help="Upload a JSON file with your grading configuration"
        )

        if uploaded_config is not None:
            try:
                user_config = json.load(uploaded_config)
                if isinstance(user_config, dict):
                    st.session_state.config = merge_config(user_config)
                    st.session_state.config_loaded = True
                    config = st.session_state.config
                    st.success("✓ Config loaded successfully!")
                else:
                    st.error("Config must be a JSON object")
            except json.JSONDecodeError:
                st.error("Invalid JSON file")

        department = st.selectbox(
            "Department",
            options=DEPARTMENTS,
            index=DEPARTMENTS.index(config["department"]) if config["department"] in DEPARTMENTS else 0,
        )
        classes = DEPARTMENT_CLASSES[department]
        class_name = st.selectbox(
            "Class",
            options=classes,
            index=classes.index(config["class_name"]) if config["class_name"] in classes else 0,
        )
        config["department"] = department
        config["class_name"] = class_name

        st.download_button(
            "📥 Download Current Config",
            data=config_to_json(config),
            file_name="grading_config.json",
            mime="application/json"
        )

    issues = validate_config(config)
    has_errors = any(issue["type"] == "error" for issue in issues)

    with col2:
        st.subheader("Current Configuration")
        if has_errors:
            st.caption("Fix the errors below to see the configuration summary")
        else:
            render_config_summary(config)

    for issue in issues:
        if issue["type"] == "warning":
            st.warning(f"⚠️ {issue['message']}")
        else:
            st.error(f"❌ {issue['message']}")

    if not issues and not status["config"]:
        st.info("Using default configuration. Upload a custom config or proceed with defaults.")


def active_subjects() -> list[str]:
    """Subject list for the configured class, or [] when the config is invalid."""
    try:
        return list(load_engine_config(st.session_state.config).subjects)
    except ConfigError:
        return []


def render_step2_roster():
    """Render Step 2: Score sheet."""
    status = get_workflow_status()
    config = st.session_state.config
    subjects = active_subjects()

    if status["roster"]:
        st.header(f"Step 2: Scores ✓ ({len(st.session_state.roster_df)} rows)")
    else:
        st.header("Step 2: Scores")

    if not subjects:
        st.warning("⚠️ Fix the configuration errors in Step 1 first")
        return

    st.markdown("Download the CSV template, fill in scores in Excel/Google Sheets, then upload the completed CSV.")

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("📥 Download Template")
        template_df = create_roster_template(subjects, class_name=config["class_name"])
        st.download_button(
            "Download CSV Template",
            data=template_df.to_csv(index=False),
            file_name=f"{config['class_name'].replace(' ', '_')}_scores.csv",
            mime="text/csv",
            type="primary"
        )
        st.caption("Pupils without a Pupil ID are not graded")

    with col2:
        st.subheader("📤 Upload Filled CSV")
        uploaded_scores = st.file_uploader(
            "Upload completed score sheet",
            type=["csv"],
            key="scores_upload",
            label_visibility="collapsed"
        )

        if uploaded_scores is not None:
            try:
                st.session_state.roster_df = load_roster_csv(uploaded_scores)
                st.success("✓ Scores imported successfully!")
            except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
                st.error(f"Error importing CSV: {e}")

    roster_df = st.session_state.roster_df
    if roster_df is None or roster_df.empty:
        st.info("Upload a CSV file to continue")
        return

    identities = [
        {"id": row.get(ID_COLUMN), "name": row.get(NAME_COLUMN), "admission_id": row.get(ID_COLUMN)}
        for _, row in roster_df.fillna("").iterrows()
    ]
    for issue in validate_students(identities) + validate_scores(roster_df, subjects, config):
        if issue["type"] == "warning":
            st.warning(f"⚠️ {issue['message']}")
        else:
            st.error(f"❌ {issue['message']}")

    missing = [s for s in subjects if s not in roster_df.columns]
    if missing:
        st.info(f"No column for: {', '.join(missing)}. Those subjects are treated as unscored.")


def compute_results() -> tuple[Any, Any] | None:
    """Run (or reuse) the pipeline for the current inputs."""
    roster_df = st.session_state.roster_df
    if roster_df is None or roster_df.empty:
        return None
    config = st.session_state.config
    subjects = active_subjects()
    if not subjects:
        return None
    students = filter_enrolled(roster_from_frame(roster_df, subjects))
    fingerprint = inputs_fingerprint(students, config)
    return run_pipeline(fingerprint, students, config_to_json(config))


def render_step3_results():
    """Render Step 3: Results."""
    st.header("Step 3: Results")

    computed = compute_results()
    if computed is None:
        st.info("Complete Steps 1 and 2 to see results")
        return

    engine_config, result = computed
    if not result.students:
        st.warning("⚠️ No enrolled pupils in the score sheet")
        return

    frames = results_to_frames(result, engine_config)

    c1, c2, c3 = st.columns(3)
    c1.metric("Pupils", len(result.students))
    c2.metric("Class average aggregate", f"{result.statistics.average_aggregate:.1f}")
    c3.metric("Recommended for promotion", sum(1 for s in result.students if s.promoted))

    tab_names = ["📋 Master Board", "🧾 Report Cards", "📊 Subject Statistics"]
    if not engine_config.department.is_early_childhood:
        tab_names.append("👩‍🏫 Facilitators")
    tabs = st.tabs(tab_names)

    with tabs[0]:
        st.dataframe(frames["Master Sheet"], hide_index=True, use_container_width=True)

    with tabs[1]:
        for student in result.students:
            with st.expander(f"{student.name} · Agg. {student.best_six_aggregate} · {student.category}"):
                rows = [
                    {
                        "Subject": g.subject,
                        "Score": g.score,
                        "Avg": round(result.statistics.for_subject(g.subject).mean),
                        "Grade": g.grade,
                        "Remark": g.remark,
                        "Facilitator": g.facilitator,
                    }
                    for g in student.subjects
                ]
                st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)
                st.markdown(f"**Attendance:** {student.attendance}/{engine_config.promotion.attendance_total}")
                st.markdown(f"**General remarks:** {student.overall_remark}")
                st.markdown(f"**Recommendation:** {student.recommendation}")
                st.markdown(f"**Promoted to:** {student.promoted_to or '-'}")

    with tabs[2]:
        st.dataframe(frames["Subject Statistics"], hide_index=True, use_container_width=True)

    if len(tabs) > 3:
        with tabs[3]:
            st.dataframe(frames["Facilitators"], hide_index=True, use_container_width=True)


def render_step4_generate():
    """Render Step 4: Generate Excel."""
    st.header("Step 4: Generate Excel")

    computed = compute_results()
    if computed is None or not computed[1].students:
        st.info("Complete Steps 1 and 2 to enable generation")
        return

    engine_config, result = computed
    config = st.session_state.config

    if st.button("🚀 Generate Excel", type="primary", use_container_width=True):
        with st.spinner("Generating Excel file..."):
            wb = generate_workbook(
                result,
                engine_config,
                interpretations=config["grading"].get("interpretations"),
                decimal_places=config["scale"]["decimal_places"],
            )

            buffer = io.BytesIO()
            wb.save(buffer)
            buffer.seek(0)

            st.download_button(
                "📥 Download Excel File",
                data=buffer,
                file_name=config.get("output_file", DEFAULT_CONFIG["output_file"]),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                type="primary",
                use_container_width=True
            )

            st.success("✓ Excel file generated successfully!")


def main():
    """Main application entry point."""
    init_session_state()

    st.title("📊 Class Results Portal")

    render_sidebar()

    render_step1_config()

    st.divider()

    render_step2_roster()

    st.divider()

    render_step3_results()

    st.divider()

    render_step4_generate()


if __name__ == "__main__":
    main()
