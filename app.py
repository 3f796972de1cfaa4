"""
Crew Ramp Planner — Streamlit UI
Load a crew table, adjust department timeframes and ramps, download the result.
"""

import io
import logging
import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go

sys.path.insert(0, str(Path(__file__).resolve().parent))

from defaults import baseline_project
from drag import move_timeframe
from model import crew_frame, department_frame, set_max_crew, set_ramps, set_rate
from table_export import load_project, project_json, render_csv, render_xlsx
from table_import import MalformedTableError, parse_table, read_rows

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(name)s | %(message)s")

# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------
MCK_NAVY = "#051C2C"
MCK_GREY = "#7F8C8D"
MCK_WHITE = "#FFFFFF"

DEPT_COLORS = [
    "#2251FF", "#00A9F4", "#00B140", "#F4A100", "#E74C3C",
    "#8E44AD", "#1ABC9C", "#D35400", "#2C3E50", "#27AE60",
]
PHASE_COLORS = ["#EBF4FA", "#FFF9E6", "#E8F5E9", "#FDEDEC", "#F4ECF7"]


# ---------------------------------------------------------------------------
# Page config & CSS
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Crew Ramp Planner",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.markdown(f"""
<style>
    .main .block-container {{ padding-top: 1.5rem; max-width: 1200px; }}
    [data-testid="collapsedControl"] {{ display: none; }}

    .mck-header {{
        background: {MCK_NAVY}; color: white;
        padding: 1.6rem 2rem; border-radius: 8px; margin-bottom: 1.2rem;
    }}
    .mck-header h1 {{ margin: 0; font-size: 1.5rem; font-weight: 600; letter-spacing: -0.02em; }}
    .mck-header p {{ margin: 0.3rem 0 0 0; font-size: 0.82rem; opacity: 0.7; }}

    .kpi-row {{ display: flex; gap: 1rem; margin-bottom: 1.5rem; }}
    .kpi-card {{
        flex: 1; background: {MCK_WHITE}; border: 1px solid #E0E4E8;
        border-radius: 8px; padding: 1.1rem 1.4rem;
    }}
    .kpi-card .kpi-label {{
        font-size: 0.7rem; font-weight: 500; color: {MCK_GREY};
        text-transform: uppercase; letter-spacing: 0.05em; margin-bottom: 0.3rem;
    }}
    .kpi-card .kpi-value {{ font-size: 1.5rem; font-weight: 700; color: {MCK_NAVY}; }}

    .help-text {{
        font-size: 0.76rem; color: #6B7280; line-height: 1.45;
        margin-top: -0.2rem; margin-bottom: 0.7rem;
    }}
</style>
""", unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
if "project" not in st.session_state:
    st.session_state.project = baseline_project()
if "source_name" not in st.session_state:
    st.session_state.source_name = "Baseline sample"


def _render_header(subtitle: str):
    st.markdown(f"""
    <div class="mck-header">
        <h1>Crew Ramp Planner</h1>
        <p>{subtitle}</p>
    </div>
    """, unsafe_allow_html=True)


def _load_upload(upload):
    suffix = Path(upload.name).suffix.lower()
    if suffix == ".json":
        return load_project(upload.getvalue().decode("utf-8"))
    return parse_table(read_rows(io.BytesIO(upload.getvalue()), suffix))


def _kpis(model):
    authoritative = sum(1 for d in model.departments if d.is_authoritative)
    cards = [
        ("Timeline", f"{model.month_count} months"),
        ("Phases", f"{len(model.phases)}"),
        ("Departments", f"{len(model.departments)}"),
        ("Imported rows kept", f"{authoritative}"),
    ]
    html = "".join(
        f'<div class="kpi-card"><div class="kpi-label">{lbl}</div><div class="kpi-value">{val}</div></div>'
        for lbl, val in cards
    )
    st.markdown(f'<div class="kpi-row">{html}</div>', unsafe_allow_html=True)


def _crew_chart(model):
    frame = crew_frame(model)
    fig = go.Figure()
    for i, phase in enumerate(model.phases):
        fig.add_vrect(
            x0=model.months[phase.start_month], x1=model.months[phase.end_month],
            fillcolor=PHASE_COLORS[i % len(PHASE_COLORS)], opacity=0.5,
            layer="below", line_width=0,
            annotation_text=phase.name, annotation_position="top left",
        )
    for i, (name, row) in enumerate(frame.iterrows()):
        fig.add_trace(go.Bar(
            x=list(frame.columns), y=list(row.values), name=name,
            marker_color=DEPT_COLORS[i % len(DEPT_COLORS)],
        ))
    fig.update_layout(
        barmode="stack", height=440, plot_bgcolor=MCK_WHITE,
        margin=dict(l=20, r=20, t=30, b=20),
        legend=dict(orientation="h", y=-0.2),
        yaxis_title="Crew",
    )
    st.plotly_chart(fig, use_container_width=True)


def _department_editor(model):
    if not model.departments:
        st.info("No departments to edit.")
        return

    names = [f"{i + 1}. {d.name}" for i, d in enumerate(model.departments)]
    choice = st.selectbox("Department", names)
    index = names.index(choice)
    dept = model.departments[index]

    st.markdown(
        '<div class="help-text">Moving only the start or end month rescales the ramp on that side. '
        'Editing any ramp value replaces imported crew counts with a generated curve.</div>',
        unsafe_allow_html=True,
    )

    with st.form(f"edit_{index}"):
        start_label, end_label = st.select_slider(
            "Timeframe", options=model.months,
            value=(model.months[dept.start_month], model.months[dept.end_month]),
        )
        c1, c2, c3, c4 = st.columns(4)
        with c1:
            max_crew = st.number_input("Max crew", value=dept.max_crew, min_value=0, step=1)
        with c2:
            ramp_up = st.number_input("Ramp up (months)", value=dept.ramp_up_duration, min_value=0, step=1)
        with c3:
            ramp_down = st.number_input("Ramp down (months)", value=dept.ramp_down_duration, min_value=0, step=1)
        with c4:
            rate = st.number_input("Rate / month", value=float(dept.rate), min_value=0.0, step=500.0)
        submitted = st.form_submit_button("Apply", type="primary")

    if not submitted:
        return

    ramps_before = (dept.ramp_up_duration, dept.ramp_down_duration)
    start = model.months.index(start_label)
    end = model.months.index(end_label)
    move_timeframe(model, index, start, end)
    if (ramp_up, ramp_down) != ramps_before:
        set_ramps(model, index, ramp_up, ramp_down)
    if max_crew != dept.max_crew:
        set_max_crew(model, index, max_crew)
    if rate != dept.rate:
        set_rate(model, index, rate)
    st.rerun()


# ═══════════════════════════════════════════════════════════════════════════
# PAGE
# ═══════════════════════════════════════════════════════════════════════════
def _page_planner():
    _render_header("Staff departments up and down over the production timeline")

    upload = st.file_uploader("Load a crew table (.csv, .xlsx) or project (.json)",
                              type=["csv", "xlsx", "json"])
    if upload is not None and upload.name != st.session_state.source_name:
        try:
            st.session_state.project = _load_upload(upload)
            st.session_state.source_name = upload.name
        except (MalformedTableError, ValueError) as e:
            st.error(f"Could not load {upload.name}: {e}")

    if st.button("Reset to baseline sample"):
        st.session_state.project = baseline_project()
        st.session_state.source_name = "Baseline sample"
        st.rerun()

    model = st.session_state.project
    st.caption(f"Source: {st.session_state.source_name}")

    _kpis(model)

    tab_chart, tab_edit, tab_data = st.tabs(["Crew timeline", "Edit department", "Data"])
    with tab_chart:
        _crew_chart(model)
    with tab_edit:
        _department_editor(model)
    with tab_data:
        st.dataframe(department_frame(model), use_container_width=True, hide_index=True)
        st.dataframe(crew_frame(model), use_container_width=True)

    st.divider()
    d1, d2, d3 = st.columns(3)
    with d1:
        st.download_button("Download CSV", render_csv(model), file_name="crew_plan.csv",
                           mime="text/csv", use_container_width=True)
    with d2:
        st.download_button(
            "Download Excel", data=render_xlsx(model), file_name="crew_plan.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            use_container_width=True,
        )
    with d3:
        st.download_button(
            "Download project (JSON)",
            data=project_json(model),
            file_name="crew_plan.json", mime="application/json", use_container_width=True,
        )


_page_planner()
