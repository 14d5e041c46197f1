"""
GasPro Analytics — Interactive Dashboard

Run with:  streamlit run app.py
"""

import logging
import sys
from datetime import date as date_cls
from pathlib import Path

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from gaspro_dashboard.access import client_address, is_admin_allowed, request_host
from gaspro_dashboard.config import (
    APP_NAME,
    CACHE_DIR,
    CHART_COLORS,
    FIELD_NAMES,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL,
    RECORDS_PER_PAGE,
)
from gaspro_dashboard.dashboard import get_archive_page, get_dashboard_overview, get_field_catalogue
from gaspro_dashboard.exceptions import DuplicateRecordError, GasProError
from gaspro_dashboard.insights import InsightService, gemini_generator
from gaspro_dashboard.state import AppState
from gaspro_dashboard.store import LocalCacheBackend, open_store
from gaspro_dashboard.transforms import page_after_delete

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title=f"{APP_NAME} Dashboard",
    page_icon="⛽",
    layout="wide",
    initial_sidebar_state="expanded",
)

STATUS_COLORS = {
    "Shortage": "#e74c3c",
    "Surplus": "#f39c12",
    "At Target": "#2ecc71",
    "No Data": "#95a5a6",
}


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
def get_state() -> AppState:
    if "app_state" not in st.session_state:
        headers = dict(st.context.headers) if st.context.headers else {}
        state = AppState(
            open_store(),
            offline_cache=LocalCacheBackend(CACHE_DIR),
            admin_allowed=is_admin_allowed(client_address(headers), request_host(headers)),
        )
        state.load()
        st.session_state["app_state"] = state
        st.session_state["change_feed"] = (
            state.store.subscribe() if state.status == "online" and state.store.supports_subscription else None
        )
        st.session_state["insights"] = InsightService(gemini_generator())
        st.session_state["production_page"] = 1
        st.session_state["personnel_page"] = 1
    return st.session_state["app_state"]


def merge_pending_changes(state: AppState) -> int:
    feed = st.session_state.get("change_feed")
    if feed is None:
        return 0
    return state.apply_changes(feed.drain())


def flash(kind: str, message: str) -> None:
    st.session_state["flash"] = (kind, message)


def show_flash() -> None:
    if "flash" in st.session_state:
        kind, message = st.session_state.pop("flash")
        getattr(st, kind)(message)


state = get_state()
merge_pending_changes(state)

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title(APP_NAME)
st.sidebar.markdown("Gas Field Production Monitoring")

if state.status == "online":
    st.sidebar.success("Cloud link: Supabase")
elif state.status == "offline":
    st.sidebar.warning("Backend unreachable: showing local cache")
else:
    st.sidebar.info("Local cache mode")

st.sidebar.divider()

pages = ["Dashboard", "Admin"] if state.admin_allowed else ["Dashboard"]
page = st.sidebar.radio("Navigate", pages)

state.dark_mode = st.sidebar.toggle("Dark mode", value=state.dark_mode)
template = "plotly_dark" if state.dark_mode else "plotly_white"

nav = state.navigator


def _step_previous():
    nav.previous()


def _step_next():
    nav.next()


def _pick_date():
    picked = st.session_state.get("date_picker")
    if picked is not None:
        nav.select(picked.isoformat())


if page == "Dashboard" and nav.selected:
    st.sidebar.divider()
    st.sidebar.markdown("**Viewed date**")
    c1, c2 = st.sidebar.columns(2)
    c1.button("◀ Previous", on_click=_step_previous, disabled=not nav.has_previous(),
              use_container_width=True, help="Previous available date")
    c2.button("Next ▶", on_click=_step_next, disabled=not nav.has_next(),
              use_container_width=True, help="Next available date")
    st.session_state["date_picker"] = date_cls.fromisoformat(nav.selected)
    st.sidebar.date_input("Jump to date", key="date_picker", on_change=_pick_date)
    if nav.is_latest:
        st.sidebar.caption("LATEST")

st.sidebar.divider()
st.sidebar.caption("Volumes: gas in MCF, condensate and water in BBL")


# ===========================================================================
# PAGE: Dashboard
# ===========================================================================
def render_insight_panel(production_df: pd.DataFrame, selected_date: str, has_records: bool) -> None:
    service: InsightService = st.session_state["insights"]
    key = (selected_date, state.version)
    if has_records and st.session_state.get("insight_key") != key:
        st.session_state["insight_key"] = key
        service.request(production_df, selected_date)

    polling = has_records and service.is_pending(selected_date)

    @st.fragment(run_every="2s" if polling else None)
    def _panel():
        text = service.text_for(selected_date)
        if not has_records:
            st.caption("No production logged for this date.")
        elif text is None:
            st.caption("Analyzing temporal data...")
        elif polling:
            # full rerun redefines the fragment without run_every
            st.rerun()
        else:
            st.markdown(text)

    _panel()


def render_dashboard() -> None:
    production_df = state.production_df
    overview = get_dashboard_overview(
        production_df, state.personnel_df, state.selected_date, navigation_latest=state.navigator.latest,
    )
    selected = overview["selected_date"]

    if selected is None:
        st.title("Dashboard")
        st.warning("No production data available yet. Add records from the Admin page.")
        return

    if overview["is_historical"]:
        st.warning(f"Historical view: {selected}")
    else:
        st.success(f"Live performance snapshot: {selected}")

    # Headline metrics
    col1, col2, col3 = st.columns(3)
    means = overview["trailing_means"]
    with col1:
        st.metric("Total Output Volume", f"{overview['total']:,.0f} MCF")
        if overview["output_status"] == "optimal":
            st.caption(":green[OPTIMAL PRODUCTION]")
        else:
            st.caption(":orange[LOW OUTPUT ALERT]")
    with col2:
        st.metric("7-Day Average", f"{means.get(7, 0):,.0f} MCF")
    with col3:
        st.metric("30-Day Average", f"{means.get(30, 0):,.0f} MCF")

    st.divider()

    # Field breakdown + distribution
    col1, col2 = st.columns([1, 1])
    with col1:
        st.subheader("Field Breakdowns")
        day = overview["day_records"]
        if day.empty:
            st.info("No data logged. Zero records for this date.")
        else:
            st.dataframe(
                day[["field", "amount", "condensate", "water"]].rename(columns={
                    "field": "Field", "amount": "Gas (MCF)",
                    "condensate": "Condensate (BBL)", "water": "Water (BBL)",
                }),
                use_container_width=True, hide_index=True,
            )
    with col2:
        st.subheader("Daily Production Share %")
        dist = overview["distribution"]
        if dist.empty:
            st.info("No production share for this date.")
        else:
            fig = px.pie(
                dist, names="field", values="amount", hole=0.55,
                color_discrete_sequence=CHART_COLORS, template=template,
            )
            fig.update_traces(textinfo="percent")
            fig.update_layout(height=350, margin=dict(l=10, r=10, t=10, b=10))
            st.plotly_chart(fig, use_container_width=True)

    # Trend + comparison
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Window Trend (7 days)")
        trend = overview["trend"]
        if trend.empty:
            st.info("No trend available for this date.")
        else:
            fig = go.Figure()
            for i, field_name in enumerate(c for c in trend.columns if c != "date"):
                fig.add_trace(go.Scatter(
                    x=trend["date"], y=trend[field_name], name=field_name,
                    mode="lines", fill="tozeroy",
                    line=dict(color=CHART_COLORS[i % len(CHART_COLORS)], width=3),
                ))
            fig.update_layout(height=350, yaxis_title="MCF", template=template,
                              margin=dict(l=10, r=10, t=10, b=40))
            st.plotly_chart(fig, use_container_width=True)
    with col2:
        st.subheader("Volume Benchmarking")
        comp = overview["comparison"]
        if comp.empty:
            st.info("No field volumes for this date.")
        else:
            fig = go.Figure(go.Bar(
                x=comp["field"], y=comp["amount"],
                marker_color=[CHART_COLORS[i % len(CHART_COLORS)] for i in range(len(comp))],
                customdata=comp[["condensate", "water"]],
                hovertemplate="%{x}<br>Gas: %{y:,.0f} MCF<br>Condensate: %{customdata[0]:,.0f} BBL"
                              "<br>Water: %{customdata[1]:,.0f} BBL<extra></extra>",
            ))
            fig.update_layout(height=350, yaxis_title="MCF", template=template,
                              margin=dict(l=10, r=10, t=10, b=40))
            st.plotly_chart(fig, use_container_width=True)

    st.divider()

    # Workforce
    workforce = overview["workforce"]
    st.subheader("Workforce vs Organogram")
    st.caption(f"Latest headcount report: {workforce['date'] or 'none'}")
    cols = st.columns(2)
    for col, (label, role) in zip(cols, [("Officers", "officers"), ("Employees", "employees")]):
        m = workforce[role]
        color = STATUS_COLORS.get(m["status"], "#95a5a6")
        pct = f"{m['pct_of_target']:.1f}% of target" if m["pct_of_target"] is not None else "N/A"
        with col:
            st.markdown(
                f"""
                <div style="border-left: 4px solid {color}; border-radius: 8px; padding: 12px; margin-bottom: 8px;">
                    <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
                    <div style="font-size: 28px; font-weight: 700;">{m['actual']} <span style="font-size: 14px; color: #888;">/ {m['approved']}</span></div>
                    <div style="font-size: 13px; color: {color}; font-weight: 600;">{m['status']} ({m['delta']:+d}) &nbsp;|&nbsp; {pct}</div>
                </div>
                """,
                unsafe_allow_html=True,
            )

    st.divider()

    col1, col2 = st.columns([2, 1])
    with col1:
        st.subheader("AI Executive Summary")
        render_insight_panel(production_df, selected, not overview["day_records"].empty)
    with col2:
        st.subheader("Fields")
        st.dataframe(get_field_catalogue(production_df, selected),
                     use_container_width=True, hide_index=True)

    st.subheader("Archive Logs")
    archive = get_archive_page(production_df, 1, per_page=max(len(production_df), 1))
    st.dataframe(archive["rows"][["date", "field", "amount"]], use_container_width=True,
                 hide_index=True, height=350)


# ===========================================================================
# PAGE: Admin
# ===========================================================================
def _run_action(action, success: str) -> bool:
    try:
        action()
    except DuplicateRecordError as e:
        flash("error", f"Duplicate entry: {e}")
        return False
    except GasProError as e:
        logger.error("Admin action failed: %s", e)
        flash("error", str(e))
        return False
    flash("success", success)
    return True


def render_production_admin() -> None:
    records = {r.id: r for r in state.production}
    editing_id = st.session_state.get("editing_production")
    editing = records.get(editing_id)

    col1, col2 = st.columns([1, 2])
    with col1:
        st.subheader("Edit Record" if editing else "New Production Record")
        with st.form("production_form", clear_on_submit=not editing):
            field_name = st.selectbox(
                "Gas Field", FIELD_NAMES,
                index=FIELD_NAMES.index(editing.field) if editing and editing.field in FIELD_NAMES else 0,
            )
            amount = st.text_input("Production Amount (MCF)", value=f"{editing.amount:g}" if editing else "")
            condensate = st.text_input("Condensate (BBL)", value=f"{editing.condensate:g}" if editing else "0")
            water = st.text_input("Water (BBL)", value=f"{editing.water:g}" if editing else "0")
            day = st.date_input(
                "Production Date",
                value=date_cls.fromisoformat(editing.date) if editing else date_cls.today(),
            )
            submitted = st.form_submit_button("Update Record" if editing else "Save Record")

        if submitted:
            if editing:
                ok = _run_action(
                    lambda: state.update_production(editing.id, field_name, amount, day, condensate, water),
                    f"Updated {field_name} on {day}.",
                )
                if ok:
                    st.session_state.pop("editing_production", None)
            else:
                _run_action(
                    lambda: state.add_production(field_name, amount, day, condensate, water),
                    f"Saved {field_name} on {day}.",
                )
            st.rerun()

        if editing and st.button("Cancel Edit"):
            st.session_state.pop("editing_production", None)
            st.rerun()

    with col2:
        archive = get_archive_page(state.production_df, st.session_state["production_page"])
        st.session_state["production_page"] = archive["page"]
        st.subheader("Production Archive")
        st.caption(f"Displaying {len(archive['rows'])} of {archive['total']} records "
                   f"(page {archive['page']} / {archive['pages']})")

        for row in archive["rows"].itertuples(index=False):
            c1, c2, c3 = st.columns([4, 1, 1])
            c1.markdown(f"**{row.field}** · {row.date} · {row.amount:,.0f} MCF "
                        f"· {row.condensate:,.0f} / {row.water:,.0f} BBL")
            if c2.button("Edit", key=f"edit-p-{row.id}"):
                st.session_state["editing_production"] = row.id
                st.rerun()
            if c3.button("Delete", key=f"del-p-{row.id}"):
                if _run_action(lambda rid=row.id: state.delete_production(rid), "Record deleted."):
                    st.session_state["production_page"] = page_after_delete(
                        len(archive["rows"]), archive["page"])
                st.rerun()

        render_pager("production_page", archive)

    st.divider()
    render_import()


def render_personnel_admin() -> None:
    records = {r.id: r for r in state.personnel}
    editing = records.get(st.session_state.get("editing_personnel"))

    col1, col2 = st.columns([1, 2])
    with col1:
        st.subheader("Edit Headcount" if editing else "New Headcount Report")
        with st.form("personnel_form", clear_on_submit=not editing):
            day = st.date_input(
                "Report Date",
                value=date_cls.fromisoformat(editing.date) if editing else date_cls.today(),
            )
            officers = st.text_input("Officers", value=str(editing.officers) if editing else "")
            employees = st.text_input("Employees", value=str(editing.employees) if editing else "")
            approved_officers = st.text_input(
                "Approved Officers (organogram, optional)",
                value=str(editing.approved_officers) if editing and editing.approved_officers is not None else "",
            )
            approved_employees = st.text_input(
                "Approved Employees (organogram, optional)",
                value=str(editing.approved_employees) if editing and editing.approved_employees is not None else "",
            )
            submitted = st.form_submit_button("Update Report" if editing else "Save Report")

        if submitted:
            if editing:
                ok = _run_action(
                    lambda: state.update_personnel(editing.id, day, officers, employees,
                                                   approved_officers, approved_employees),
                    f"Updated headcount for {day}.",
                )
                if ok:
                    st.session_state.pop("editing_personnel", None)
            else:
                _run_action(
                    lambda: state.add_personnel(day, officers, employees, approved_officers, approved_employees),
                    f"Saved headcount for {day}.",
                )
            st.rerun()

        if editing and st.button("Cancel Edit", key="cancel-personnel"):
            st.session_state.pop("editing_personnel", None)
            st.rerun()

    with col2:
        archive = get_archive_page(state.personnel_df, st.session_state["personnel_page"])
        st.session_state["personnel_page"] = archive["page"]
        st.subheader("Headcount Archive")
        st.caption(f"Displaying {len(archive['rows'])} of {archive['total']} reports "
                   f"(page {archive['page']} / {archive['pages']})")

        for row in archive["rows"].itertuples(index=False):
            c1, c2, c3 = st.columns([4, 1, 1])
            c1.markdown(f"**{row.date}** · officers {row.officers} · employees {row.employees}")
            if c2.button("Edit", key=f"edit-h-{row.id}"):
                st.session_state["editing_personnel"] = row.id
                st.rerun()
            if c3.button("Delete", key=f"del-h-{row.id}"):
                if _run_action(lambda rid=row.id: state.delete_personnel(rid), "Report deleted."):
                    st.session_state["personnel_page"] = page_after_delete(
                        len(archive["rows"]), archive["page"])
                st.rerun()

        render_pager("personnel_page", archive)


def render_pager(key: str, archive: dict) -> None:
    if archive["pages"] <= 1:
        return
    c1, c2, c3 = st.columns([1, 2, 1])
    if c1.button("◀ Previous", key=f"{key}-prev", disabled=archive["page"] <= 1):
        st.session_state[key] = archive["page"] - 1
        st.rerun()
    c2.caption(f"Page {archive['page']} of {archive['pages']} ({RECORDS_PER_PAGE} per page)")
    if c3.button("Next ▶", key=f"{key}-next", disabled=archive["page"] >= archive["pages"]):
        st.session_state[key] = archive["page"] + 1
        st.rerun()


def render_import() -> None:
    st.subheader("Import Daily Report")
    uploaded = st.file_uploader("Daily report workbook", type=["xlsx", "xls"])
    import_zero_gas = st.checkbox(
        "Also import fields reporting zero gas (shut-in / maintenance)", value=False,
    )
    if uploaded is not None and st.button("Import"):
        try:
            report = state.import_workbook(uploaded.getvalue(), import_zero_gas=import_zero_gas)
        except GasProError as e:
            flash("error", f"Import failed: {e}")
        else:
            if report.status == "created":
                flash("success", report.message)
            elif report.status == "already_exists":
                flash("warning", report.message)
            else:
                flash("error", report.message)
        st.rerun()


def render_admin() -> None:
    st.title("Administration")
    show_flash()
    tab1, tab2 = st.tabs(["Production", "Personnel"])
    with tab1:
        render_production_admin()
    with tab2:
        render_personnel_admin()


@st.fragment(run_every="5s")
def watch_change_feed() -> None:
    feed = st.session_state.get("change_feed")
    if feed is not None and not feed.events.empty():
        st.rerun()


if page == "Admin" and state.admin_allowed:
    render_admin()
else:
    st.title(f"{APP_NAME} — Production Dashboard")
    render_dashboard()

watch_change_feed()
