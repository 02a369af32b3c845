# apps/cohort_timeline_app.py
#
# Cohort Timeline – Streamlit dashboard.
# NOTE: Do NOT call st.set_page_config() in this file (timeline_home owns it).
#
# One DataView / FigureSurface / TimelineController triple lives in
# st.session_state per data source. While playing, a fragment reruns every
# tick period and polls the controller's timer.

from __future__ import annotations

import io
import logging
import sys
from pathlib import Path

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]  # repo root
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cohort_timeline import settings  # noqa: E402
from cohort_timeline.charts import FigureSurface, format_number, year_summary  # noqa: E402
from cohort_timeline.data_view import DataView, LoadError, load_records  # noqa: E402
from cohort_timeline.timeline import PolledTimer, TimelineController  # noqa: E402

logger = logging.getLogger(__name__)

SESSION_KEY = "ct_session"
SLIDER_KEY = "ct_year_slider"

# Fragment reruns can land a little early; still count them as a tick
POLL_SLACK = 0.2


@st.cache_data(show_spinner=False)
def cached_records(path: str):
    return load_records(path)


@st.cache_data(show_spinner=False)
def cached_upload(data: bytes):
    return load_records(io.BytesIO(data))


def choose_source():
    """Returns (source_key, records). Stops the page if loading fails."""
    with st.sidebar:
        st.header("Data")
        path = st.text_input("CSV path", value=settings.data_path())
        upload = st.file_uploader("…or upload a CSV", type="csv")
        st.caption("Columns: country, year, new_sp_coh, completion_rate, failure_rate")

    try:
        if upload is not None:
            data = upload.getvalue()
            return f"upload:{upload.name}:{len(data)}", cached_upload(data)
        return f"path:{path}", cached_records(path)
    except LoadError as e:
        logger.error("Error loading data: %s", e)
        st.error(f"Could not load the data.\n\n{e}")
        st.stop()


def get_session(source_key: str, view: DataView) -> dict:
    sess = st.session_state.get(SESSION_KEY)
    if sess is not None and sess["source"] == source_key:
        return sess

    if sess is not None:
        # New data source: tear down the old timeline
        sess["controller"].close()

    surface = FigureSurface(view)
    controller = TimelineController.for_view(
        view,
        surface.render,
        timer=PolledTimer(slack=POLL_SLACK),
        period=settings.tick_ms() / 1000.0,
    )
    controller.set_year(controller.min_year)
    st.session_state[SLIDER_KEY] = controller.slider_value

    sess = {"source": source_key, "view": view, "surface": surface, "controller": controller}
    st.session_state[SESSION_KEY] = sess
    return sess


def on_slider_change():
    controller = st.session_state[SESSION_KEY]["controller"]
    controller.set_year(st.session_state[SLIDER_KEY])


def render_year_details(view: DataView, surface: FigureSurface):
    rows = surface.rows
    s = year_summary(rows)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Countries", f"{s['countries']:,}")
    c2.metric("Total cohort", format_number(round(s["total_cohort"], 2)))
    c3.metric("Mean completion rate", f"{s['mean_completion']:.1%}")
    c4.metric("Mean failure rate", f"{s['mean_failure']:.1%}")

    if surface.figure is not None:
        st.plotly_chart(surface.figure, width="content")

    with st.expander(f"Rows for {surface.year}"):
        if not rows:
            st.info("No rows for this year.")
            return
        df = view.to_frame(rows)
        st.dataframe(df, width="stretch", hide_index=True)
        st.download_button(
            "⬇️ Download this year as CSV",
            data=df.to_csv(index=False),
            file_name=f"cohorts_{surface.year}.csv",
            mime="text/csv",
        )


def main():
    st.title("Treatment Cohorts by Country")
    st.caption("New smear-positive cohort size per country and year, coloured by completion rate.")

    source_key, records = choose_source()
    view = DataView(records)
    if view.year_range() is None:
        st.warning("The data source has no rows with a usable year.")
        st.stop()

    sess = get_session(source_key, view)
    controller: TimelineController = sess["controller"]
    surface: FigureSurface = sess["surface"]

    st.button(
        controller.button_label,
        on_click=controller.toggle_play,
        type="primary",
        key="ct_play",
    )

    run_every = controller.period if controller.is_playing else None

    @st.fragment(run_every=run_every)
    def timeline_panel():
        if controller.is_playing:
            controller.timer.poll()
            if not controller.is_playing:
                # Auto-stop: rerun the whole page for the label and cadence
                st.rerun()

        if controller.min_year < controller.max_year:
            st.session_state[SLIDER_KEY] = controller.slider_value
            st.slider(
                "Year",
                min_value=controller.min_year,
                max_value=controller.max_year,
                step=1,
                key=SLIDER_KEY,
                on_change=on_slider_change,
            )
        else:
            st.caption(f"Year: {controller.min_year} (only year in the data)")

        render_year_details(sess["view"], surface)

    timeline_panel()
