# cohort_timeline/charts.py
#
# Render surface: plotly figures for one year, and the animated export.

from __future__ import annotations

import html
from typing import Dict, List, Optional, Sequence

import plotly.express as px
import plotly.graph_objects as go

from cohort_timeline import settings
from cohort_timeline.data_view import DataView, Record


def format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)


def tooltip_html(record: Record) -> str:
    return (
        f"<b>Country:</b> {html.escape(record.country)}<br>"
        f"<b>Year:</b> {record.year}<br>"
        f"<b>Cohort Size:</b> {format_number(record.cohort_size)}<br>"
        f"<b>Completion Rate:</b> {format_number(record.completion_rate)}<br>"
        f"<b>Failure Rate:</b> {format_number(record.failure_rate)}"
    )


def year_summary(rows: Sequence[Record]) -> Dict[str, float]:
    if not rows:
        return {"countries": 0, "total_cohort": 0.0, "mean_completion": 0.0, "mean_failure": 0.0}
    n = len(rows)
    return {
        "countries": len({r.country for r in rows}),
        "total_cohort": sum(r.cohort_size for r in rows),
        "mean_completion": sum(r.completion_rate for r in rows) / n,
        "mean_failure": sum(r.failure_rate for r in rows) / n,
    }


def build_year_figure(
    rows: Sequence[Record],
    year: int,
    width: int = settings.CHART_WIDTH,
    height: int = settings.CHART_HEIGHT,
    transition_ms: int = settings.TRANSITION_MS,
) -> go.Figure:
    """
    One bar per country: height = cohort size, colour = completion rate on
    a fixed [0, 1] blue ramp. The y axis runs from 0 to this year's largest
    cohort.
    """
    sizes = [r.cohort_size for r in rows]
    y_max = max(sizes) if sizes else 1.0
    if y_max <= 0:
        y_max = 1.0

    fig = go.Figure(
        go.Bar(
            x=[r.country for r in rows],
            y=sizes,
            marker=dict(
                color=[r.completion_rate for r in rows],
                colorscale=settings.COLOR_SCALE,
                cmin=0,
                cmax=1,
                colorbar=dict(title="Completion rate"),
            ),
            hovertext=[tooltip_html(r) for r in rows],
            hovertemplate="%{hovertext}<extra></extra>",
        )
    )
    fig.update_layout(
        title=f"New smear-positive cohort by country, {year}",
        width=width,
        height=height,
        bargap=settings.BAR_PADDING,
        transition=dict(duration=transition_ms, easing="cubic-in-out"),
        margin=dict(l=10, r=10, t=50, b=10),
    )
    fig.update_xaxes(type="category", title="")
    fig.update_yaxes(range=[0, y_max], title="Cohort size")
    return fig


class FigureSurface:
    """Keeps the figure for the last year it was asked to render."""

    def __init__(self, view: DataView, transition_ms: int = settings.TRANSITION_MS):
        self.view = view
        self.transition_ms = transition_ms
        self.year: Optional[int] = None
        self.rows: List[Record] = []
        self.figure: Optional[go.Figure] = None

    def render(self, year: int) -> None:
        self.year = year
        self.rows = self.view.rows_for_year(year)
        self.figure = build_year_figure(self.rows, year, transition_ms=self.transition_ms)


def build_animation(
    view: DataView,
    frame_ms: int = settings.DEFAULT_TICK_MS,
    transition_ms: int = settings.TRANSITION_MS,
) -> go.Figure:
    """All years as plotly animation frames, with its own play button and slider."""
    df = view.to_frame()
    if df.empty:
        raise ValueError("nothing to animate: the data view is empty")
    df = df.sort_values("year", kind="stable")

    fig = px.bar(
        df,
        x="country",
        y="cohort_size",
        color="completion_rate",
        animation_frame="year",
        animation_group="country",
        category_orders={"country": list(dict.fromkeys(df["country"]))},
        color_continuous_scale=settings.COLOR_SCALE,
        range_color=[0, 1],
        range_y=[0, max(float(df["cohort_size"].max()), 1.0)],
        hover_data={"failure_rate": True},
        labels={
            "country": "Country",
            "cohort_size": "Cohort Size",
            "completion_rate": "Completion Rate",
            "failure_rate": "Failure Rate",
            "year": "Year",
        },
        title="New smear-positive cohort by country",
    )
    fig.update_layout(
        width=settings.CHART_WIDTH,
        height=settings.CHART_HEIGHT,
        bargap=settings.BAR_PADDING,
        template="plotly_white",
    )

    if fig.layout.updatemenus:
        play_args = fig.layout.updatemenus[0].buttons[0].args[1]
        play_args["frame"]["duration"] = frame_ms
        play_args["transition"]["duration"] = transition_ms
    return fig
