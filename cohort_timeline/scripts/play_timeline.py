"""Play the cohort timeline in the terminal, one text bar chart per year.

Uses the same TimelineController as the dashboard, ticked by an asyncio
timer, and exits once playback runs past the last year.
"""

import argparse
import asyncio
import sys
from typing import Callable, List, Optional, Sequence

from cohort_timeline import settings
from cohort_timeline.charts import format_number
from cohort_timeline.data_view import DataView, Record, open_view
from cohort_timeline.timeline import AsyncioTimer, TimelineController


def text_bars(rows: Sequence[Record], width: int = 40) -> List[str]:
    if not rows:
        return ["  (no rows)"]
    top = max(r.cohort_size for r in rows)
    if top <= 0:
        top = 1.0
    label_w = max(len(r.country) for r in rows)
    lines = []
    for r in rows:
        n = int(round(width * max(r.cohort_size, 0) / top))
        lines.append(
            f"  {r.country:<{label_w}} {'#' * n} "
            f"{format_number(r.cohort_size)} ({r.completion_rate:.0%} completed)"
        )
    return lines


class TextSurface:
    def __init__(self, view: DataView, out: Callable[[str], None] = print, width: int = 40):
        self.view = view
        self.out = out
        self.width = width
        self.rendered: List[int] = []

    def render(self, year: int) -> None:
        self.rendered.append(year)
        self.out(f"\n=== {year} ===")
        for line in text_bars(self.view.rows_for_year(year), self.width):
            self.out(line)


async def play(
    view: DataView,
    period: float,
    start: Optional[int] = None,
    out: Callable[[str], None] = print,
) -> TextSurface:
    loop = asyncio.get_running_loop()
    stopped = asyncio.Event()
    surface = TextSurface(view, out)
    controller = TimelineController.for_view(
        view, surface.render, timer=AsyncioTimer(loop), period=period
    )
    if start is not None:
        controller.set_year(start)
    controller.subscribe(lambda state: None if state.is_playing else stopped.set())

    try:
        controller.toggle_play()
        await stopped.wait()
    finally:
        controller.close()
    return surface


def main(argv=None):
    p = argparse.ArgumentParser(description="Play the cohort timeline in the terminal.")
    p.add_argument("--in", dest="inp", default=settings.data_path())
    p.add_argument("--period-ms", type=int, default=settings.tick_ms())
    p.add_argument("--start", type=int, default=None, help="First year to play (clamped).")
    args = p.parse_args(argv)
    settings.configure_logging()

    view = open_view(args.inp)
    if view is None:
        print(f"Could not load {args.inp}", file=sys.stderr)
        return 1
    if not len(view):
        print(f"No usable rows in {args.inp}", file=sys.stderr)
        return 1

    try:
        asyncio.run(play(view, args.period_ms / 1000.0, args.start))
    except KeyboardInterrupt:
        print("\nStopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
