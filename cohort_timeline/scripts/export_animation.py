"""Export the whole timeline as a self-contained animated HTML chart."""

import argparse
import sys
from pathlib import Path

from cohort_timeline import settings
from cohort_timeline.charts import build_animation
from cohort_timeline.data_view import open_view


def export_animation(in_path: str, out_path: str, frame_ms: int = settings.DEFAULT_TICK_MS) -> int:
    view = open_view(in_path)
    if view is None:
        print(f"Could not load {in_path}", file=sys.stderr)
        return 1
    if not len(view):
        print(f"No usable rows in {in_path}", file=sys.stderr)
        return 1

    fig = build_animation(view, frame_ms=frame_ms)

    outp = Path(out_path)
    outp.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(outp), include_plotlyjs=True)
    print(f"Saved: {outp}")
    return 0


def main(argv=None):
    p = argparse.ArgumentParser(description="Export the cohort timeline as animated HTML.")
    p.add_argument("--in", dest="inp", default=settings.data_path())
    p.add_argument("--out", default=str(Path("output") / "cohort_timeline.html"))
    p.add_argument("--frame-ms", type=int, default=settings.tick_ms(), help="Time per year frame.")
    args = p.parse_args(argv)
    settings.configure_logging()
    return export_animation(args.inp, args.out, args.frame_ms)


if __name__ == "__main__":
    sys.exit(main())
