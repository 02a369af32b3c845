"""Preview the processed cohort CSV: rows and total cohort per year."""

import argparse
import sys

from cohort_timeline import settings
from cohort_timeline.charts import format_number, year_summary
from cohort_timeline.data_view import open_view


def preview_years(in_path: str) -> int:
    view = open_view(in_path)
    if view is None:
        print(f"Could not load {in_path}", file=sys.stderr)
        return 1

    print("\n=== ROWS BY YEAR ===")
    for y in view.years():
        rows = view.rows_for_year(y)
        s = year_summary(rows)
        print(
            f"{y}: {len(rows)} rows, cohort {format_number(s['total_cohort'])}, "
            f"completion {s['mean_completion']:.1%}, failure {s['mean_failure']:.1%}"
        )

    year_range = view.year_range()
    if year_range is None:
        print("(no usable rows)")
    else:
        print(f"\nYears: {year_range[0]}-{year_range[1]}  ·  Records: {len(view)}")
    return 0


def main(argv=None):
    p = argparse.ArgumentParser(description="Preview cohort rows by year.")
    p.add_argument("--in", dest="inp", default=settings.data_path())
    args = p.parse_args(argv)
    settings.configure_logging()
    return preview_years(args.inp)


if __name__ == "__main__":
    sys.exit(main())
