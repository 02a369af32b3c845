"""Shared fixtures: small cohort CSVs written to tmp_path."""

from __future__ import annotations

import pytest

from cohort_timeline.data_view import DataView, Record


def _write_csv(path, text: str):
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


@pytest.fixture
def make_csv(tmp_path):
    """Write `text` to tmp_path/name and return the path."""

    def _make(text: str, name: str = "d.csv"):
        return _write_csv(tmp_path / name, text)

    return _make


@pytest.fixture
def three_year_csv(tmp_path):
    return _write_csv(
        tmp_path / "processed_data.csv",
        """
country,year,new_sp_coh,completion_rate,failure_rate
A,2000,10,0.5,0.1
B,2000,20,0.8,0.05
A,2001,12,0.55,0.1
B,2001,22,0.81,0.04
A,2002,15,0.6,0.08
B,2002,25,0.83,0.03
""",
    )


@pytest.fixture
def three_year_view(three_year_csv):
    return DataView.load(three_year_csv)


@pytest.fixture
def two_records():
    return [
        Record(country="A", year=2000, cohort_size=10, completion_rate=0.5, failure_rate=0.1),
        Record(country="B", year=2000, cohort_size=20, completion_rate=0.8, failure_rate=0.05),
    ]
