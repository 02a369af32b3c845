# cohort_timeline/data_view.py
#
# Load-once, read-only view over the processed cohort CSV.

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, fields
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("country", "year")

# CSV column -> (Record attribute, fallback)
NUMERIC_COLUMNS = {
    "new_sp_coh": ("cohort_size", 1.0),
    "completion_rate": ("completion_rate", 0.0),
    "failure_rate": ("failure_rate", 0.0),
}


class LoadError(Exception):
    """The data source could not be fetched or parsed."""


@dataclass(frozen=True)
class Record:
    country: str
    year: int
    cohort_size: float = 1.0
    completion_rate: float = 0.0
    failure_rate: float = 0.0


RECORD_FIELDS = [f.name for f in fields(Record)]


def _numeric(frame: pd.DataFrame, column: str, fallback: float, zero_is_missing: bool = False) -> pd.Series:
    if column not in frame.columns:
        return pd.Series(fallback, index=frame.index, dtype=float)
    values = pd.to_numeric(frame[column].str.strip(), errors="coerce").astype(float)
    missing = values.isna()
    if zero_is_missing:
        # A cohort of 0 is treated like a blank cell
        missing |= values == 0
    return values.mask(missing, fallback)


def records_from_frame(frame: pd.DataFrame) -> List[Record]:
    """
    Apply the coercion rules to a frame of raw string cells.
    Rows without a usable year are dropped; every numeric field ends up defined.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise LoadError(f"Missing required column(s): {', '.join(missing)}")

    years = pd.to_numeric(frame["year"].astype(str).str.strip(), errors="coerce").astype(float)
    keep = np.isfinite(years.to_numpy())
    dropped = int((~keep).sum())
    if dropped:
        logger.warning("Dropped %d row(s) without a usable year", dropped)

    out = pd.DataFrame(
        {
            "country": frame["country"].astype(str),
            "year": years,
        }
    )
    for column, (attr, fallback) in NUMERIC_COLUMNS.items():
        out[attr] = _numeric(frame, column, fallback, zero_is_missing=(column == "new_sp_coh"))

    out = out[keep]

    return [
        Record(
            country=row.country,
            year=int(row.year),
            cohort_size=float(row.cohort_size),
            completion_rate=float(row.completion_rate),
            failure_rate=float(row.failure_rate),
        )
        for row in out.itertuples(index=False)
    ]


def load_records(source) -> List[Record]:
    """
    Read a CSV (path, URL or file-like object) into Records.
    Raises LoadError when the source is unreachable, unparsable or lacks
    the country/year columns.
    """
    try:
        # dtype=str + keep_default_na=False keeps "NA" (Namibia) as a country
        frame = pd.read_csv(source, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        # ParserError, EmptyDataError and UnicodeDecodeError are ValueErrors
        raise LoadError(f"Could not read {source!r}: {e}") from e

    frame.columns = [str(c).strip() for c in frame.columns]
    records = records_from_frame(frame)
    logger.info("Loaded %d record(s) from %r", len(records), source)
    return records


async def load_records_async(source) -> List[Record]:
    return await asyncio.to_thread(load_records, source)


class DataView:
    """Ordered, immutable set of Records with year-indexed lookup."""

    def __init__(self, records: Iterable[Record] = ()):
        self._records: Tuple[Record, ...] = tuple(records)

        grouped = defaultdict(list)
        for r in self._records:
            grouped[r.year].append(r)
        self._by_year = {year: tuple(rows) for year, rows in grouped.items()}
        self._range = (min(self._by_year), max(self._by_year)) if self._by_year else None

    @classmethod
    def load(cls, source) -> "DataView":
        return cls(load_records(source))

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def rows_for_year(self, year) -> List[Record]:
        try:
            return list(self._by_year.get(year, ()))
        except TypeError:
            # unhashable input can't match any year
            return []

    def year_range(self) -> Optional[Tuple[int, int]]:
        return self._range

    def years(self) -> List[int]:
        return sorted(self._by_year)

    def to_frame(self, records: Optional[Iterable[Record]] = None) -> pd.DataFrame:
        rows = self._records if records is None else records
        return pd.DataFrame([asdict(r) for r in rows], columns=RECORD_FIELDS)


def open_view(source) -> Optional[DataView]:
    """Load a DataView, logging (not raising) a LoadError."""
    try:
        return DataView.load(source)
    except LoadError as e:
        logger.error("Error loading data: %s", e)
        return None
