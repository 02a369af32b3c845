# cohort_timeline/settings.py
#
# Defaults for the dashboard and the command-line scripts. Paths and timing
# can be overridden from the environment, e.g.
#   COHORT_TIMELINE_DATA=/data/who_tb.csv streamlit run timeline_home.py

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]  # repo root

DEFAULT_DATA_PATH = PROJECT_ROOT / "data" / "processed_data.csv"
DEFAULT_TICK_MS = 500

# Chart geometry
CHART_WIDTH = 1000
CHART_HEIGHT = 500
TRANSITION_MS = 500
BAR_PADDING = 0.1
COLOR_SCALE = "Blues"


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r (must be positive), using %s", name, raw, default)
        return default
    return value


def data_path() -> str:
    override = os.environ.get("COHORT_TIMELINE_DATA", "").strip()
    if override:
        return str(Path(override).expanduser())
    return str(DEFAULT_DATA_PATH)


def tick_ms() -> int:
    return env_int("COHORT_TIMELINE_TICK_MS", DEFAULT_TICK_MS)


def configure_logging(level: str | None = None) -> None:
    """Install a basic stderr handler once; later calls only adjust the level."""
    level = (level or os.environ.get("COHORT_TIMELINE_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(getattr(logging, level, logging.INFO))
