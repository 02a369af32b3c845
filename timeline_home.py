# timeline_home.py
#
#   streamlit run timeline_home.py
from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is importable no matter how Streamlit is launched
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

st.set_page_config(page_title="Cohort Timeline", layout="wide")

from cohort_timeline import settings  # noqa: E402

settings.configure_logging()

from apps import cohort_timeline_app  # noqa: E402

cohort_timeline_app.main()
