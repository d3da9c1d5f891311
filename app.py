"""
Performance Crawler - Streamlit Report Dashboard
Browse finished performance reports (single environment or PROD vs DXP).

Run with: streamlit run app.py
"""

import logging
from pathlib import Path

import pandas as pd
import streamlit as st

from perf_crawler.report_analysis import (
    DXP_TOTAL_COLUMN,
    PROD_TOTAL_COLUMN,
    TOTAL_COLUMN,
    is_comparison_report,
    load_report,
    slowest_pages,
    summarize_comparison,
    summarize_single,
)
from perf_crawler.run_config import RunConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

_DEFAULTS = RunConfig()

# Page configuration
st.set_page_config(
    page_title="Performance Reports",
    page_icon="⏱️",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Header + metric styling
st.markdown("""
<style>
    .report-title {
        font-size: 2.1rem;
        font-weight: 650;
        color: #0F172A;
    }
    .report-caption {
        color: #475569;
        margin-bottom: 1.5rem;
    }
    [data-testid="stMetricValue"] {
        font-variant-numeric: tabular-nums;
    }
</style>
""", unsafe_allow_html=True)


def render_sidebar():
    """Render sidebar: report source + parsing options."""
    st.sidebar.markdown("## 📂 Report")

    reports_dir = Path(st.sidebar.text_input("Reports directory", _DEFAULTS.reports_dir))
    saved = sorted(reports_dir.glob("*.csv"), reverse=True) if reports_dir.is_dir() else []

    selected = None
    if saved:
        selected = st.sidebar.selectbox(
            "Saved reports", saved, format_func=lambda p: p.name
        )
    uploaded = st.sidebar.file_uploader("…or upload a report", type=["csv"])

    st.sidebar.markdown("---")
    st.sidebar.markdown("## 🔧 Options")
    separator = st.sidebar.text_input("Decimal separator", _DEFAULTS.decimal_separator, max_chars=1)
    fraction = st.sidebar.slider(
        "Slowest fraction", min_value=0.05, max_value=0.5,
        value=_DEFAULTS.slowest_fraction, step=0.05,
    )
    return uploaded or selected, separator or ",", fraction


def render_comparison(frame: pd.DataFrame):
    summary = summarize_comparison(frame)
    cols = st.columns(4)
    with cols[0]:
        st.metric("Rows", summary["rows"])
    with cols[1]:
        st.metric("Paired", summary["paired"])
    with cols[2]:
        st.metric("Mean PROD (s)", summary["mean_prod_total"])
    with cols[3]:
        st.metric("Mean DXP (s)", summary["mean_dxp_total"],
                  delta=summary["mean_difference"], delta_color="inverse")

    paired = frame.dropna(subset=[PROD_TOTAL_COLUMN, DXP_TOTAL_COLUMN])
    if not paired.empty:
        st.markdown("### PROD vs DXP total time")
        st.bar_chart(paired.set_index("URL")[[PROD_TOTAL_COLUMN, DXP_TOTAL_COLUMN]])

    if summary["dxp_slower"]:
        with st.expander(f"DXP slower on {len(summary['dxp_slower'])} URL(s)"):
            st.write("\n".join(f"- {url}" for url in summary["dxp_slower"]))


def render_single(frame: pd.DataFrame):
    summary = summarize_single(frame)
    cols = st.columns(3)
    with cols[0]:
        st.metric("Rows", summary["rows"])
    with cols[1]:
        st.metric("With telemetry", summary["with_telemetry"])
    with cols[2]:
        st.metric("Mean total (s)", summary["mean_total"])

    timed = frame.dropna(subset=[TOTAL_COLUMN])
    if not timed.empty:
        st.markdown("### Total time per URL")
        st.bar_chart(timed.set_index("URL")[[TOTAL_COLUMN]])


def main():
    st.markdown('<p class="report-title">⏱️ Performance Reports</p>', unsafe_allow_html=True)
    st.markdown('<p class="report-caption">CMS render times from /_performance, PROD and DXP</p>',
                unsafe_allow_html=True)

    source, separator, fraction = render_sidebar()
    if source is None:
        st.info("Select a saved report or upload one to get started.")
        return

    try:
        frame = load_report(source, separator)
    except (ValueError, KeyError, pd.errors.ParserError) as exc:
        logger.error(f"Could not read report {source}: {exc}")
        st.error(f"Could not read report: {exc}")
        return

    if is_comparison_report(frame):
        render_comparison(frame)
    else:
        render_single(frame)

    st.markdown(f"### Slowest {fraction:.0%}")
    st.dataframe(slowest_pages(frame, fraction), width="stretch")

    with st.expander("Full report"):
        st.dataframe(frame, width="stretch")
        st.download_button(
            "Download CSV", frame.to_csv(index=False).encode("utf-8"),
            file_name="report.csv", mime="text/csv",
        )


if __name__ == "__main__":
    main()
