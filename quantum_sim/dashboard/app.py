# quantum_sim/dashboard/app.py

"""
Quantum Scenario Simulator Dashboard
Run:  streamlit run quantum_sim/dashboard/app.py
"""

import time

import streamlit as st
import pandas as pd

# ── Page config (MUST be first st call) ───────────────────────
st.set_page_config(
    page_title="Quantum Scenario Simulator",
    page_icon="🔮",
    layout="wide",
    initial_sidebar_state="expanded"
)

from quantum_sim.config import load_settings
from quantum_sim.bigquery.datasets import DEMO_QUERIES
from quantum_sim.dashboard.api_client import (
    APIError, QuantumAPIClient, infer_context, merge_forecasts
)
from quantum_sim.dashboard.components.charts import (
    METRICS, create_confidence_bar, create_revenue_cost_chart,
    create_risk_gauge, create_timeline_chart
)
from quantum_sim.dashboard.components.metrics import (
    render_kpi_row, render_scenario_card
)

PROCESSING_STAGES = [
    'Analyzing historical patterns...',
    'Generating parallel realities...',
    'Computing probability matrices...',
    'Creating executive summaries...',
    'Finalizing scenarios...',
]

METRIC_LABELS = {
    'revenue': 'Revenue',
    'customers': 'Customers',
    'marketShare': 'Market Share',
}


# ── Helpers ───────────────────────────────────────────────────
def _fmt(v, prefix='$', suffix=''):
    """Format large numbers: $1.9B, $12.5M, $350K ..."""
    if v is None or v == 0:
        return f'{prefix}0{suffix}'
    av = abs(v)
    if av >= 1e9:
        return f'{prefix}{v/1e9:.2f}B{suffix}'
    if av >= 1e6:
        return f'{prefix}{v/1e6:.1f}M{suffix}'
    if av >= 1e3:
        return f'{prefix}{v/1e3:.0f}K{suffix}'
    return f'{prefix}{v:,.0f}{suffix}'


@st.cache_resource
def get_client(base_url: str) -> QuantumAPIClient:
    return QuantumAPIClient(base_url)


def run_simulation(client: QuantumAPIClient, query: str, stage_delay: float):
    """Scenarios → forecasts → merged result, with a progress display."""
    progress = st.progress(0, text=PROCESSING_STAGES[0])
    for i, stage in enumerate(PROCESSING_STAGES):
        progress.progress(int(i / len(PROCESSING_STAGES) * 100), text=stage)
        time.sleep(stage_delay)

    scenarios = client.generate_scenarios(query, infer_context(query))
    progress.progress(90, text='Generating forecast timelines...')

    forecast = client.forecast(query, scenarios)
    progress.progress(100, text='Analysis complete!')

    return merge_forecasts(scenarios, forecast), forecast


# ╔══════════════════════════════════════════════════════════════╗
# ║  RESULTS                                                    ║
# ╚══════════════════════════════════════════════════════════════╝
def render_results(scenarios, forecast):
    st.markdown("---")
    st.subheader("Parallel Scenarios")

    cols = st.columns(len(scenarios))
    for index, (col, scenario) in enumerate(zip(cols, scenarios)):
        with col:
            render_scenario_card(scenario, index)

    # ── Timeline ──────────────────────────────────────────────
    st.markdown("---")
    metric = st.radio(
        "Metric", list(METRICS),
        format_func=lambda m: METRIC_LABELS[m],
        horizontal=True)
    st.plotly_chart(
        create_timeline_chart(scenarios, metric),
        use_container_width=True)

    col_conf, col_risk = st.columns([3, 2])
    with col_conf:
        st.plotly_chart(
            create_confidence_bar(scenarios), use_container_width=True)
    with col_risk:
        risks = [(s.get('riskAssessment') or {}).get('overall') for s in scenarios]
        risks = [r for r in risks if r is not None]
        avg_risk = sum(risks) / len(risks) if risks else 0
        st.plotly_chart(
            create_risk_gauge(avg_risk, 'Average Scenario Risk'),
            use_container_width=True)

    # ── Per-scenario detail ───────────────────────────────────
    tabs = st.tabs([s.get('title', f'Scenario {i + 1}') for i, s in enumerate(scenarios)])
    for index, (tab, scenario) in enumerate(zip(tabs, scenarios)):
        with tab:
            summary = scenario.get('summary') or {}
            if summary:
                render_kpi_row([
                    {'title': 'Total Revenue', 'value': _fmt(summary.get('totalRevenue')), 'icon': '💰'},
                    {'title': 'Peak Month', 'value': _fmt(summary.get('peakRevenue')), 'icon': '📈'},
                    {'title': 'Avg Confidence',
                     'value': f"{summary.get('averageConfidence', 0) * 100:.0f}%", 'icon': '🎯'},
                    {'title': 'Risk Level', 'value': str(summary.get('riskLevel', 0)), 'icon': '⚠️'},
                ])

            st.plotly_chart(
                create_revenue_cost_chart(scenario, index),
                use_container_width=True)

            risk = scenario.get('riskAssessment') or {}
            if risk.get('factors'):
                st.markdown("**Risk factors**")
                st.dataframe(pd.DataFrame(risk['factors']), use_container_width=True)
            if risk.get('mitigation'):
                st.markdown("**Mitigation**")
                for item in risk['mitigation']:
                    st.markdown(f"- {item}")

            projections = scenario.get('financialProjections') or []
            if projections:
                with st.expander("Financial projections"):
                    st.dataframe(pd.DataFrame(projections), use_container_width=True)

    # ── Similar cases ─────────────────────────────────────────
    cases = {}
    for scenario in scenarios:
        for case in scenario.get('similarCases') or []:
            cases.setdefault(case['id'], case)
    if cases:
        st.markdown("---")
        st.subheader("Similar Historical Cases")
        for case in sorted(cases.values(), key=lambda c: c.get('similarity', 0), reverse=True):
            with st.expander(
                f"**{case.get('company')}** ({case.get('year')}) · "
                f"{case.get('similarity', 0) * 100:.0f}% similar"
            ):
                st.markdown(f"**Industry:** {case.get('industry')}")
                st.markdown(f"**Scenario:** {case.get('scenario')}")
                st.markdown(f"**Outcome:** {case.get('outcome')}")

    if forecast:
        meta = forecast.get('metadata') or {}
        st.caption(
            f"Forecast horizon {meta.get('timeHorizon', 12)} months · "
            f"{meta.get('variationCount', len(scenarios))} variations · "
            f"overall confidence {meta.get('confidence', 0) * 100:.0f}%")


# ╔══════════════════════════════════════════════════════════════╗
# ║  MAIN                                                       ║
# ╚══════════════════════════════════════════════════════════════╝
def main():
    settings = load_settings()

    # ── Sidebar ───────────────────────────────────────────────
    st.sidebar.markdown(
        "<h2 style='text-align:center; margin-bottom:0;'>"
        "🔮 Quantum Simulator</h2>"
        "<p style='text-align:center; color:#8b949e; font-size:0.82rem; "
        "margin-top:4px;'>Powered by BigQuery AI</p>",
        unsafe_allow_html=True)
    st.sidebar.markdown("---")

    api_url = st.sidebar.text_input("API URL", value=settings.api_base_url)
    client = get_client(api_url)

    st.sidebar.markdown("**Example decisions**")
    for key, demo in DEMO_QUERIES.items():
        if st.sidebar.button(demo['query'], key=f"demo_{key}"):
            st.session_state['query'] = demo['query']

    # ── Query ─────────────────────────────────────────────────
    st.title("Quantum Scenario Simulator")
    st.caption("Explore parallel futures for a business decision")

    query = st.text_area(
        "What decision are you considering?",
        key='query',
        placeholder="e.g., What if we launched our product 6 months earlier?")

    if st.button("Simulate", type="primary", disabled=not (query or '').strip()):
        try:
            scenarios, forecast = run_simulation(
                client, query.strip(), settings.stream_stage_delay)
            st.session_state['scenarios'] = scenarios
            st.session_state['forecast'] = forecast
        except APIError as e:
            st.error(f"Error: {e}. Please check your setup and try again.")

    scenarios = st.session_state.get('scenarios')
    if scenarios:
        render_results(scenarios, st.session_state.get('forecast'))

    st.sidebar.markdown("---")
    st.sidebar.caption(
        "Scenarios are generated with BigQuery ML.GENERATE_TEXT and "
        "AI.GENERATE_TABLE; synthetic data is used when AI is unavailable.")


if __name__ == "__main__":
    main()
