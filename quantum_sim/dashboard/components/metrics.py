# quantum_sim/dashboard/components/metrics.py

"""Scenario card and KPI components."""

import html

import streamlit as st
from typing import Dict, List, Optional

from quantum_sim.dashboard.api_client import display_insights
from quantum_sim.dashboard.components.charts import (
    HIGH_RISK, MEDIUM_RISK, scenario_color, timeline_frame
)

# Used when a scenario's timeline is too short to compute a growth rate
DEFAULT_GROWTH_LABELS = ['20%', '15%', '8%']


def risk_label(overall: Optional[float]) -> str:
    if overall is None:
        return 'Unknown'
    if overall >= HIGH_RISK:
        return 'High'
    if overall >= MEDIUM_RISK:
        return 'Medium'
    return 'Low'


def growth_label(scenario: Dict, index: int) -> str:
    """Average month-on-month revenue growth, e.g. '15%'."""
    df = timeline_frame(scenario, index)
    if len(df) < 2 or not df['revenue'].iloc[0]:
        return DEFAULT_GROWTH_LABELS[index % len(DEFAULT_GROWTH_LABELS)]
    ratio = df['revenue'].iloc[-1] / df['revenue'].iloc[0]
    if ratio <= 0:
        return DEFAULT_GROWTH_LABELS[index % len(DEFAULT_GROWTH_LABELS)]
    monthly = ratio ** (1 / (len(df) - 1)) - 1
    return f'{monthly * 100:.0f}%'


def render_kpi_row(metrics: List[Dict]):
    """
    Render a row of KPI cards.

    Args:
        metrics: List of dicts with keys: title, value, delta, icon, help
    """
    if not metrics:
        return

    cols = st.columns(len(metrics))
    for col, m in zip(cols, metrics):
        with col:
            st.metric(
                label=f"{m.get('icon', '📊')} {m['title']}",
                value=m['value'],
                delta=m.get('delta', None),
                delta_color=m.get('delta_color', 'normal'),
                help=m.get('help', None)
            )


def render_scenario_card(scenario: Dict, index: int, max_insights: int = 2):
    """
    Render one scenario: title, description, confidence, growth rate,
    risk level and the top insights.
    """
    color = scenario_color(index)
    risk = (scenario.get('riskAssessment') or {}).get('overall')

    card_html = f"""
    <div style="
        background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%);
        border-radius: 16px;
        padding: 20px;
        border-left: 5px solid {color};
        margin-bottom: 16px;
        box-shadow: 0 8px 32px rgba(0, 212, 255, 0.1);
    ">
        <div style="font-size: 1.2rem; font-weight: 700; color: white; margin-bottom: 6px;">
            {html.escape(scenario.get('title', f'Scenario {index + 1}'))}
        </div>
        <p style="color: #9ca3af; font-size: 0.9rem; margin: 0;">
            {html.escape(scenario.get('description', ''))}
        </p>
    </div>
    """
    st.markdown(card_html, unsafe_allow_html=True)

    c1, c2, c3 = st.columns(3)
    c1.metric("Confidence", f"{scenario.get('confidence', 0)}%")
    c2.metric("Growth", growth_label(scenario, index))
    c3.metric("Risk", risk_label(risk))

    insights = display_insights(scenario.get('keyInsights') or [])
    if not insights:
        return

    st.caption(f"Strategic Insights · {len(insights)} insights")
    for i, insight in enumerate(insights[:max_insights], start=1):
        if insight['title']:
            st.markdown(f"**{i}. {insight['title']}**  \n{insight['content']}")
        else:
            st.markdown(f"**{i}.** {insight['content']}")

    if len(insights) > max_insights:
        with st.expander(f"Show {len(insights) - max_insights} more"):
            for i, insight in enumerate(insights[max_insights:], start=max_insights + 1):
                prefix = f"**{insight['title']}**: " if insight['title'] else ''
                st.markdown(f"{i}. {prefix}{insight['content']}")
