# quantum_sim/dashboard/components/charts.py

"""Reusable Plotly chart components with premium dark theme."""

import plotly.graph_objects as go
import pandas as pd
import numpy as np
from typing import Dict, List, Optional

from quantum_sim.engine.timeline import SCENARIO_PROFILES, generate_timeline

# Premium color palette
COLORS = {
    'primary': '#00d4ff',
    'secondary': '#7c3aed',
    'accent': '#a855f7',
    'success': '#10b981',
    'warning': '#f59e0b',
    'danger': '#ef4444',
    'info': '#06b6d4',
    'revenue': '#00d4ff',
    'costs': '#f59e0b',
    'bg_card': '#1a1a2e',
    'bg_dark': '#0d1117',
    'grid': 'rgba(255,255,255,0.06)',
    'text': '#e6edf3',
    'text_muted': '#8b949e',
}

# One colour per scenario card, in display order
SCENARIO_COLORS = ['#2563EB', '#059669', '#DC2626']

# Demo curve per card position when a scenario arrives without a timeline
DEMO_PROFILES = ['aggressive', 'steady', 'slow']

METRICS = {
    'revenue': ('revenue', 'Revenue ($)'),
    'customers': ('customerCount', 'Customer Count'),
    'marketShare': ('marketShare', 'Market Share (%)'),
}

FONT = dict(family='Inter, Segoe UI, sans-serif', color=COLORS['text'])

TEMPLATE = 'plotly_dark'

# Risk score bands shared by the gauge and the scenario card labels
HIGH_RISK = 70
MEDIUM_RISK = 40


# Shared layout base
def _base_layout(title: str, height: int) -> dict:
    return dict(
        title=dict(
            text=title,
            font=dict(size=20, family='Inter, Segoe UI, sans-serif', color='white'),
            x=0.02, xanchor='left'
        ),
        template=TEMPLATE,
        height=height,
        font=FONT,
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        margin=dict(l=60, r=30, t=70, b=50),
    )


def _empty_figure(message: str, height: int) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message, xref="paper", yref="paper", x=0.5, y=0.5,
        showarrow=False, font=dict(size=16, color=COLORS['text_muted']))
    fig.update_layout(height=height, paper_bgcolor='rgba(0,0,0,0)')
    return fig


def scenario_color(index: int) -> str:
    return SCENARIO_COLORS[index % len(SCENARIO_COLORS)]


def demo_timeline(index: int, months: int = 12) -> pd.DataFrame:
    """Locally generated timeline in the API's camelCase column names."""
    profile = SCENARIO_PROFILES[DEMO_PROFILES[index % len(DEMO_PROFILES)]]
    df = generate_timeline(profile, months=months)
    return df.rename(columns={
        'market_share': 'marketShare',
        'customer_count': 'customerCount',
        'operating_costs': 'operatingCosts',
        'key_events': 'keyEvents',
    })


def timeline_frame(scenario: Dict, index: int) -> pd.DataFrame:
    """A scenario's timeline as a DataFrame, or a demo one if it has none."""
    points = scenario.get('timeline') or []
    if not points:
        return demo_timeline(index)
    return pd.DataFrame(points)


def create_timeline_chart(
    scenarios: List[Dict],
    metric: str = 'revenue',
    title: Optional[str] = None,
    height: int = 480
) -> go.Figure:
    """Multi-scenario line chart for revenue, customers or market share."""
    if not scenarios:
        return _empty_figure("No scenarios to display", height)

    column, axis_label = METRICS.get(metric, METRICS['revenue'])

    fig = go.Figure()
    for index, scenario in enumerate(scenarios):
        df = timeline_frame(scenario, index)
        values = df[column] * 100 if metric == 'marketShare' else df[column]
        events = df['keyEvents'] if 'keyEvents' in df.columns else [[]] * len(df)

        fig.add_trace(go.Scatter(
            x=df['month'], y=values,
            mode='lines+markers',
            name=scenario.get('title', f'Scenario {index + 1}'),
            line=dict(color=scenario_color(index), width=3, shape='spline'),
            marker=dict(size=7, symbol='circle'),
            customdata=[', '.join(e) if e else '' for e in events],
            hovertemplate='%{x}<br>%{y:,.2f}<br>%{customdata}<extra></extra>'
        ))

    layout = _base_layout(title or f'Scenario Timeline: {axis_label}', height)
    layout.update(
        hovermode='x unified',
        legend=dict(
            orientation='h', y=1.12, x=0.5, xanchor='center',
            bgcolor='rgba(13,17,23,0.85)',
            bordercolor='rgba(0,212,255,0.25)', borderwidth=1,
            font=dict(size=12)
        ),
    )
    fig.update_layout(**layout)
    fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor=COLORS['grid'],
                     title_text='Month', title_font=dict(size=13, color=COLORS['text_muted']))
    fig.update_yaxes(showgrid=True, gridwidth=1, gridcolor=COLORS['grid'],
                     title_text=axis_label, title_font=dict(size=13, color=COLORS['text_muted']))
    return fig


def create_risk_gauge(
    risk_score: float,
    title: str = 'Risk Score',
    height: int = 260
) -> go.Figure:
    """Radial gauge chart for risk."""
    color = (COLORS['danger'] if risk_score >= HIGH_RISK
             else COLORS['warning'] if risk_score >= MEDIUM_RISK
             else COLORS['success'])

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=risk_score,
        number=dict(font=dict(size=36, color=color), suffix=''),
        title=dict(text=title, font=dict(size=14, color=COLORS['text_muted'])),
        gauge=dict(
            axis=dict(range=[0, 100], tickwidth=1,
                      tickcolor='rgba(255,255,255,0.3)',
                      tickfont=dict(size=10, color=COLORS['text_muted'])),
            bar=dict(color=color, thickness=0.7),
            bgcolor='rgba(26,26,46,0.4)',
            borderwidth=0,
            steps=[
                dict(range=[0, MEDIUM_RISK], color='rgba(16,185,129,0.12)'),
                dict(range=[MEDIUM_RISK, HIGH_RISK], color='rgba(245,158,11,0.12)'),
                dict(range=[HIGH_RISK, 100], color='rgba(239,68,68,0.12)'),
            ],
            threshold=dict(
                line=dict(color="white", width=3),
                thickness=0.8, value=risk_score
            )
        )
    ))

    fig.update_layout(
        template=TEMPLATE, height=height,
        margin=dict(l=30, r=30, t=50, b=10),
        paper_bgcolor='rgba(0,0,0,0)', font=FONT
    )
    return fig


def create_confidence_bar(
    scenarios: List[Dict],
    title: str = 'Scenario Confidence',
    height: int = 360
) -> go.Figure:
    """Horizontal bar chart comparing scenario confidence."""
    if not scenarios:
        return _empty_figure("No scenarios to display", height)

    names = [s.get('title', f'Scenario {i + 1}') for i, s in enumerate(scenarios)]
    values = [s.get('confidence', 0) for s in scenarios]

    fig = go.Figure(go.Bar(
        y=names, x=values,
        orientation='h',
        marker=dict(color=[scenario_color(i) for i in range(len(scenarios))],
                    cornerradius=6,
                    line=dict(color='rgba(255,255,255,0.08)', width=1)),
        text=[f'{v}%' for v in values],
        textposition='outside',
        textfont=dict(size=13, family='Inter, sans-serif', color='white')
    ))

    layout = _base_layout(title, height)
    layout['margin'] = dict(l=200, r=80, t=70, b=40)
    fig.update_layout(**layout, showlegend=False)
    fig.update_yaxes(showgrid=False, autorange='reversed')
    fig.update_xaxes(showgrid=True, gridwidth=1, gridcolor=COLORS['grid'],
                     range=[0, 110])
    return fig


def create_revenue_cost_chart(
    scenario: Dict,
    index: int = 0,
    title: Optional[str] = None,
    height: int = 400
) -> go.Figure:
    """Stacked revenue vs operating cost area chart for one scenario."""
    df = timeline_frame(scenario, index)
    revenue = df['revenue'].to_numpy(dtype=float)
    costs = df['operatingCosts'].to_numpy(dtype=float)

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=df['month'], y=costs,
        mode='lines', name='Operating Costs',
        line=dict(color=COLORS['costs'], width=2),
        fill='tozeroy', fillcolor='rgba(245,158,11,0.15)'
    ))
    fig.add_trace(go.Scatter(
        x=df['month'], y=revenue,
        mode='lines', name='Revenue',
        line=dict(color=COLORS['revenue'], width=3),
        fill='tonexty', fillcolor='rgba(0,212,255,0.12)'
    ))

    margin = np.divide(revenue - costs, revenue,
                       out=np.zeros_like(revenue), where=revenue > 0)
    avg_margin = float(margin.mean() * 100) if len(margin) else 0.0

    layout = _base_layout(
        title or f"{scenario.get('title', 'Scenario')}: Revenue vs Costs "
                 f"(avg margin {avg_margin:.0f}%)",
        height)
    layout.update(hovermode='x unified')
    fig.update_layout(**layout)
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, gridwidth=1, gridcolor=COLORS['grid'],
                     title_text='USD', title_font=dict(size=13, color=COLORS['text_muted']))
    return fig
