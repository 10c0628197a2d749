# quantum_sim/engine/timeline.py

"""
Timeline Generator

Builds the monthly timelines behind every scenario and forecast.

A timeline is a pandas DataFrame with one row per month:

    month | date | revenue | probability | market_share
          | customer_count | operating_costs | key_events

Curves are exponential growth from a GrowthProfile with uniform
jitter on revenue. When BigQuery AI gives us a single-month estimate
for a scenario, blend_ai_estimate() re-bases the curve on it.

Risk and summary helpers turn a timeline into the numbers shown on
the scenario cards.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TIMELINE_COLUMNS = [
    'month', 'date', 'revenue', 'probability', 'market_share',
    'customer_count', 'operating_costs', 'key_events'
]


@dataclass(frozen=True)
class GrowthProfile:
    """
    Parameters of a synthetic growth curve.

    Attributes:
        jitter: Total width of the uniform revenue noise (0.15 = ±7.5%)
        probability_floor / probability_span: probability is drawn
            uniformly from [floor, floor + span)
        cost_basis: 'trend' computes operating costs from the
            un-jittered trend revenue, 'revenue' from the jittered one
    """

    name: str
    base_revenue: float
    revenue_growth: float
    base_customers: int
    customer_growth: float
    base_market_share: float
    market_share_growth: float
    market_share_cap: float
    jitter: float
    probability_floor: float
    probability_span: float
    cost_ratio: float
    cost_basis: str = 'trend'


# ===================================================================
# PROFILES
# ===================================================================
def _scenario_profile(name, revenue, growth, customers, customer_growth,
                      share, share_growth) -> GrowthProfile:
    return GrowthProfile(
        name=name,
        base_revenue=revenue,
        revenue_growth=growth,
        base_customers=customers,
        customer_growth=customer_growth,
        base_market_share=share,
        market_share_growth=share_growth,
        market_share_cap=0.25,
        jitter=0.15,
        probability_floor=0.70,
        probability_span=0.20,
        cost_ratio=0.70,
        cost_basis='trend',
    )


def _forecast_profile(name, revenue, growth, customers, customer_growth,
                      share, share_growth) -> GrowthProfile:
    return GrowthProfile(
        name=name,
        base_revenue=revenue,
        revenue_growth=growth,
        base_customers=customers,
        customer_growth=customer_growth,
        base_market_share=share,
        market_share_growth=share_growth,
        market_share_cap=0.30,
        jitter=0.10,
        probability_floor=0.65,
        probability_span=0.25,
        cost_ratio=0.72,
        cost_basis='revenue',
    )


# Used by the fallback scenarios
SCENARIO_PROFILES: Dict[str, GrowthProfile] = {
    'aggressive': _scenario_profile('aggressive', 75000, 1.20, 750, 1.18, 0.03, 1.12),
    'steady': _scenario_profile('steady', 50000, 1.15, 500, 1.12, 0.02, 1.08),
    'slow': _scenario_profile('slow', 30000, 1.08, 300, 1.06, 0.01, 1.04),
}
# Timeline used when AI.GENERATE_TABLE gives us nothing for a scenario
SCENARIO_PROFILES['mock'] = replace(
    SCENARIO_PROFILES['steady'], name='mock', jitter=0.20)

# Used by the forecast variations
FORECAST_PROFILES: Dict[str, GrowthProfile] = {
    'optimistic': _forecast_profile('optimistic', 120000, 1.18, 1200, 1.15, 0.04, 1.12),
    'realistic': _forecast_profile('realistic', 75000, 1.12, 800, 1.10, 0.025, 1.08),
    'conservative': _forecast_profile('conservative', 35000, 1.06, 400, 1.05, 0.015, 1.04),
}

OPTIMISTIC_KEYWORDS = ('surge', 'soars', 'aggressive', 'optimistic')
CONSERVATIVE_KEYWORDS = ('limited', 'noise', 'conservative')


def forecast_profile_for(variation_name: str) -> GrowthProfile:
    """Pick the forecast profile whose keywords appear in a variation name."""
    name = (variation_name or '').lower()
    if any(word in name for word in OPTIMISTIC_KEYWORDS):
        return FORECAST_PROFILES['optimistic']
    if any(word in name for word in CONSERVATIVE_KEYWORDS):
        return FORECAST_PROFILES['conservative']
    return FORECAST_PROFILES['realistic']


# ===================================================================
# KEY EVENTS
# ===================================================================
# Keyed by month index (first month = 0)
SCENARIO_EVENTS: Dict[int, List[str]] = {
    0: ['Product launch', 'Initial marketing campaign'],
    2: ['First major partnership'],
    4: ['Series A funding round'],
    6: ['International expansion'],
    8: ['Product v2.0 release'],
    10: ['Holiday season push'],
    11: ['Year-end optimization'],
}

# Keyed by month number (first month = 1)
FORECAST_EVENTS: Dict[int, List[str]] = {
    1: ['Product launch', 'Initial marketing campaign'],
    2: ['User feedback analysis'],
    3: ['Feature enhancement', 'First partnerships'],
    4: ['Marketing optimization'],
    5: ['Series A preparation', 'Team expansion'],
    6: ['Mid-year review', 'International planning'],
    7: ['Summer campaign launch'],
    8: ['Product v2.0 development'],
    9: ['Back-to-school targeting'],
    10: ['Q4 preparation', 'Holiday strategy'],
    11: ['Black Friday campaign'],
    12: ['Year-end analysis', 'Next year planning'],
}


def scenario_events(month_index: int) -> List[str]:
    return list(SCENARIO_EVENTS.get(month_index, []))


def forecast_events(month_index: int) -> List[str]:
    return list(FORECAST_EVENTS.get(month_index + 1, []))


# ===================================================================
# GENERATION
# ===================================================================
def month_labels(start: str = '2024-01', months: int = 12) -> pd.PeriodIndex:
    """Consecutive monthly periods, rolling over into the next year."""
    return pd.period_range(start=start, periods=months, freq='M')


def generate_timeline(
    profile: GrowthProfile,
    months: int = 12,
    start: str = '2024-01',
    events=scenario_events,
    rng: Optional[np.random.Generator] = None
) -> pd.DataFrame:
    """
    Generate a synthetic timeline from a growth profile.

    For month index i:
        revenue     = round(base × growth^i × (1 + u)),  u ∈ [-jitter/2, jitter/2)
        customers   = round(base × customer_growth^i)
        share       = min(base × share_growth^i, cap)
        probability = floor + U × span

    Args:
        profile: Growth parameters
        months: Number of monthly points
        start: First month as 'YYYY-MM'
        events: Callable mapping month index to its key events
        rng: numpy Generator (a fresh one when omitted)

    Returns:
        DataFrame with TIMELINE_COLUMNS
    """
    rng = rng if rng is not None else np.random.default_rng()
    rows = []

    for i, period in enumerate(month_labels(start, months)):
        trend = profile.base_revenue * profile.revenue_growth ** i
        revenue = round(trend * (1 + (rng.random() - 0.5) * profile.jitter))
        cost_base = trend if profile.cost_basis == 'trend' else revenue

        rows.append({
            'month': str(period),
            'date': period.start_time.date(),
            'revenue': float(revenue),
            'probability': profile.probability_floor + rng.random() * profile.probability_span,
            'market_share': min(
                profile.base_market_share * profile.market_share_growth ** i,
                profile.market_share_cap),
            'customer_count': int(round(profile.base_customers * profile.customer_growth ** i)),
            'operating_costs': float(round(cost_base * profile.cost_ratio)),
            'key_events': events(i),
        })

    return pd.DataFrame(rows, columns=TIMELINE_COLUMNS)


def blend_ai_estimate(
    timeline: pd.DataFrame,
    estimate: Optional[Mapping[str, Any]],
    rng: Optional[np.random.Generator] = None
) -> pd.DataFrame:
    """
    Re-base a timeline on a single-month AI estimate.

    Only applied when the estimate carries a truthy revenue_estimate;
    otherwise the timeline comes back unchanged. Operating costs and
    key events are kept from the input timeline.
    """
    if not estimate or not estimate.get('revenue_estimate'):
        return timeline

    rng = rng if rng is not None else np.random.default_rng()
    n = len(timeline)
    i = np.arange(n)

    ai_revenue = float(estimate['revenue_estimate'])
    ai_share = float(estimate.get('market_share_estimate') or 0.02)
    ai_customers = float(estimate.get('customer_estimate') or 500)
    ai_confidence = float(estimate.get('confidence_level') or 0.75)

    blended = timeline.copy()
    blended['revenue'] = np.round(
        ai_revenue * 1.1 ** i * (0.9 + rng.random(n) * 0.2)).astype(float)
    blended['market_share'] = np.minimum(ai_share * 1.05 ** i, 0.30)
    blended['customer_count'] = np.round(ai_customers * 1.08 ** i).astype(int)
    blended['probability'] = np.minimum(
        ai_confidence + rng.random(n) * 0.1 - 0.05, 0.95)

    logger.info(f"Blended AI estimate into timeline | Base revenue: {ai_revenue:,.0f}")
    return blended


# ===================================================================
# RISK & SUMMARY
# ===================================================================
def calculate_variance(values: Sequence[float]) -> float:
    """Population variance (0.0 for an empty sequence)."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.var(arr))


def calculate_risk_level(timeline: pd.DataFrame) -> int:
    """
    Risk score in [0, 100].

    Formula: round((var(revenue / mean revenue) × 0.6 + (1 − mean probability) × 0.4) × 100)

    Revenue is normalised by its mean so the variance term is scale-free;
    high volatility and low confidence both push risk up.
    """
    if timeline.empty:
        return 0

    revenue = timeline['revenue'].to_numpy(dtype=float)
    mean_revenue = revenue.mean()
    normalised = revenue / mean_revenue if mean_revenue else np.zeros_like(revenue)

    revenue_variance = calculate_variance(normalised)
    avg_confidence = float(timeline['probability'].mean())

    risk = round((revenue_variance * 0.6 + (1 - avg_confidence) * 0.4) * 100)
    return int(min(max(risk, 0), 100))


def summarize_timeline(timeline: pd.DataFrame) -> Dict[str, float]:
    """Totals shown on a forecast card."""
    if timeline.empty:
        return {
            'total_revenue': 0.0,
            'average_confidence': 0.0,
            'peak_revenue': 0.0,
            'risk_level': 0,
        }
    return {
        'total_revenue': float(timeline['revenue'].sum()),
        'average_confidence': float(timeline['probability'].mean()),
        'peak_revenue': float(timeline['revenue'].max()),
        'risk_level': calculate_risk_level(timeline),
    }


def timeline_records(timeline: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame → list of plain-Python dicts ready for pydantic."""
    return [
        {
            'month': str(row['month']),
            'date': row['date'],
            'revenue': float(row['revenue']),
            'probability': float(row['probability']),
            'market_share': float(row['market_share']),
            'customer_count': int(row['customer_count']),
            'operating_costs': float(row['operating_costs']),
            'key_events': list(row['key_events'] or []),
        }
        for row in timeline.to_dict('records')
    ]
