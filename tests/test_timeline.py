from datetime import date

import numpy as np
import pandas as pd
import pytest

from quantum_sim.engine.timeline import (
    FORECAST_PROFILES, SCENARIO_PROFILES, TIMELINE_COLUMNS,
    blend_ai_estimate, calculate_risk_level, calculate_variance,
    forecast_events, forecast_profile_for, generate_timeline,
    scenario_events, summarize_timeline, timeline_records
)


def test_default_timeline_is_twelve_months_of_2024(rng):
    df = generate_timeline(SCENARIO_PROFILES['steady'], rng=rng)
    assert list(df.columns) == TIMELINE_COLUMNS
    assert len(df) == 12
    assert df['month'].tolist()[0] == '2024-01'
    assert df['month'].tolist()[-1] == '2024-12'
    assert df['date'].iloc[0] == date(2024, 1, 1)


def test_month_labels_roll_into_next_year(rng):
    df = generate_timeline(SCENARIO_PROFILES['steady'], months=15, rng=rng)
    assert df['month'].tolist()[12:] == ['2025-01', '2025-02', '2025-03']
    assert df['date'].iloc[-1] == date(2025, 3, 1)


def test_revenue_stays_within_jitter_of_trend(rng):
    profile = SCENARIO_PROFILES['aggressive']
    df = generate_timeline(profile, rng=rng)
    for i, revenue in enumerate(df['revenue']):
        trend = profile.base_revenue * profile.revenue_growth ** i
        assert abs(revenue - trend) <= trend * profile.jitter / 2 + 0.5


def test_customers_follow_exact_growth_curve(rng):
    df = generate_timeline(SCENARIO_PROFILES['aggressive'], rng=rng)
    expected = [round(750 * 1.18 ** i) for i in range(12)]
    assert df['customer_count'].tolist() == expected


def test_scenario_costs_come_from_trend_revenue(rng):
    profile = SCENARIO_PROFILES['slow']
    df = generate_timeline(profile, rng=rng)
    expected = [round(30000 * 1.08 ** i * 0.7) for i in range(12)]
    assert df['operating_costs'].tolist() == expected


def test_forecast_costs_come_from_jittered_revenue(rng):
    df = generate_timeline(FORECAST_PROFILES['realistic'], rng=rng)
    expected = [round(r * 0.72) for r in df['revenue']]
    assert df['operating_costs'].tolist() == expected


def test_market_share_is_capped(rng):
    df = generate_timeline(SCENARIO_PROFILES['aggressive'], months=48, rng=rng)
    assert df['market_share'].max() == pytest.approx(0.25)
    df = generate_timeline(FORECAST_PROFILES['optimistic'], months=48, rng=rng)
    assert df['market_share'].max() == pytest.approx(0.30)


def test_probability_ranges(rng):
    scenario = generate_timeline(SCENARIO_PROFILES['steady'], months=60, rng=rng)
    assert scenario['probability'].between(0.70, 0.90).all()
    forecast = generate_timeline(FORECAST_PROFILES['realistic'], months=60, rng=rng)
    assert forecast['probability'].between(0.65, 0.90).all()


def test_mock_profile_is_steady_with_wider_jitter():
    mock, steady = SCENARIO_PROFILES['mock'], SCENARIO_PROFILES['steady']
    assert mock.base_revenue == steady.base_revenue == 50000
    assert mock.jitter == 0.20
    assert steady.jitter == 0.15


def test_same_seed_gives_same_timeline():
    a = generate_timeline(SCENARIO_PROFILES['steady'], rng=np.random.default_rng(7))
    b = generate_timeline(SCENARIO_PROFILES['steady'], rng=np.random.default_rng(7))
    pd.testing.assert_frame_equal(a, b)


def test_scenario_event_calendar(rng):
    df = generate_timeline(SCENARIO_PROFILES['steady'], months=14, rng=rng)
    events = df['key_events'].tolist()
    assert events[0] == ['Product launch', 'Initial marketing campaign']
    assert events[1] == []
    assert events[4] == ['Series A funding round']
    assert events[11] == ['Year-end optimization']
    assert events[12] == []


def test_forecast_event_calendar_is_keyed_by_month_number():
    assert forecast_events(0) == ['Product launch', 'Initial marketing campaign']
    assert forecast_events(4) == ['Series A preparation', 'Team expansion']
    assert forecast_events(11) == ['Year-end analysis', 'Next year planning']
    assert forecast_events(12) == []


def test_event_lists_are_copies():
    scenario_events(0).append('mutated')
    assert scenario_events(0) == ['Product launch', 'Initial marketing campaign']


@pytest.mark.parametrize('name, expected', [
    ('Market Surge', 'optimistic'),
    ('Revenue soars', 'optimistic'),
    ('Aggressive Growth Strategy', 'optimistic'),
    ('Optimistic case', 'optimistic'),
    ('Limited Pilot', 'conservative'),
    ('Market noise', 'conservative'),
    ('Conservative Strategy', 'conservative'),
    ('Balanced Approach', 'realistic'),
    ('', 'realistic'),
])
def test_forecast_profile_for(name, expected):
    assert forecast_profile_for(name).name == expected


def test_blend_without_revenue_estimate_returns_timeline_unchanged(rng):
    df = generate_timeline(FORECAST_PROFILES['realistic'], rng=rng)
    assert blend_ai_estimate(df, None, rng=rng) is df
    assert blend_ai_estimate(df, {'revenue_estimate': 0}, rng=rng) is df


def test_blend_rebases_curve_on_estimate(rng):
    df = generate_timeline(
        FORECAST_PROFILES['realistic'], events=forecast_events, rng=rng)
    estimate = {
        'revenue_estimate': 100000,
        'market_share_estimate': 0.03,
        'customer_estimate': 600,
        'confidence_level': 0.8,
    }
    blended = blend_ai_estimate(df, estimate, rng=rng)

    for i, row in blended.iterrows():
        trend = 100000 * 1.1 ** i
        assert trend * 0.9 - 0.5 <= row['revenue'] <= trend * 1.1 + 0.5
        assert row['market_share'] == pytest.approx(min(0.03 * 1.05 ** i, 0.30))
        assert row['customer_count'] == round(600 * 1.08 ** i)
        assert 0.75 <= row['probability'] <= 0.85

    assert blended['operating_costs'].tolist() == df['operating_costs'].tolist()
    assert blended['key_events'].tolist() == df['key_events'].tolist()


def test_blend_defaults_missing_estimate_fields(rng):
    df = generate_timeline(FORECAST_PROFILES['realistic'], rng=rng)
    blended = blend_ai_estimate(df, {'revenue_estimate': 50000}, rng=rng)
    assert blended['market_share'].iloc[0] == pytest.approx(0.02)
    assert blended['customer_count'].iloc[0] == 500
    assert 0.70 <= blended['probability'].iloc[0] <= 0.80


def test_blend_probability_never_exceeds_cap(rng):
    df = generate_timeline(FORECAST_PROFILES['realistic'], rng=rng)
    blended = blend_ai_estimate(
        df, {'revenue_estimate': 1000, 'confidence_level': 0.99}, rng=rng)
    assert (blended['probability'] <= 0.95).all()


def test_calculate_variance_is_population_variance():
    assert calculate_variance([1, 2, 3, 4]) == pytest.approx(1.25)
    assert calculate_variance([]) == 0.0


def _timeline(revenues, probability):
    return pd.DataFrame({
        'revenue': revenues,
        'probability': [probability] * len(revenues),
    })


def test_flat_revenue_risk_comes_from_confidence_only():
    assert calculate_risk_level(_timeline([100.0] * 12, 0.8)) == 8


def test_volatile_revenue_raises_risk():
    calm = calculate_risk_level(_timeline([100.0, 101.0, 99.0, 100.0], 0.8))
    wild = calculate_risk_level(_timeline([10.0, 300.0, 5.0, 250.0], 0.8))
    assert wild > calm


def test_risk_level_is_clamped():
    assert calculate_risk_level(_timeline([1.0, 1000.0, 1.0, 1000.0], 0.0)) <= 100
    assert calculate_risk_level(_timeline([100.0] * 3, 1.0)) == 0
    assert calculate_risk_level(_timeline([], 0.5)) == 0


def test_risk_level_is_scale_free():
    small = calculate_risk_level(_timeline([10.0, 20.0, 30.0], 0.7))
    large = calculate_risk_level(_timeline([10000.0, 20000.0, 30000.0], 0.7))
    assert small == large


def test_summarize_timeline():
    df = _timeline([100.0, 300.0, 200.0], 0.8)
    summary = summarize_timeline(df)
    assert summary['total_revenue'] == 600.0
    assert summary['peak_revenue'] == 300.0
    assert summary['average_confidence'] == pytest.approx(0.8)
    assert summary['risk_level'] == calculate_risk_level(df)


def test_timeline_records_are_plain_python(rng):
    records = timeline_records(generate_timeline(SCENARIO_PROFILES['steady'], rng=rng))
    first = records[0]
    assert type(first['revenue']) is float
    assert type(first['customer_count']) is int
    assert type(first['key_events']) is list
    assert first['month'] == '2024-01'
