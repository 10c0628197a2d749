# quantum_sim/engine/scenario_engine.py

"""
Scenario Engine

Turns a "what if" business question into a set of fully populated
scenarios using BigQuery AI:

  1. ML.GENERATE_TEXT      → three scenario outlines (JSON)
  2. AI.GENERATE_TABLE     → monthly timeline per scenario
  3. AI.GENERATE_TABLE     → financial projections
  4. ML.GENERATE_TEXT      → risk analysis and key insights
  5. ML.GENERATE_EMBEDDING → similar historical cases

Every step has its own fallback, so a scenario is always returned
even when BigQuery AI is down. If the outline step itself fails the
whole request is served from the canned fallback scenarios.
"""

import re
import json
import math
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from quantum_sim.bigquery.client import BigQueryAI, parse_json_rows
from quantum_sim.bigquery.datasets import DatasetQueryBuilder, market_data_query
from quantum_sim.engine import fallbacks
from quantum_sim.engine.timeline import (
    SCENARIO_PROFILES, TIMELINE_COLUMNS, generate_timeline, timeline_records
)

logger = logging.getLogger(__name__)

TIMELINE_SCHEMA = {
    'month': 'STRING',
    'revenue': 'FLOAT64',
    'probability': 'FLOAT64',
    'market_share': 'FLOAT64',
    'customer_count': 'INT64',
    'operating_costs': 'FLOAT64',
    'key_events': 'STRING',
}

PROJECTION_SCHEMA = {
    'metric': 'STRING',
    'current_value': 'FLOAT64',
    'projected_value': 'FLOAT64',
    'variance': 'FLOAT64',
    'confidence': 'FLOAT64',
    'timeframe': 'STRING',
}

MAX_INSIGHTS = 5
MAX_MITIGATIONS = 5

_BULLET_RE = re.compile(r'^\s*(?:[-•*]|\d+[.)])\s*')


class ScenarioEngine:
    """
    Generates business scenarios for a decision query.

    Usage:
        engine = ScenarioEngine(get_bigquery_ai())
        scenarios = engine.generate_scenarios(query, context, options)
    """

    def __init__(self, ai: BigQueryAI, rng: Optional[np.random.Generator] = None):
        self.ai = ai
        self.rng = rng if rng is not None else np.random.default_rng()

    # ===================================================================
    # ENTRY POINT
    # ===================================================================
    def generate_scenarios(
        self,
        query: str,
        context: Mapping[str, Any],
        options: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Generate scenarios for a query.

        Args:
            query: The decision being considered
            context: Business context (industry, company_size, ...)
            options: scenario_count, time_horizon, include_similar_cases

        Returns:
            List of scenario dicts (snake_case keys), at most scenario_count
        """
        options = options or {}
        scenario_count = options.get('scenario_count') or 3
        months = options.get('time_horizon') or 12

        try:
            outlines = self._generate_outlines(query, context)
        except Exception as e:
            logger.warning(f"BigQuery AI failed, using fallback scenarios: {e}")
            return self.fallback_scenarios(query, scenario_count, months)

        scenarios = []
        for n, outline in enumerate(outlines[:scenario_count], start=1):
            logger.info(f"Building scenario {n}: {outline.get('title')}")

            similar_cases = (
                self.find_similar_cases(query, context)
                if options.get('include_similar_cases') else []
            )

            scenarios.append({
                'id': _text(outline.get('scenario_id')) or f'scenario_{n}',
                'title': _text(outline.get('title')) or f'Scenario {n}',
                'description': _text(outline.get('description')) or '',
                'confidence': _confidence_percent(outline.get('confidence')),
                'created_at': datetime.now(),
                'query': query,
                'timeline': timeline_records(
                    self.generate_timeline(outline, context, months)),
                'key_insights': self.generate_key_insights(outline, context),
                'financial_projections': self.generate_financial_projections(outline, context),
                'risk_assessment': self.generate_risk_assessment(outline, context),
                'similar_cases': similar_cases,
                'key_assumptions': _text(outline.get('key_assumptions')),
                'expected_outcome': _text(outline.get('expected_outcome')),
            })

        logger.info(f"✅ Generated {len(scenarios)} scenarios")
        return scenarios

    def _generate_outlines(self, query: str, context: Mapping[str, Any]) -> List[Dict]:
        prompt = f"""
            Generate exactly 3 distinct business scenarios for the following strategic decision:

            Query: "{query}"
            Industry: {context.get('industry')}
            Company Size: {context.get('company_size')}
            Business Model: {context.get('business_model')}
            Region: {context.get('region')}
            Timeframe: {context.get('timeframe')}

            Return a JSON array with exactly 3 objects. Each object must have ALL these fields:
            - scenario_id: unique identifier (scenario_1, scenario_2, scenario_3)
            - title: concise, specific title (max 50 characters)
            - description: brief description (max 150 characters)
            - confidence: confidence level between 0.6 and 0.95
            - key_assumptions: key assumptions (max 100 characters)
            - expected_outcome: expected outcome (max 100 characters)

            Make each scenario distinct: one optimistic, one realistic, one conservative.
            Ensure titles are specific to the query, not generic.

            Return ONLY valid JSON, no additional text:
        """

        response = self.ai.generate_text(prompt, max_tokens=2000, temperature=0.7)
        if not response or not response.strip():
            raise ValueError('BigQuery AI returned empty response')

        try:
            rows = parse_json_rows(response)
        except ValueError as e:
            raise ValueError(f'Failed to parse AI response as JSON: {e}') from e

        outlines = [row for row in rows if isinstance(row, dict)]
        if not outlines:
            raise ValueError('AI response contained no scenario objects')

        logger.info(f"Parsed {len(outlines)} scenario outlines")
        return outlines

    # ===================================================================
    # TIMELINE
    # ===================================================================
    def generate_timeline(
        self,
        outline: Mapping[str, Any],
        context: Mapping[str, Any],
        months: int = 12
    ) -> pd.DataFrame:
        """AI timeline grounded in real market data, or the mock curve."""
        try:
            market_insights = self._market_insights(context.get('industry'))

            prompt = f"""
                Generate a {months}-month business timeline for the following scenario:
                Title: {outline.get('title')}
                Description: {outline.get('description')}
                Industry: {context.get('industry')}
                Company Size: {context.get('company_size')}

                {f'Real Market Data Insights: {market_insights}' if market_insights else ''}

                Create monthly projections including revenue, market share, customer count, and key events.
                Use YYYY-MM for the month.
                Base your projections on realistic business metrics and incorporate the real market data patterns above.
                Consider seasonal trends, market dynamics, and industry-specific factors.
            """

            rows = self.ai.generate_table(prompt, TIMELINE_SCHEMA)
            if not rows:
                raise ValueError('AI.GENERATE_TABLE returned no timeline rows')
            return timeline_from_rows(rows)

        except Exception as e:
            logger.warning(f"Failed to generate timeline with real data, using fallback: {e}")
            return generate_timeline(
                SCENARIO_PROFILES['mock'], months=months, rng=self.rng)

    def _market_insights(self, industry: Optional[str]) -> str:
        query = market_data_query(industry)
        if query is None:
            return ''
        sql, params = query
        try:
            rows = self.ai.execute_query(sql, params)
        except Exception as e:
            logger.warning(f"Real market data unavailable for {industry}: {e}")
            return ''
        return f'Based on real market data: {json.dumps(rows[:3], default=str)}'

    # ===================================================================
    # PROJECTIONS, RISK, INSIGHTS
    # ===================================================================
    def generate_financial_projections(
        self,
        outline: Mapping[str, Any],
        context: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        prompt = f"""
            Generate financial projections for this business scenario:
            {outline.get('title')}: {outline.get('description')}
            Industry: {context.get('industry')}
            Company Size: {context.get('company_size')}

            Provide projections for key financial metrics including revenue, costs, profit margins, and growth rates.
        """

        try:
            rows = self.ai.generate_table(prompt, PROJECTION_SCHEMA)
            return [
                {
                    'metric': _text(row.get('metric')) or 'Unnamed metric',
                    'current_value': float(row.get('current_value') or 0),
                    'projected_value': float(row.get('projected_value') or 0),
                    'variance': float(row.get('variance') or 0),
                    'confidence': round(float(row.get('confidence') or 0.5) * 100),
                    'timeframe': _text(row.get('timeframe')) or '12 months',
                }
                for row in rows
            ]
        except Exception as e:
            logger.warning(f"Financial projections failed, using mock projections: {e}")
            return fallbacks.mock_financial_projections()

    def generate_risk_assessment(
        self,
        outline: Mapping[str, Any],
        context: Mapping[str, Any]
    ) -> Dict[str, Any]:
        prompt = f"""
            Analyze the risks for this business scenario:
            {outline.get('title')}: {outline.get('description')}
            Industry: {context.get('industry')}

            Identify key risk factors, their impact and probability, and suggest mitigation strategies.
            List the mitigation strategies as bullet points under a "Mitigation" heading.
        """

        try:
            risk_text = self.ai.generate_text(prompt, max_tokens=800)
        except Exception as e:
            logger.warning(f"Risk analysis failed, using mock assessment: {e}")
            return fallbacks.mock_risk_assessment()

        rng = self.rng
        return {
            'overall': int(rng.integers(30, 70)),
            'factors': [
                {
                    'name': 'Market Competition',
                    'impact': int(rng.integers(40, 70)),
                    'probability': int(rng.integers(30, 70)),
                    'description': 'Competitive response to market changes',
                },
                {
                    'name': 'Economic Conditions',
                    'impact': int(rng.integers(35, 60)),
                    'probability': int(rng.integers(25, 60)),
                    'description': 'Macroeconomic factors affecting business',
                },
            ],
            'mitigation': parse_mitigation(risk_text),
        }

    def generate_key_insights(
        self,
        outline: Mapping[str, Any],
        context: Mapping[str, Any]
    ) -> List[str]:
        prompt = f"""
            Generate 3-5 key business insights for this scenario:
            {outline.get('title')}: {outline.get('description')}
            Industry: {context.get('industry')}

            Focus on actionable insights that would be valuable for executive decision-making.
        """

        try:
            text = self.ai.generate_text(prompt, max_tokens=500)
        except Exception as e:
            logger.warning(f"Key insights failed, using canned insights: {e}")
            return fallbacks.fallback_insights()

        return split_insights(text)

    # ===================================================================
    # SIMILAR CASES
    # ===================================================================
    def find_similar_cases(
        self,
        query: str,
        context: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        """Historical cases from public datasets, or two curated ones."""
        try:
            self.ai.generate_embedding(
                f"{query} {context.get('industry')} {context.get('company_size')}")

            results = (
                self.ai.execute_query(*DatasetQueryBuilder.analytics_similar_cases())
                + self.ai.execute_query(*DatasetQueryBuilder.trends_similar_cases())
            )
            return [
                {
                    'id': f'real_case_{i}',
                    'company': _text(row.get('company')) or 'Unknown Company',
                    'industry': (_text(row.get('industry')) or context.get('industry')
                                 or 'Unknown'),
                    'scenario': _text(row.get('scenario')) or 'Business scenario analysis',
                    'outcome': _text(row.get('outcome')) or 'Outcome analysis pending',
                    'similarity': min(float(row.get('similarity') or 0.5), 0.95),
                    'year': int(row.get('year') or 2023),
                }
                for i, row in enumerate(results)
            ]
        except Exception as e:
            logger.warning(f"Failed to fetch real similar cases, using fallback data: {e}")
            return fallbacks.curated_similar_cases()

    # ===================================================================
    # FALLBACK
    # ===================================================================
    def fallback_scenarios(
        self,
        query: str,
        count: int = 3,
        months: int = 12
    ) -> List[Dict[str, Any]]:
        """The three canned scenarios, truncated to count."""
        scenarios = []
        for template in fallbacks.FALLBACK_SCENARIOS[:count]:
            timeline = generate_timeline(
                SCENARIO_PROFILES[template['profile']], months=months, rng=self.rng)
            scenarios.append({
                'id': template['id'],
                'title': template['title'],
                'description': template['description'],
                'confidence': template['confidence'],
                'created_at': datetime.now(),
                'query': query,
                'timeline': timeline_records(timeline),
                'key_insights': list(template['key_insights']),
                'financial_projections': fallbacks.mock_financial_projections(),
                'risk_assessment': fallbacks.mock_risk_assessment(),
                'similar_cases': [],
            })
        return scenarios


# ===================================================================
# PARSING HELPERS
# ===================================================================
def _confidence_percent(value: Any) -> int:
    """0.85 → 85; values already on a 0-100 scale are kept."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        confidence = 0.5
    if not math.isfinite(confidence):
        confidence = 0.5
    if confidence <= 1:
        confidence *= 100
    return int(round(min(max(confidence, 0), 100)))


def _text(value: Any) -> Optional[str]:
    """Model output as a string; lists are joined with commas."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value)
    return str(value)


def timeline_from_rows(rows: List[Mapping[str, Any]]) -> pd.DataFrame:
    """Map AI.GENERATE_TABLE rows onto the timeline columns."""
    records = []
    for row in rows:
        month = str(row.get('month') or '').strip()
        key_events = row.get('key_events') or ''
        records.append({
            'month': month,
            'date': pd.Period(month, freq='M').start_time.date(),
            'revenue': float(row.get('revenue') or 0),
            'probability': float(row.get('probability') or 0.5),
            'market_share': float(row.get('market_share') or 0),
            'customer_count': int(row.get('customer_count') or 0),
            'operating_costs': float(row.get('operating_costs') or 0),
            'key_events': [e.strip() for e in str(key_events).split(',') if e.strip()],
        })
    return pd.DataFrame(records, columns=TIMELINE_COLUMNS)


def split_insights(text: str) -> List[str]:
    """One insight per non-empty line, bullet markers removed."""
    lines = [line.strip() for line in (text or '').split('\n')]
    insights = [re.sub(r'^[-•*]\s*', '', line).strip() for line in lines if line]
    return [i for i in insights if i][:MAX_INSIGHTS]


def parse_mitigation(text: str) -> List[str]:
    """
    Bullet points that follow a 'mitigation' heading in the risk text.

    Falls back to the default strategies when none are found.
    """
    lines = (text or '').split('\n')
    start = next(
        (i for i, line in enumerate(lines) if 'mitigat' in line.lower()), None)
    if start is None:
        return list(fallbacks.DEFAULT_MITIGATION)

    strategies = []
    for line in lines[start + 1:]:
        if not _BULLET_RE.match(line):
            continue
        item = _BULLET_RE.sub('', line).replace('**', '').strip()
        if item:
            strategies.append(item)

    return strategies[:MAX_MITIGATIONS] or list(fallbacks.DEFAULT_MITIGATION)
