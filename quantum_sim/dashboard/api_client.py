# quantum_sim/dashboard/api_client.py

"""
HTTP client the dashboard uses to talk to the API, plus the helpers
that shape API payloads for display.

The API speaks camelCase JSON, so everything here works with
camelCase dicts exactly as they come off the wire.
"""

import re
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

# Substrings that mark an LLM preamble rather than an actual insight
META_PHRASES = ('here are', 'key business insights')
MIN_INSIGHT_LENGTH = 50


class APIError(Exception):
    """The API answered with success=false or a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def infer_context(query: str) -> Dict[str, str]:
    """Guess the business context from the wording of a query."""
    q = (query or '').lower()
    if 'ecommerce' in q or 'online' in q:
        industry = 'ecommerce'
    elif 'tech' in q:
        industry = 'technology'
    elif 'retail' in q:
        industry = 'retail'
    else:
        industry = 'technology'

    return {
        'industry': industry,
        'companySize': 'startup',
        'timeframe': '2020-2024',
        'region': 'North America',
        'businessModel': 'B2B SaaS',
    }


class QuantumAPIClient:
    """Thin requests wrapper around the /api routes."""

    def __init__(
        self,
        base_url: str = 'http://localhost:8000',
        timeout: float = 120,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise APIError(f"Could not reach API at {url}: {e}")

        try:
            body = resp.json()
        except ValueError:
            raise APIError(
                f"{path} returned {resp.status_code} with a non-JSON body",
                resp.status_code)

        if not resp.ok or not body.get('success'):
            raise APIError(
                body.get('error') or f"{path} failed with HTTP {resp.status_code}",
                resp.status_code)
        return body.get('data')

    def health(self) -> Dict[str, Any]:
        resp = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def generate_scenarios(
        self,
        query: str,
        context: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        payload = {
            'query': query,
            'context': context or infer_context(query),
            'options': options or {
                'scenarioCount': 3,
                'includeRiskAnalysis': True,
                'includeSimilarCases': True,
                'detailLevel': 'detailed',
            },
        }
        data = self._post('/api/scenarios', payload)
        if not isinstance(data, list):
            raise APIError('Invalid scenarios response format')
        logger.info(f"Received {len(data)} scenarios")
        return data

    def forecast(
        self,
        query: str,
        scenarios: List[Dict[str, Any]],
        time_horizon: int = 12
    ) -> Dict[str, Any]:
        payload = {
            'baseScenario': {
                'id': 'base_scenario',
                'title': 'Business Decision Analysis',
                'description': query,
            },
            'variations': build_variations(scenarios),
            'timeHorizon': time_horizon,
        }
        return self._post('/api/forecast', payload)

    def find_similar_cases(
        self,
        situation: str,
        industry: str,
        context: str = '',
        limit: int = 5
    ) -> List[Dict[str, Any]]:
        payload = {
            'situation': situation,
            'industry': industry,
            'context': context,
            'limit': limit,
        }
        return self._post('/api/vector-search', payload) or []


# ===================================================================
# PAYLOAD SHAPING
# ===================================================================
def build_variations(scenarios: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One forecast variation per scenario."""
    return [
        {
            'name': s.get('title', ''),
            'description': s.get('description', ''),
            'parameters': {
                'confidence': s.get('confidence'),
                'assumptions': s.get('keyAssumptions'),
                'outcome': s.get('expectedOutcome'),
            },
        }
        for s in scenarios
    ]


def merge_forecasts(
    scenarios: List[Dict[str, Any]],
    forecast_data: Optional[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Replace each scenario's timeline with its forecast, matched by position."""
    forecasts = (forecast_data or {}).get('forecasts') or []
    merged = []
    for index, scenario in enumerate(scenarios):
        forecast = forecasts[index] if index < len(forecasts) else {}
        merged.append({
            **scenario,
            'timeline': forecast.get('timeline') or [],
            'summary': forecast.get('summary') or {},
        })
    return merged


# ===================================================================
# INSIGHT TEXT
# ===================================================================
def is_meta_insight(text: str) -> bool:
    lowered = (text or '').lower()
    return (any(phrase in lowered for phrase in META_PHRASES)
            or len(text or '') <= MIN_INSIGHT_LENGTH)


def clean_insight(text: str) -> Tuple[str, str]:
    """
    Strip markdown, numbering and Insight:/Action: prefixes, then split
    'Title: content' into (title, content). Title is '' when absent.
    """
    cleaned = re.sub(r'\*\*(.*?)\*\*', r'\1', text or '')
    cleaned = re.sub(r'\*(.*?)\*', r'\1', cleaned)
    cleaned = re.sub(r'^\d+\.\s*', '', cleaned)
    cleaned = re.sub(r'^(Insight:|Action:)', '', cleaned, flags=re.IGNORECASE)
    cleaned = cleaned.strip()

    if ':' in cleaned:
        title, content = cleaned.split(':', 1)
        return title.strip(), content.strip()
    return '', cleaned


def display_insights(insights: List[str]) -> List[Dict[str, str]]:
    """Substantial insights as {'title', 'content'} dicts."""
    result = []
    for insight in insights or []:
        if is_meta_insight(insight):
            continue
        title, content = clean_insight(insight)
        result.append({'title': title, 'content': content})
    return result
