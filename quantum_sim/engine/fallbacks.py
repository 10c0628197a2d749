# quantum_sim/engine/fallbacks.py

"""
Canned content served when BigQuery AI is unavailable.

Everything here is returned as fresh copies so callers can mutate
the results without touching the module-level data.
"""

import copy
from typing import Any, Dict, List

FALLBACK_SCENARIOS: List[Dict[str, Any]] = [
    {
        'id': 'scenario_1',
        'title': 'Aggressive Growth Strategy',
        'description': 'High-risk, high-reward approach with rapid scaling and market capture.',
        'confidence': 85,
        'profile': 'aggressive',
        'key_insights': [
            'First-mover advantage in target market',
            'Higher customer acquisition costs initially',
            'Potential for 3x faster growth rate',
        ],
    },
    {
        'id': 'scenario_2',
        'title': 'Balanced Approach',
        'description': 'Moderate growth strategy balancing risk and opportunity for sustainable expansion.',
        'confidence': 92,
        'profile': 'steady',
        'key_insights': [
            'Sustainable growth with manageable risk',
            'Better resource allocation efficiency',
            'Steady market penetration over time',
        ],
    },
    {
        'id': 'scenario_3',
        'title': 'Conservative Strategy',
        'description': 'Low-risk approach focusing on stability and gradual market entry.',
        'confidence': 78,
        'profile': 'slow',
        'key_insights': [
            'Minimized financial exposure and risk',
            'Thorough market validation before scaling',
            'Slower but more predictable growth',
        ],
    },
]

MOCK_FINANCIAL_PROJECTIONS: List[Dict[str, Any]] = [
    {
        'metric': 'Annual Revenue',
        'current_value': 1000000,
        'projected_value': 1250000,
        'variance': 0.25,
        'confidence': 85,
        'timeframe': '12 months',
    },
    {
        'metric': 'Customer Acquisition Cost',
        'current_value': 150,
        'projected_value': 120,
        'variance': -0.20,
        'confidence': 78,
        'timeframe': '6 months',
    },
]

MOCK_RISK_ASSESSMENT: Dict[str, Any] = {
    'overall': 45,
    'factors': [
        {
            'name': 'Market Competition',
            'impact': 60,
            'probability': 40,
            'description': 'Increased competitive pressure',
        }
    ],
    'mitigation': ['Monitor competitors', 'Diversify offerings'],
}

DEFAULT_MITIGATION: List[str] = [
    'Diversify revenue streams',
    'Monitor competitive landscape',
    'Maintain flexible cost structure',
]

FALLBACK_INSIGHTS: List[str] = [
    'Market timing is critical for success',
    'Customer acquisition costs may vary significantly',
    'Competitive response should be anticipated',
    'Operational scalability needs consideration',
]

# Returned by the scenario pipeline when the public-data lookup fails
CURATED_SIMILAR_CASES: List[Dict[str, Any]] = [
    {
        'id': 'case_netflix_spotify',
        'company': 'Netflix Inc.',
        'industry': 'Entertainment/Media',
        'scenario': 'Strategic acquisition timing decision in streaming market',
        'outcome': 'Successful acquisition led to 40% increase in subscriber engagement',
        'similarity': 0.89,
        'year': 2019,
    },
    {
        'id': 'case_zoom_pandemic',
        'company': 'Zoom Technologies',
        'industry': 'Software/Communications',
        'scenario': 'Product scaling decision during unexpected market surge',
        'outcome': 'Rapid scaling captured 300% market growth but created operational challenges',
        'similarity': 0.78,
        'year': 2020,
    },
]

# The catalogue behind /api/vector-search
HISTORICAL_CASES: List[Dict[str, Any]] = [
    {
        'id': 'case_netflix_spotify',
        'company': 'Netflix Inc.',
        'industry': 'Entertainment/Media',
        'scenario': 'Strategic acquisition timing decision in streaming market',
        'outcome': ('Successful acquisition led to 40% increase in subscriber '
                    'engagement and 25% revenue growth within 18 months'),
        'similarity': 0.89,
        'year': 2019,
    },
    {
        'id': 'case_apple_automotive',
        'company': 'Apple Inc.',
        'industry': 'Technology/Automotive',
        'scenario': 'Market entry timing for new product category during industry disruption',
        'outcome': ('Delayed entry allowed for better technology integration '
                    'but missed early market opportunity'),
        'similarity': 0.84,
        'year': 2018,
    },
    {
        'id': 'case_zoom_pandemic',
        'company': 'Zoom Technologies',
        'industry': 'Software/Communications',
        'scenario': 'Product scaling decision during unexpected market surge',
        'outcome': 'Rapid scaling captured 300% market growth but created operational challenges',
        'similarity': 0.78,
        'year': 2020,
    },
    {
        'id': 'case_tesla_gigafactory',
        'company': 'Tesla Inc.',
        'industry': 'Automotive/Manufacturing',
        'scenario': 'Manufacturing expansion timing in emerging market',
        'outcome': 'Early expansion secured supply chain advantages and 35% cost reduction',
        'similarity': 0.72,
        'year': 2017,
    },
    {
        'id': 'case_shopify_covid',
        'company': 'Shopify Inc.',
        'industry': 'E-commerce/Technology',
        'scenario': 'Platform expansion during economic uncertainty',
        'outcome': 'Strategic timing captured small business migration, 200% user growth',
        'similarity': 0.69,
        'year': 2020,
    },
]


def mock_financial_projections() -> List[Dict[str, Any]]:
    return copy.deepcopy(MOCK_FINANCIAL_PROJECTIONS)


def mock_risk_assessment() -> Dict[str, Any]:
    return copy.deepcopy(MOCK_RISK_ASSESSMENT)


def fallback_insights() -> List[str]:
    return list(FALLBACK_INSIGHTS)


def curated_similar_cases() -> List[Dict[str, Any]]:
    return copy.deepcopy(CURATED_SIMILAR_CASES)
