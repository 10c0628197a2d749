import json

import numpy as np
import pytest
from fastapi.testclient import TestClient

from quantum_sim.config import Settings
from quantum_sim.bigquery.errors import BigQueryAIError


def _respond(value, *args):
    if isinstance(value, Exception):
        raise value
    return value(*args) if callable(value) else value


class FakeBigQueryAI:
    """
    In-memory stand-in for BigQueryAI.

    Each response may be a value, a callable taking the call's
    arguments, or an exception instance to raise. Every call is
    recorded in self.calls as (method, *args).
    """

    def __init__(self, text='', table=None, embedding=None, rows=None):
        self.text = text
        self.table = table if table is not None else []
        self.embedding = embedding if embedding is not None else [0.1, 0.2, 0.3]
        self.rows = rows if rows is not None else []
        self.calls = []

    def generate_text(self, prompt, model=None, max_tokens=1000, temperature=0.7):
        self.calls.append(('generate_text', prompt, max_tokens))
        return _respond(self.text, prompt)

    def generate_table(self, prompt, schema, model=None):
        self.calls.append(('generate_table', prompt, dict(schema)))
        return _respond(self.table, prompt, schema)

    def generate_embedding(self, text, model=None):
        self.calls.append(('generate_embedding', text))
        return _respond(self.embedding, text)

    def execute_query(self, query, params=None):
        self.calls.append(('execute_query', query, params))
        return _respond(self.rows, query, params)

    def called(self, method):
        return [c for c in self.calls if c[0] == method]


OUTLINES = [
    {
        'scenario_id': 'scenario_1',
        'title': 'Holiday Launch Surge',
        'description': 'Q4 launch rides holiday demand.',
        'confidence': 0.85,
        'key_assumptions': 'Holiday traffic doubles',
        'expected_outcome': 'Fast early revenue',
    },
    {
        'scenario_id': 'scenario_2',
        'title': 'Steady Q1 Rollout',
        'description': 'Launch after the holidays.',
        'confidence': 0.72,
        'key_assumptions': 'Lower ad costs',
        'expected_outcome': 'Sustainable growth',
    },
    {
        'scenario_id': 'scenario_3',
        'title': 'Limited Pilot',
        'description': 'Small pilot before wide release.',
        'confidence': 0.64,
        'key_assumptions': 'Pilot feedback is positive',
        'expected_outcome': 'Lower risk',
    },
]

RISK_TEXT = """Key risks include competition and economic slowdown.

**Mitigation strategies:**
- Lock in supplier contracts early
- **Stagger** marketing spend
1. Keep a cash reserve
"""

INSIGHTS_TEXT = """- Holiday timing amplifies launch visibility
* Customer acquisition costs peak in November

• Inventory must be secured by September
- Returns spike in January
- Email lists should be built in Q3
- Extra sixth insight that gets dropped
"""

TIMELINE_ROWS = [
    {'month': '2024-01', 'revenue': 10000.0, 'probability': 0.8,
     'market_share': 0.01, 'customer_count': 100,
     'operating_costs': 7000.0, 'key_events': 'Launch, PR push'},
    {'month': '2024-02', 'revenue': 12000.0, 'probability': None,
     'market_share': None, 'customer_count': None,
     'operating_costs': None, 'key_events': None},
]

PROJECTION_ROWS = [
    {'metric': 'Annual Revenue', 'current_value': 500000.0,
     'projected_value': 750000.0, 'variance': 0.5,
     'confidence': 0.8, 'timeframe': None},
]


def scripted_text(outlines=OUTLINES):
    """Text responder keyed on what each prompt asks for."""
    def respond(prompt):
        if 'Analyze the risks' in prompt:
            return RISK_TEXT
        if 'key business insights' in prompt:
            return INSIGHTS_TEXT
        return '```json\n' + json.dumps(outlines) + '\n```'
    return respond


def scripted_table(prompt, schema):
    if 'month' in schema:
        return [dict(r) for r in TIMELINE_ROWS]
    if 'metric' in schema:
        return [dict(r) for r in PROJECTION_ROWS]
    return [{'revenue_estimate': 100000.0, 'market_share_estimate': 0.03,
             'customer_estimate': 600, 'confidence_level': 0.8}]


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def settings():
    return Settings(
        project_id='test-project',
        credentials_json='{}',
        stream_stage_delay=0,
    )


@pytest.fixture
def scripted_ai():
    return FakeBigQueryAI(text=scripted_text(), table=scripted_table)


@pytest.fixture
def failing_ai():
    error = BigQueryAIError('BigQuery AI is down', 'UNAVAILABLE')
    return FakeBigQueryAI(text=error, table=error, embedding=error, rows=error)


@pytest.fixture
def make_client(settings):
    """Build a TestClient whose app state uses the given fake."""
    from quantum_sim.api.main import app, state

    def _make(ai, app_settings=None):
        state.load_all(settings=app_settings or settings, ai=ai)
        return TestClient(app)

    return _make
