# quantum_sim/bigquery/__init__.py

"""BigQuery AI access layer."""

from quantum_sim.bigquery.errors import (
    BigQueryAIError, RateLimitError, QuotaExceededError
)
from quantum_sim.bigquery.client import BigQueryAI, get_bigquery_ai

__all__ = [
    'BigQueryAI',
    'BigQueryAIError',
    'QuotaExceededError',
    'RateLimitError',
    'get_bigquery_ai',
]
