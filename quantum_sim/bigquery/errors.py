# quantum_sim/bigquery/errors.py

"""Error types raised by the BigQuery AI layer."""

from typing import Any, Optional


class BigQueryAIError(Exception):
    """Any failure talking to BigQuery AI, tagged with a short code."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class RateLimitError(BigQueryAIError):
    def __init__(self, retry_after: Optional[float] = None):
        super().__init__(
            'Rate limit exceeded', 'RATE_LIMIT_EXCEEDED',
            {'retry_after': retry_after})


class QuotaExceededError(BigQueryAIError):
    def __init__(self, quota_type: str):
        super().__init__(
            f'Quota exceeded: {quota_type}', 'QUOTA_EXCEEDED',
            {'quota_type': quota_type})
