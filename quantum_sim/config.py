# quantum_sim/config.py

"""
Runtime configuration.

Values come from environment variables (optionally via a .env file
at the project root). Only the project id and the service-account
JSON are required; everything else has a sensible default.
"""

import os
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

REQUIRED_VARIABLES = (
    'GOOGLE_CLOUD_PROJECT_ID',
    'GOOGLE_APPLICATION_CREDENTIALS_JSON',
)


@dataclass
class Settings:
    """Everything the API, engine and dashboard need to know."""

    project_id: Optional[str] = None
    credentials_json: Optional[str] = None
    dataset_id: str = 'quantum_ai'
    connection_id: str = 'us.quantum_connection'
    location: str = 'US'
    text_model: str = 'gemini-2.0-flash'
    embedding_model: str = 'text-embedding-004'
    stream_stage_delay: float = 1.0
    api_base_url: str = 'http://localhost:8000'

    @property
    def is_bigquery_configured(self) -> bool:
        return bool(self.project_id and self.credentials_json)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment, loading .env first."""
    load_dotenv(env_file or os.path.join(PROJECT_ROOT, '.env'))

    env = os.environ
    return Settings(
        project_id=env.get('GOOGLE_CLOUD_PROJECT_ID') or None,
        credentials_json=env.get('GOOGLE_APPLICATION_CREDENTIALS_JSON') or None,
        dataset_id=env.get('BIGQUERY_AI_DATASET', 'quantum_ai'),
        connection_id=env.get('BIGQUERY_AI_CONNECTION', 'us.quantum_connection'),
        location=env.get('BIGQUERY_LOCATION', 'US'),
        text_model=env.get('BIGQUERY_AI_TEXT_MODEL', 'gemini-2.0-flash'),
        embedding_model=env.get(
            'BIGQUERY_AI_EMBEDDING_MODEL', 'text-embedding-004'),
        stream_stage_delay=float(env.get('STREAM_STAGE_DELAY', '1.0')),
        api_base_url=env.get('QUANTUM_API_URL', 'http://localhost:8000'),
    )


def validate_environment(settings: Settings) -> Tuple[bool, List[str]]:
    """
    Check that BigQuery AI can be reached with these settings.

    Returns:
        (is_valid, errors) where errors lists each missing variable
    """
    errors = []
    if not settings.project_id:
        errors.append(
            'GOOGLE_CLOUD_PROJECT_ID environment variable is required')
    if not settings.credentials_json:
        errors.append(
            'GOOGLE_APPLICATION_CREDENTIALS_JSON environment variable is required')

    if errors:
        logger.warning(f"Environment validation failed: {errors}")
    return len(errors) == 0, errors
