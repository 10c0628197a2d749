# quantum_sim/bigquery/client.py

"""
BigQuery AI Wrapper

Thin layer over google-cloud-bigquery that exposes the three
generative SQL functions we rely on:

  ML.GENERATE_TEXT       → free text (scenarios, insights, risks)
  AI.GENERATE_TABLE      → structured rows (timelines, projections)
  ML.GENERATE_EMBEDDING  → vectors for similar-case search

Every call goes through a remote model that is created on demand
in the configured dataset. Errors are converted to the
BigQueryAIError hierarchy so callers can decide how to fall back.
"""

import re
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from google.cloud import bigquery
from google.oauth2 import service_account

from quantum_sim.config import Settings, load_settings
from quantum_sim.bigquery.errors import (
    BigQueryAIError, RateLimitError, QuotaExceededError
)

logger = logging.getLogger(__name__)

# Columns AI.GENERATE_TABLE adds next to the generated ones
SYSTEM_COLUMNS = ('full_response', 'status')

_FENCE_RE = re.compile(r'```json\n?|\n?```')


def strip_code_fences(text: str) -> str:
    """Remove ```json fences that LLMs like to wrap JSON in."""
    return _FENCE_RE.sub('', text or '').strip()


def parse_json_rows(text: str) -> List[Any]:
    """
    Parse an LLM response as a JSON array.

    A single object is wrapped into a one-element list.
    Raises ValueError when there is nothing to parse.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ValueError('Cleaned response is empty')
    parsed = json.loads(cleaned)
    return parsed if isinstance(parsed, list) else [parsed]


def _scalar_parameter(name: str, value: Any) -> bigquery.ScalarQueryParameter:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        kind = 'BOOL'
    elif isinstance(value, int):
        kind = 'INT64'
    elif isinstance(value, float):
        kind = 'FLOAT64'
    else:
        kind, value = 'STRING', str(value)
    return bigquery.ScalarQueryParameter(name, kind, value)


class BigQueryAI:
    """Wrapper around the BigQuery generative AI functions."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[bigquery.Client] = None
    ):
        self.settings = settings or load_settings()
        self._client = client
        self._models: set = set()

    # ------------------------------------------------------------------
    # Client
    # ------------------------------------------------------------------
    @property
    def client(self) -> bigquery.Client:
        if self._client is None:
            credentials = None
            if self.settings.credentials_json:
                credentials = service_account.Credentials.from_service_account_info(
                    json.loads(self.settings.credentials_json))
            self._client = bigquery.Client(
                project=self.settings.project_id, credentials=credentials)
            logger.info(
                f"BigQuery client created | Project: {self.settings.project_id}")
        return self._client

    def _run(
        self,
        query: str,
        params: Optional[List[bigquery.ScalarQueryParameter]] = None
    ) -> List[Dict[str, Any]]:
        job_config = bigquery.QueryJobConfig(query_parameters=params or [])
        job = self.client.query(
            query, job_config=job_config, location=self.settings.location)
        return [dict(row) for row in job.result()]

    # ------------------------------------------------------------------
    # Generative functions
    # ------------------------------------------------------------------
    def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7
    ) -> str:
        """Generate text with ML.GENERATE_TEXT."""
        model_name = self.ensure_remote_model(model or self.settings.text_model)

        query = f"""
            SELECT *
            FROM ML.GENERATE_TEXT(
              MODEL `{model_name}`,
              (SELECT @prompt AS prompt),
              STRUCT(
                {int(max_tokens)} AS max_output_tokens,
                {float(temperature)} AS temperature,
                TRUE AS flatten_json_output
              )
            )
        """

        try:
            rows = self._run(
                query, [bigquery.ScalarQueryParameter('prompt', 'STRING', prompt)])
        except Exception as e:
            logger.error(f"❌ ML.GENERATE_TEXT error: {e}")
            raise self.handle_error(e)

        if not rows:
            return ''
        first = rows[0]
        # flatten_json_output=TRUE yields ml_generate_text_llm_result
        result = (first.get('ml_generate_text_llm_result')
                  or first.get('ml_generate_text_result')
                  or '')
        logger.info(f"ML.GENERATE_TEXT returned {len(result)} chars")
        return result

    def generate_table(
        self,
        prompt: str,
        schema: Mapping[str, str],
        model: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Generate structured rows with AI.GENERATE_TABLE.

        Args:
            prompt: Natural-language instruction
            schema: Column name → BigQuery type, e.g. {'revenue': 'FLOAT64'}

        Falls back to ML.GENERATE_TEXT + JSON parsing when the table
        function is unavailable.
        """
        model_name = self.ensure_remote_model(model or self.settings.text_model)
        schema_string = ', '.join(f'{k} {v}' for k, v in schema.items())
        logger.info(f"AI.GENERATE_TABLE schema: {schema_string}")

        query = f"""
            SELECT *
            FROM AI.GENERATE_TABLE(
              MODEL `{model_name}`,
              (SELECT @prompt AS prompt),
              STRUCT(
                "{schema_string}" AS output_schema,
                1000 AS max_output_tokens,
                0.7 AS temperature
              )
            )
        """

        try:
            rows = self._run(
                query, [bigquery.ScalarQueryParameter('prompt', 'STRING', prompt)])
        except Exception as e:
            logger.warning(f"AI.GENERATE_TABLE failed, trying text fallback: {e}")
            return self._generate_table_from_text(prompt, schema)

        filtered = [
            {k: v for k, v in row.items() if k not in SYSTEM_COLUMNS}
            for row in rows
        ]
        logger.info(f"✅ AI.GENERATE_TABLE returned {len(filtered)} rows")
        return filtered

    def _generate_table_from_text(
        self,
        prompt: str,
        schema: Mapping[str, str]
    ) -> List[Dict[str, Any]]:
        structured_prompt = (
            f"{prompt}\n\n"
            "Please respond with a JSON array containing objects with these "
            f"fields: {', '.join(schema.keys())}.\n"
            "Each object should represent one row.\n"
            "Return only valid JSON, no additional text."
        )
        text = self.generate_text(structured_prompt, max_tokens=2000)

        try:
            rows = parse_json_rows(text)
        except ValueError as e:
            raise BigQueryAIError(
                f'Failed to parse structured response: {e}',
                'TABLE_GENERATION_FAILED', e)

        return [r for r in rows if isinstance(r, dict)]

    def generate_embedding(self, text: str, model: Optional[str] = None) -> List[float]:
        """Embed text with ML.GENERATE_EMBEDDING."""
        model_name = self.ensure_remote_model(
            model or self.settings.embedding_model)

        query = f"""
            SELECT *
            FROM ML.GENERATE_EMBEDDING(
              MODEL `{model_name}`,
              (SELECT @text AS content),
              STRUCT('RETRIEVAL_DOCUMENT' AS task_type)
            )
        """

        try:
            rows = self._run(
                query, [bigquery.ScalarQueryParameter('text', 'STRING', text)])
        except Exception as e:
            raise self.handle_error(e)

        if not rows:
            return []
        return list(rows[0].get('ml_generate_embedding_result') or [])

    def execute_query(
        self,
        query: str,
        params: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Run raw SQL; params become typed named query parameters."""
        query_params = [
            _scalar_parameter(name, value)
            for name, value in (params or {}).items()
        ]
        try:
            return self._run(query, query_params)
        except Exception as e:
            raise self.handle_error(e)

    # ------------------------------------------------------------------
    # Remote model management
    # ------------------------------------------------------------------
    def model_name_for(self, vertex_model: str) -> str:
        safe = re.sub(r'[^a-zA-Z0-9_]', '_', vertex_model)
        return f'{self.settings.project_id}.{self.settings.dataset_id}.{safe}_model'

    def ensure_remote_model(self, vertex_model: str) -> str:
        """Create the remote model for a Vertex AI endpoint if needed."""
        if not self.settings.is_bigquery_configured:
            raise BigQueryAIError(
                'BigQuery AI is not properly configured. Set '
                'GOOGLE_CLOUD_PROJECT_ID and GOOGLE_APPLICATION_CREDENTIALS_JSON.',
                'CONFIGURATION_ERROR',
                'Missing BigQuery AI configuration')

        model_name = self.model_name_for(vertex_model)
        if model_name in self._models:
            return model_name

        self.ensure_dataset()

        ddl = f"""
            CREATE MODEL IF NOT EXISTS `{model_name}`
            REMOTE WITH CONNECTION `{self.settings.project_id}.{self.settings.connection_id}`
            OPTIONS (ENDPOINT = '{vertex_model}')
        """
        try:
            self.client.query(ddl).result()
        except Exception as e:
            if (getattr(e, 'code', None) == 403
                    and 'bigquery.connections.use' in str(e)):
                raise BigQueryAIError(
                    'BigQuery connection permission denied. Grant the '
                    'connection service account access to Vertex AI.',
                    'PERMISSION_DENIED', e)
            # The model may already exist or we may lack DDL rights
            logger.warning(
                f"Remote model creation failed, using {model_name} directly: {e}")
            return model_name

        self._models.add(model_name)
        logger.info(f"Remote model ready: {model_name}")
        return model_name

    def ensure_dataset(self) -> None:
        dataset = bigquery.Dataset(
            f'{self.settings.project_id}.{self.settings.dataset_id}')
        dataset.location = self.settings.location
        try:
            self.client.create_dataset(dataset, exists_ok=True)
        except Exception as e:
            logger.warning(f"Failed to create dataset, it may already exist: {e}")

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------
    @staticmethod
    def handle_error(error: Exception) -> BigQueryAIError:
        """Convert any exception into the BigQueryAIError hierarchy."""
        if isinstance(error, BigQueryAIError):
            return error

        code = getattr(error, 'code', None)
        message = str(error) or 'Unknown BigQuery error'

        if code == 429:
            return RateLimitError()
        if code == 403 and 'quota' in message.lower():
            return QuotaExceededError('BigQuery AI')

        return BigQueryAIError(
            message,
            str(code) if code is not None else 'UNKNOWN_ERROR',
            error)


_bigquery_ai: Optional[BigQueryAI] = None


def get_bigquery_ai(settings: Optional[Settings] = None) -> BigQueryAI:
    """Process-wide BigQueryAI instance."""
    global _bigquery_ai
    if _bigquery_ai is None:
        _bigquery_ai = BigQueryAI(settings)
    return _bigquery_ai


def check_connection(ai: BigQueryAI) -> bool:
    """Run a trivial query to confirm BigQuery is reachable."""
    try:
        ai.execute_query("SELECT 'BigQuery AI is ready!' AS status")
        return True
    except BigQueryAIError as e:
        logger.error(f"BigQuery connection test failed: {e}")
        return False


def get_dataset_info(ai: BigQueryAI, dataset_id: str) -> Dict[str, Any]:
    """Return dataset metadata as a plain dict."""
    try:
        dataset = ai.client.get_dataset(dataset_id)
    except Exception as e:
        raise BigQueryAIError(
            f'Failed to get dataset info: {e}', 'DATASET_ERROR', e)
    return {
        'dataset_id': dataset.dataset_id,
        'project': dataset.project,
        'location': dataset.location,
        'created': dataset.created.isoformat() if dataset.created else None,
        'description': dataset.description,
    }
