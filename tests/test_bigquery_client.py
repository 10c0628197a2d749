from datetime import datetime
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc

from quantum_sim.bigquery import client as client_module
from quantum_sim.bigquery.client import (
    BigQueryAI, check_connection, get_bigquery_ai, get_dataset_info,
    parse_json_rows, strip_code_fences
)
from quantum_sim.bigquery.errors import (
    BigQueryAIError, QuotaExceededError, RateLimitError
)
from quantum_sim.config import Settings


def fake_client(respond):
    """
    MagicMock BigQuery client whose query() hands each SQL string to
    respond(sql, job_config) and wraps the result in a finished job.
    """
    client = MagicMock()
    client.queries = []

    def query(sql, job_config=None, location=None):
        client.queries.append((sql, job_config))
        job = MagicMock()
        outcome = respond(sql, job_config)
        if isinstance(outcome, Exception):
            job.result.side_effect = outcome
        else:
            job.result.return_value = outcome
        return job

    client.query.side_effect = query
    return client


def _text_rows(text):
    return lambda sql, config: (
        [] if 'CREATE MODEL' in sql
        else [{'ml_generate_text_llm_result': text, 'status': ''}])


def _ddl_count(client):
    return sum('CREATE MODEL' in sql for sql, _ in client.queries)


# ===================================================================
# PARSING
# ===================================================================
def test_strip_code_fences():
    assert strip_code_fences('```json\n[1, 2]\n```') == '[1, 2]'
    assert strip_code_fences('  [1]  ') == '[1]'
    assert strip_code_fences(None) == ''


def test_parse_json_rows():
    assert parse_json_rows('```json\n[{"a": 1}]\n```') == [{'a': 1}]
    assert parse_json_rows('{"a": 1}') == [{'a': 1}]
    with pytest.raises(ValueError):
        parse_json_rows('```json\n```')
    with pytest.raises(ValueError):
        parse_json_rows('not json at all')


# ===================================================================
# GENERATE TEXT
# ===================================================================
def test_generate_text_sends_prompt_as_parameter(settings):
    client = fake_client(_text_rows('hello'))
    ai = BigQueryAI(settings, client=client)

    assert ai.generate_text("Robert'); DROP TABLE x;--", max_tokens=321) == 'hello'

    sql, config = client.queries[-1]
    assert 'ML.GENERATE_TEXT' in sql
    assert 'DROP TABLE' not in sql
    assert '321 AS max_output_tokens' in sql
    param = config.query_parameters[0]
    assert param.name == 'prompt'
    assert param.value == "Robert'); DROP TABLE x;--"


def test_generate_text_result_columns(settings):
    ai = BigQueryAI(settings, client=fake_client(
        lambda sql, config: [{'ml_generate_text_llm_result': None,
                              'ml_generate_text_result': 'raw'}]))
    assert ai.generate_text('x') == 'raw'

    ai = BigQueryAI(settings, client=fake_client(lambda sql, config: []))
    assert ai.generate_text('x') == ''


def test_generate_text_maps_rate_limit(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return []
        return gexc.TooManyRequests('slow down')

    ai = BigQueryAI(settings, client=fake_client(respond))
    with pytest.raises(RateLimitError):
        ai.generate_text('x')


# ===================================================================
# REMOTE MODELS
# ===================================================================
def test_remote_model_is_created_once(settings):
    client = fake_client(_text_rows('ok'))
    ai = BigQueryAI(settings, client=client)
    ai.generate_text('a')
    ai.generate_text('b')

    assert _ddl_count(client) == 1
    ddl = next(sql for sql, _ in client.queries if 'CREATE MODEL' in sql)
    assert '`test-project.quantum_ai.gemini_2_0_flash_model`' in ddl
    assert "ENDPOINT = 'gemini-2.0-flash'" in ddl
    assert '`test-project.us.quantum_connection`' in ddl
    client.create_dataset.assert_called_once()


def test_unconfigured_client_raises_configuration_error():
    client = fake_client(_text_rows('ok'))
    ai = BigQueryAI(Settings(), client=client)
    with pytest.raises(BigQueryAIError) as exc:
        ai.generate_text('x')
    assert exc.value.code == 'CONFIGURATION_ERROR'
    assert client.queries == []


def test_connection_permission_denied(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return gexc.Forbidden('Access Denied: bigquery.connections.use')
        return [{'ml_generate_text_llm_result': 'ok'}]

    ai = BigQueryAI(settings, client=fake_client(respond))
    with pytest.raises(BigQueryAIError) as exc:
        ai.generate_text('x')
    assert exc.value.code == 'PERMISSION_DENIED'


def test_other_ddl_failures_are_tolerated_but_not_cached(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return gexc.Forbidden('Permission bigquery.models.create denied')
        return [{'ml_generate_text_llm_result': 'ok'}]

    client = fake_client(respond)
    ai = BigQueryAI(settings, client=client)
    assert ai.generate_text('a') == 'ok'
    assert ai.generate_text('b') == 'ok'
    assert _ddl_count(client) == 2


def test_model_name_for_sanitizes_endpoint(settings):
    ai = BigQueryAI(settings, client=MagicMock())
    assert ai.model_name_for('text-embedding-004') == \
        'test-project.quantum_ai.text_embedding_004_model'


# ===================================================================
# GENERATE TABLE
# ===================================================================
SCHEMA = {'month': 'STRING', 'revenue': 'FLOAT64'}


def test_generate_table_drops_system_columns(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return []
        return [{'month': '2024-01', 'revenue': 1.0,
                 'full_response': '{}', 'status': ''}]

    client = fake_client(respond)
    rows = BigQueryAI(settings, client=client).generate_table('x', SCHEMA)

    assert rows == [{'month': '2024-01', 'revenue': 1.0}]
    sql = client.queries[-1][0]
    assert 'AI.GENERATE_TABLE' in sql
    assert '"month STRING, revenue FLOAT64" AS output_schema' in sql


def test_generate_table_falls_back_to_text(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return []
        if 'AI.GENERATE_TABLE' in sql:
            return gexc.BadRequest('Function not found: AI.GENERATE_TABLE')
        return [{'ml_generate_text_llm_result':
                 '```json\n[{"month": "2024-01", "revenue": 5.0}, 7]\n```'}]

    client = fake_client(respond)
    rows = BigQueryAI(settings, client=client).generate_table('x', SCHEMA)

    assert rows == [{'month': '2024-01', 'revenue': 5.0}]
    prompt = client.queries[-1][1].query_parameters[0].value
    assert 'fields: month, revenue' in prompt


def test_generate_table_unparseable_text(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return []
        if 'AI.GENERATE_TABLE' in sql:
            return gexc.BadRequest('nope')
        return [{'ml_generate_text_llm_result': 'I cannot produce a table'}]

    with pytest.raises(BigQueryAIError) as exc:
        BigQueryAI(settings, client=fake_client(respond)).generate_table('x', SCHEMA)
    assert exc.value.code == 'TABLE_GENERATION_FAILED'


# ===================================================================
# EMBEDDINGS AND RAW QUERIES
# ===================================================================
def test_generate_embedding(settings):
    def respond(sql, config):
        if 'CREATE MODEL' in sql:
            return []
        return [{'ml_generate_embedding_result': [0.1, 0.2, 0.3]}]

    client = fake_client(respond)
    vector = BigQueryAI(settings, client=client).generate_embedding('hello')
    assert vector == [0.1, 0.2, 0.3]
    assert 'text_embedding_004_model' in client.queries[-1][0]


def test_execute_query_parameter_types(settings):
    client = fake_client(lambda sql, config: [{'n': 1}])
    ai = BigQueryAI(settings, client=client)
    rows = ai.execute_query('SELECT 1', {
        'flag': True, 'count': 3, 'ratio': 0.5, 'name': 'abc', 'codes': ['52']})

    assert rows == [{'n': 1}]
    params = {p.name: p for p in client.queries[-1][1].query_parameters}
    assert params['flag'].type_ == 'BOOL'
    assert params['count'].type_ == 'INT64'
    assert params['ratio'].type_ == 'FLOAT64'
    assert params['name'].type_ == 'STRING'
    assert params['codes'].value == "['52']"


def test_execute_query_wraps_errors(settings):
    ai = BigQueryAI(settings, client=fake_client(
        lambda sql, config: gexc.Forbidden('Quota exceeded for project')))
    with pytest.raises(QuotaExceededError):
        ai.execute_query('SELECT 1')


# ===================================================================
# ERROR MAPPING
# ===================================================================
def test_handle_error_mapping():
    existing = BigQueryAIError('mine', 'X')
    assert BigQueryAI.handle_error(existing) is existing

    assert BigQueryAI.handle_error(gexc.TooManyRequests('x')).code == 'RATE_LIMIT_EXCEEDED'
    assert BigQueryAI.handle_error(gexc.Forbidden('quota hit')).code == 'QUOTA_EXCEEDED'

    forbidden = BigQueryAI.handle_error(gexc.Forbidden('no access'))
    assert forbidden.code == '403'
    assert 'no access' in forbidden.message

    unknown = BigQueryAI.handle_error(ValueError('boom'))
    assert unknown.code == 'UNKNOWN_ERROR'
    assert unknown.message == 'boom'
    assert BigQueryAI.handle_error(ValueError()).message == 'Unknown BigQuery error'


# ===================================================================
# HELPERS
# ===================================================================
def test_check_connection(settings):
    ok = BigQueryAI(settings, client=fake_client(lambda sql, config: [{'status': 'ready'}]))
    assert check_connection(ok) is True

    down = BigQueryAI(settings, client=fake_client(
        lambda sql, config: gexc.ServiceUnavailable('down')))
    assert check_connection(down) is False


def test_get_dataset_info(settings):
    client = MagicMock()
    dataset = client.get_dataset.return_value
    dataset.dataset_id = 'quantum_ai'
    dataset.project = 'test-project'
    dataset.location = 'US'
    dataset.created = datetime(2024, 1, 2, 3, 4, 5)
    dataset.description = None

    info = get_dataset_info(BigQueryAI(settings, client=client), 'test-project.quantum_ai')
    assert info == {
        'dataset_id': 'quantum_ai',
        'project': 'test-project',
        'location': 'US',
        'created': '2024-01-02T03:04:05',
        'description': None,
    }
    client.get_dataset.assert_called_once_with('test-project.quantum_ai')


def test_get_dataset_info_error(settings):
    client = MagicMock()
    client.get_dataset.side_effect = gexc.NotFound('missing')
    with pytest.raises(BigQueryAIError) as exc:
        get_dataset_info(BigQueryAI(settings, client=client), 'p.d')
    assert exc.value.code == 'DATASET_ERROR'


def test_get_bigquery_ai_is_shared(settings, monkeypatch):
    monkeypatch.setattr(client_module, '_bigquery_ai', None)
    first = get_bigquery_ai(settings)
    assert get_bigquery_ai() is first
    assert first.settings is settings
