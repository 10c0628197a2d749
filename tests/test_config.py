import pytest

from quantum_sim.config import Settings, load_settings, validate_environment

ENV_VARS = (
    'GOOGLE_CLOUD_PROJECT_ID', 'GOOGLE_APPLICATION_CREDENTIALS_JSON',
    'BIGQUERY_AI_DATASET', 'BIGQUERY_AI_CONNECTION', 'BIGQUERY_LOCATION',
    'BIGQUERY_AI_TEXT_MODEL', 'BIGQUERY_AI_EMBEDDING_MODEL',
    'STREAM_STAGE_DELAY', 'QUANTUM_API_URL',
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return str(tmp_path / 'missing.env')


def test_defaults(clean_env):
    settings = load_settings(clean_env)
    assert settings.project_id is None
    assert settings.dataset_id == 'quantum_ai'
    assert settings.location == 'US'
    assert settings.text_model == 'gemini-2.0-flash'
    assert settings.stream_stage_delay == 1.0
    assert not settings.is_bigquery_configured


def test_values_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv('GOOGLE_CLOUD_PROJECT_ID', 'my-project')
    monkeypatch.setenv('GOOGLE_APPLICATION_CREDENTIALS_JSON', '{"type": "service_account"}')
    monkeypatch.setenv('BIGQUERY_AI_DATASET', 'sim')
    monkeypatch.setenv('STREAM_STAGE_DELAY', '0.25')

    settings = load_settings(clean_env)
    assert settings.project_id == 'my-project'
    assert settings.dataset_id == 'sim'
    assert settings.stream_stage_delay == 0.25
    assert settings.is_bigquery_configured


def test_dotenv_file_is_read(clean_env, monkeypatch, tmp_path):
    env_file = tmp_path / '.env'
    env_file.write_text('GOOGLE_CLOUD_PROJECT_ID=from-dotenv\n')
    try:
        assert load_settings(str(env_file)).project_id == 'from-dotenv'
    finally:
        monkeypatch.delenv('GOOGLE_CLOUD_PROJECT_ID', raising=False)


def test_empty_values_count_as_missing(clean_env, monkeypatch):
    monkeypatch.setenv('GOOGLE_CLOUD_PROJECT_ID', '')
    assert load_settings(clean_env).project_id is None


def test_validate_environment():
    ok, errors = validate_environment(Settings(project_id='p', credentials_json='{}'))
    assert ok and errors == []

    ok, errors = validate_environment(Settings())
    assert not ok
    assert errors == [
        'GOOGLE_CLOUD_PROJECT_ID environment variable is required',
        'GOOGLE_APPLICATION_CREDENTIALS_JSON environment variable is required',
    ]

    ok, errors = validate_environment(Settings(project_id='p'))
    assert errors == [
        'GOOGLE_APPLICATION_CREDENTIALS_JSON environment variable is required']
