from pathlib import Path

import pytest

from backend.src.services import config as config_module

CONFIG_ENV_VARS = (
    "NOTES_DB_PATH",
    "SEARCH_INDEX_PATH",
    "LLM_API_BASE",
    "LLM_API_KEY",
    "OPENAI_API_KEY",
    "LLM_MODEL",
    "LLM_TIMEOUT_SECONDS",
    "SEARCH_RESULT_LIMIT",
    "PROMPTS_DIR",
    "CORS_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path):
    """
    Clear config env vars, point the databases at tmp_path and reset the cache.
    """
    for key in CONFIG_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("NOTES_DB_PATH", str(tmp_path / "data" / "notes.db"))
    monkeypatch.setenv("SEARCH_INDEX_PATH", str(tmp_path / "index" / "search.db"))
    config_module.get_config.cache_clear()
    yield
    config_module.get_config.cache_clear()


def test_get_config_defaults(tmp_path: Path) -> None:
    cfg = config_module.reload_config()

    assert cfg.notes_db_path == (tmp_path / "data" / "notes.db").resolve()
    assert cfg.search_index_path == (tmp_path / "index" / "search.db").resolve()
    assert cfg.llm_api_base == "https://api.openai.com/v1"
    assert cfg.llm_api_key is None
    assert cfg.llm_model == "gpt-4"
    assert cfg.search_result_limit == 10
    assert cfg.prompts_dir is None
    assert cfg.log_level == "INFO"


def test_get_config_creates_data_directories(tmp_path: Path) -> None:
    config_module.reload_config()

    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "index").is_dir()


def test_get_config_is_cached() -> None:
    assert config_module.get_config() is config_module.get_config()


def test_openai_api_key_is_a_fallback(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-fallback")
    assert config_module.reload_config().llm_api_key == "sk-fallback"

    monkeypatch.setenv("LLM_API_KEY", "sk-primary")
    assert config_module.reload_config().llm_api_key == "sk-primary"


def test_blank_api_key_is_none(monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "   ")

    assert config_module.reload_config().llm_api_key is None


def test_api_base_trailing_slash_is_stripped(monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_BASE", "http://localhost:11434/v1/")

    assert config_module.reload_config().llm_api_base == "http://localhost:11434/v1"


def test_api_base_must_be_http(monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_BASE", "ftp://example.com")

    with pytest.raises(ValueError):
        config_module.reload_config()


def test_cors_origins_are_split(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,,")

    assert config_module.reload_config().cors_origins == ("https://a.example", "https://b.example")


@pytest.mark.parametrize("limit", ["0", "101"])
def test_search_result_limit_is_bounded(monkeypatch, limit: str) -> None:
    monkeypatch.setenv("SEARCH_RESULT_LIMIT", limit)

    with pytest.raises(ValueError):
        config_module.reload_config()


def test_log_level_is_validated(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert config_module.reload_config().log_level == "DEBUG"

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        config_module.reload_config()
