import pytest

from config.config import Config, SearchProvider


@pytest.mark.unit
def test_from_env_reads_values(mock_env, tmp_path):
    config = Config.from_env(tmp_path / "missing.env")

    assert config.llm_api_key == "test-openrouter-key"
    assert config.default_model == "test/model"
    assert config.search_provider == SearchProvider.TAVILY.value
    assert config.search_api_key == "test-tavily-key"
    assert config.search_max_results == 3
    assert config.context_budget_chars == 1500
    assert config.reuse_stored_sources is False
    assert config.llm_base_url == "https://openrouter.ai/api/v1"
    assert config.validate() == []


@pytest.mark.unit
def test_from_env_loads_dotenv_file(mock_env, monkeypatch, tmp_path):
    monkeypatch.delenv("DEFAULT_MODEL")
    env_file = tmp_path / ".env"
    env_file.write_text("DEFAULT_MODEL=from/dotenv\n")

    config = Config.from_env(env_file)

    assert config.default_model == "from/dotenv"


@pytest.mark.unit
@pytest.mark.parametrize("raw, expected", [("yes", True), ("1", True), ("off", False), ("", False)])
def test_reuse_stored_sources_flag(mock_env, monkeypatch, tmp_path, raw, expected):
    monkeypatch.setenv("REUSE_STORED_SOURCES", raw)
    assert Config.from_env(tmp_path / "missing.env").reuse_stored_sources is expected


@pytest.mark.unit
def test_brave_provider_uses_brave_key(mock_env, monkeypatch, tmp_path):
    monkeypatch.setenv("SEARCH_PROVIDER", " Brave ")
    monkeypatch.setenv("BRAVE_API_KEY", "brave-key")

    config = Config.from_env(tmp_path / "missing.env")

    assert config.search_provider == "brave"
    assert config.search_api_key == "brave-key"


@pytest.mark.unit
def test_config_is_immutable():
    config = Config()
    with pytest.raises(AttributeError):
        config.default_model = "other"


@pytest.mark.unit
def test_validate_reports_problems():
    config = Config(
        llm_api_key=None,
        search_provider="bing",
        context_budget_chars=0,
        search_max_results=0,
    )
    problems = config.validate()

    assert any("OPENROUTER_API_KEY" in p for p in problems)
    assert any("SEARCH_PROVIDER" in p for p in problems)
    assert any("CONTEXT_BUDGET_CHARS" in p for p in problems)
    assert any("SEARCH_MAX_RESULTS" in p for p in problems)


@pytest.mark.unit
def test_validate_warns_on_missing_search_key():
    problems = Config(llm_api_key="k", tavily_api_key=None).validate()
    assert len(problems) == 1
    assert "tavily" in problems[0]
