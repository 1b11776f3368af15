"""Tests for configuration loading."""

from pathlib import Path

from vibeproxy.config import Config
from vibeproxy.constants import DEFAULT_MODEL, DEFAULT_PORT

ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "AI_PROVIDER",
    "PORT",
    "VIBEPROXY_MAX_TOKENS",
    "VIBEPROXY_RUNS_DIR",
    "VIBEPROXY_DEFAULT_MODEL",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
)


def clear_env(monkeypatch):
    # setenv first so monkeypatch also undoes whatever load_dotenv writes
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_load_defaults(monkeypatch, tmp_path):
    """Test defaults when nothing is configured."""
    clear_env(monkeypatch)

    config = Config.load(tmp_path / "missing.env")

    assert config.port == DEFAULT_PORT
    assert config.default_model == DEFAULT_MODEL
    assert config.runs_dir is None
    assert not config.has_database
    assert "No API key found. Set ANTHROPIC_API_KEY" in config.validate()


def test_load_from_env_file(monkeypatch, tmp_path):
    """Test reading values from a .env file."""
    clear_env(monkeypatch)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "ANTHROPIC_API_KEY=sk-test\nPORT=9000\nVIBEPROXY_MAX_TOKENS=123\nVIBEPROXY_RUNS_DIR=runs\n"
    )

    config = Config.load(env_file)

    assert config.anthropic_api_key == "sk-test"
    assert config.port == 9000
    assert config.max_tokens == 123
    assert config.runs_dir == Path("runs")
    assert config.validate() == []


def test_validate_rejects_other_providers():
    """Test that only the anthropic provider is accepted."""
    config = Config(anthropic_api_key="k", ai_provider="openai")

    assert any("AI_PROVIDER" in e for e in config.validate())


def test_validate_supabase_pair():
    """Test that Supabase settings must come together."""
    config = Config(anthropic_api_key="k", supabase_url="https://db.test")

    assert config.validate() == ["SUPABASE_URL and SUPABASE_ANON_KEY must be set together"]


def test_to_dict_hides_secrets():
    """Test that secrets never appear in the display dict."""
    config = Config(anthropic_api_key="sk-secret", supabase_url="u", supabase_anon_key="anon-secret")

    values = [str(v) for v in config.to_dict().values()]

    assert "sk-secret" not in values
    assert "anon-secret" not in values
    assert config.to_dict()["has_database"] is True
