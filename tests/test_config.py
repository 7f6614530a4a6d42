import pytest

from gmaps_mcp.config import Settings, load_settings
from gmaps_mcp.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("GOOGLE_MAPS_API_KEY", "PORT", "HOST", "LOG_LEVEL", "MCP_PATH", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abc123")

    settings = load_settings(_env_file=None)

    assert settings.google_maps_api_key == "abc123"
    assert settings.port == 3000
    assert settings.host == "0.0.0.0"
    assert settings.mcp_path == "/mcp"
    assert settings.log_level == "INFO"
    assert settings.request_timeout == 10.0


def test_port_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abc123")
    monkeypatch.setenv("PORT", "8080")

    assert load_settings(_env_file=None).port == 8080


def test_missing_api_key_fails_fast():
    with pytest.raises(ConfigurationError, match="Missing GOOGLE_MAPS_API_KEY environment variable"):
        load_settings(_env_file=None)


def test_empty_api_key_fails_fast(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "")

    with pytest.raises(ConfigurationError, match="GOOGLE_MAPS_API_KEY"):
        load_settings(_env_file=None)


@pytest.mark.parametrize("port", ["0", "-1", "not-a-port"])
def test_invalid_port(monkeypatch: pytest.MonkeyPatch, port: str):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abc123")
    monkeypatch.setenv("PORT", port)

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        load_settings(_env_file=None)


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "abc123")
    monkeypatch.setenv("PORT", "8080")

    assert load_settings(_env_file=None, port=9000).port == 9000


def test_api_key_not_in_repr():
    settings = Settings(google_maps_api_key="super-secret", _env_file=None)  # type: ignore[call-arg]

    assert "super-secret" not in repr(settings)
