import pytest
from pydantic import ValidationError

from clinicvoice.config.settings import BridgeSettings, load_settings


def test_defaults(monkeypatch):
    for name in ("OPENAI_API_KEY", "AUDIO_FORMAT", "IDLE_TIMEOUT", "DATABASE_URL", "TENANTS_FILE"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.realtime_model == "gpt-4o-realtime-preview-2024-10-01"
    assert settings.audio_format == "g711_alaw"
    assert settings.idle_timeout == 300.0
    assert settings.database_url is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("AUDIO_FORMAT", "g711_ulaw")
    monkeypatch.setenv("IDLE_TIMEOUT", "0")
    monkeypatch.setenv("SEND_TIMEOUT", "2.5")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("TENANTS_FILE", "tenants.yaml")

    settings = load_settings()

    assert settings.openai_api_key == "sk-test"
    assert settings.audio_format == "g711_ulaw"
    assert settings.idle_timeout == 0
    assert settings.send_timeout == 2.5
    assert settings.port == 9000
    assert settings.tenants_file == "tenants.yaml"


def test_empty_variables_are_unset(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    assert load_settings().openai_api_key is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"audio_format": "mp3"},
        {"send_timeout": 0},
        {"idle_timeout": -1},
    ],
)
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        BridgeSettings(**overrides)
