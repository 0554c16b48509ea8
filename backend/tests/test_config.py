import pytest

from iotfusion import config


def _clear(monkeypatch):
    for name in (
        "HOST",
        "PORT",
        "SIGFOX_ENDPOINT",
        "SIGFOX_TIMEOUT",
        "SIGFOX_RETRIES",
        "SIGFOX_RETRY_BACKOFF",
        "MAX_RECORDS",
        "CACHE_TTL",
        "CORS_ORIGINS",
        "LOG_LEVEL",
        "APP_ENV",
        "RELOAD",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)

    settings = config.load_settings()

    assert settings.port == 3000
    assert settings.sigfox_endpoint == config.DEFAULT_SIGFOX_ENDPOINT
    assert settings.retries == 3
    assert settings.max_records == 2
    assert settings.cache_ttl == 30.0
    assert settings.cors_origins == ["*"]
    assert settings.reload is False


def test_environment_overrides(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CACHE_TTL", "5.5")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("RELOAD", "yes")

    settings = config.load_settings()

    assert settings.port == 8080
    assert settings.cache_ttl == 5.5
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"
    assert settings.reload is True


@pytest.mark.parametrize(
    "name, value",
    [("PORT", "abc"), ("PORT", "0"), ("SIGFOX_RETRIES", "0"), ("SIGFOX_ENDPOINT", "  "), ("CACHE_TTL", "soon")],
)
def test_invalid_configuration_is_rejected(monkeypatch, name, value):
    _clear(monkeypatch)
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        config.load_settings()
