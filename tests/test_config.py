import pytest
from pydantic import ValidationError

from contactgraph.config import Settings, get_settings


def test_defaults(monkeypatch):
    for name in ("DB_DSN", "DATABASE_URL", "CONTACTGRAPH_MAX_ATTEMPTS", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.database_url.endswith("/contactgraph")
    assert settings.max_attempts == 3
    assert settings.cors_origins == ["*"]


def test_reads_environment(monkeypatch):
    monkeypatch.delenv("DB_DSN", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://db/identity")
    monkeypatch.setenv("CONTACTGRAPH_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("CONTACTGRAPH_LOCK_TIMEOUT_MS", "0")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")

    settings = Settings()

    assert settings.database_url == "postgresql://db/identity"
    assert settings.max_attempts == 5
    assert settings.lock_timeout_ms == 0
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_rejects_zero_attempts():
    with pytest.raises(ValidationError):
        Settings(max_attempts=0)


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
