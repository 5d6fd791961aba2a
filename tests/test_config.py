from conversation_memory.config import Settings


def test_defaults(monkeypatch):
    for name in ("REDIS_URL", "REDIS_TTL_SECONDS", "DEBUG"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.redis_url == "redis://redis:6379/0"
    assert settings.redis_ttl_seconds == 3600
    assert settings.debug is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/15")
    monkeypatch.setenv("REDIS_TTL_SECONDS", "120")
    monkeypatch.setenv("DEBUG", "true")

    settings = Settings(_env_file=None)

    assert settings.redis_url == "redis://localhost:6379/15"
    assert settings.redis_ttl_seconds == 120
    assert settings.debug is True
