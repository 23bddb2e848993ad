import pytest

from metaprovider.config import get_settings, validate_settings_for_env


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("QUEUE_INTERVAL_MS", raising=False)
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.meta_api_version == "v16.0"
    assert settings.port == 3000
    assert settings.queue_interval_ms == 100
    assert settings.webhook_path == "/webhook"


def test_port_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    get_settings.cache_clear()
    assert get_settings().port == 8080


def test_validate_settings_prod_missing_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("META_JWT_TOKEN", "")
    monkeypatch.setenv("META_VERIFY_TOKEN", "")
    get_settings.cache_clear()
    with pytest.raises(ValueError) as exc:
        validate_settings_for_env(get_settings())
    assert "META_JWT_TOKEN" in str(exc.value)
    assert "META_VERIFY_TOKEN" in str(exc.value)
    assert "META_NUMBER_ID" not in str(exc.value)


def test_validate_settings_prod_accepts_full_required_set(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    get_settings.cache_clear()
    validate_settings_for_env(get_settings())


def test_validate_settings_rejects_relative_webhook_path(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("WEBHOOK_PATH", "webhook")
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        validate_settings_for_env(get_settings())


def test_validate_settings_rejects_negative_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUEUE_INTERVAL_MS", "-5")
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        validate_settings_for_env(get_settings())
