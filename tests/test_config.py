import pytest

import config


def test_http_timeout_disabled_by_default(monkeypatch):
    monkeypatch.setattr(config, "HTTP_TIMEOUT_SECONDS", 0.0)

    assert config.http_timeout() is None


def test_http_timeout_when_configured(monkeypatch):
    monkeypatch.setattr(config, "HTTP_TIMEOUT_SECONDS", 7.5)

    assert config.http_timeout() == 7.5


def test_missing_client_id_exits(monkeypatch, capsys):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "")

    with pytest.raises(SystemExit) as exc_info:
        config.validate_oauth_config()

    assert exc_info.value.code == 1
    assert "GOOGLE_CLIENT_ID" in capsys.readouterr().err


def test_complete_config_passes(monkeypatch):
    monkeypatch.setattr(config, "GOOGLE_CLIENT_ID", "123.apps.googleusercontent.com")
    monkeypatch.setattr(config, "GOOGLE_SCOPES", ["openid", "email"])
    monkeypatch.setattr(config, "GOOGLE_REDIRECT_URI", "http://localhost:8080/auth/callback")
    monkeypatch.setattr(config, "APP_ROOT_URL", "http://localhost:8080/")

    config.validate_oauth_config()


def test_module_exposes_only_settings_and_validators():
    public_functions = sorted(
        name for name, value in vars(config).items()
        if callable(value) and not name.startswith("_") and getattr(value, "__module__", "") == "config"
    )

    assert public_functions == ["http_timeout", "validate_oauth_config"]
