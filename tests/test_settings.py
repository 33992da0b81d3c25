from backend.app.core.settings import Settings, get_settings


def test_settings_defaults():
    settings = get_settings()
    assert settings.app_name == "Rotary Club Backend"
    assert settings.environment == "development"
    assert isinstance(settings.secret_key, str) and settings.secret_key
    assert isinstance(settings.database_url, str) and settings.database_url
    assert settings.max_upload_bytes == 10 * 1024 * 1024


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("ROTARY_DEBUG", "yes")
    monkeypatch.setenv("ROTARY_MAX_UPLOAD_MB", "2")
    monkeypatch.setenv("ROTARY_CORS_ORIGINS", "https://club.example.org, https://admin.example.org")
    settings = Settings()
    assert settings.debug is True
    assert settings.max_upload_bytes == 2 * 1024 * 1024
    assert settings.cors_origins == ["https://club.example.org", "https://admin.example.org"]


def test_get_settings_is_singleton():
    assert get_settings() is get_settings()
