import os


def _env(name: str, default: str) -> str:
    return os.getenv(f"ROTARY_{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, "true" if default else "false").strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    def __init__(self):
        self.app_name = "Rotary Club Backend"
        self.api_version = "1.0.0"
        self.environment = _env("ENVIRONMENT", "development")
        self.debug = _env_bool("DEBUG", False)
        self.log_level = _env("LOG_LEVEL", "INFO").upper()
        self.secret_key = _env("SECRET_KEY", "CHANGE_ME")
        self.access_token_expire_minutes = int(_env("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))
        self.password_reset_expire_minutes = int(_env("PASSWORD_RESET_EXPIRE_MINUTES", "60"))
        self.frontend_url = _env("FRONTEND_URL", "http://localhost:3000").rstrip("/")
        self.database_url = _env("DATABASE_URL", "sqlite:///./rotary.db")
        self.cors_origins = [
            origin.strip()
            for origin in _env("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
            if origin.strip()
        ]
        self.storage_root = _env("STORAGE_ROOT", "./storage")
        self.storage_url_prefix = _env("STORAGE_URL_PREFIX", "/storage")
        self.max_upload_bytes = int(_env("MAX_UPLOAD_MB", "10")) * 1024 * 1024
        self.smtp_host = _env("SMTP_HOST", "")
        self.smtp_port = int(_env("SMTP_PORT", "587"))
        self.smtp_user = _env("SMTP_USER", "")
        self.smtp_password = _env("SMTP_PASSWORD", "")
        self.smtp_from = _env("SMTP_FROM", "noreply@rotary.local")
        self.smtp_tls = _env_bool("SMTP_TLS", True)
        self.currency = _env("CURRENCY", "KSh")


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
