import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/usermanager.db")).resolve()
        self.session_token_secret = os.getenv("SESSION_TOKEN_SECRET", "change-me")
        self.session_token_exp_minutes = self._get_int("SESSION_TOKEN_EXP_MINUTES", default=60 * 24)
        self.confirmation_token_hours = self._get_int("CONFIRMATION_TOKEN_HOURS", default=24)
        self.reset_token_minutes = self._get_int("RESET_TOKEN_MINUTES", default=120)
        self.password_min_length = self._get_int("PASSWORD_MIN_LENGTH", default=6)
        self.password_hash_rounds = self._get_int("PASSWORD_HASH_ROUNDS", default=12)
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@usermanager.com")
        self.admin_password = os.getenv("ADMIN_PASSWORD", "Admin@123")
        self.admin_full_name = os.getenv("ADMIN_FULL_NAME", "Administrator")
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "")
        self.smtp_from_name = os.getenv("SMTP_FROM_NAME", "User Manager")
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @property
    def uses_default_admin_password(self) -> bool:
        return os.getenv("ADMIN_PASSWORD") is None

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None or value == "":
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
