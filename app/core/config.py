from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = True
    database_echo: bool = False

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    api_token_expire_days: int = 365
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:4000"

    # Google OAuth client used for the calendar connect flow
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""

    # Calendar / availability rules
    default_timezone: str = "America/Los_Angeles"
    calendar_id: str = "primary"
    slot_step_minutes: int = 30
    availability_window_days: int = 7
    default_duration_minutes: int = 30
    default_slot_count: int = 3
    min_duration_minutes: int = 15
    max_duration_minutes: int = 240
    max_slot_count: int = 10
    summary_max_length: int = 200
    business_start_hour: int = 9
    business_end_hour: int = 17  # exclusive
    http_timeout_seconds: float = 10.0

    # Env
    env: str = "development"
    version: str = "1.0.0"

    # Twilio SMS. Leave account SID empty to log messages instead of sending.
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # Email (Gmail SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Luna AI Assistant"

    # Branding and owner alerts
    site_name: str = "TheChattyAI"
    assistant_name: str = "luna"
    owner_alert_phone: str = ""
    owner_alert_email: str = ""
    contact_phone: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)

    @property
    def google_oauth_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_redirect_uri)


settings = Settings()
