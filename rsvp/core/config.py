"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "RSVP Tracker"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all
    app_base_url: str = ""  # Public URL used in invitation links

    # Database
    database_url: str = "sqlite:///./rsvp.sqlite"

    # Logging
    log_dir: str = "~/.logs/rsvp"

    # SMTP (invitations are mock-logged when user/password are unset)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""  # Defaults to smtp_user
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 30.0

    # ntfy push notifications for new RSVPs
    ntfy_topic: str = ""
    ntfy_base_url: str = "https://ntfy.sh"
    ntfy_user: str = ""
    ntfy_password: str = ""
    ntfy_timeout_seconds: float = 10.0

    @property
    def base_url(self) -> str:
        """Base URL for RSVP links, without a trailing slash."""
        if self.app_base_url:
            return self.app_base_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)


settings = Settings()
