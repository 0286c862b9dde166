from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like changing user_type

    # SendGrid (email dispatch)
    sendgrid_api_key: Optional[str] = None
    sendgrid_from_email: str = "noreply@splarve.com"
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    email_timeout_seconds: float = 10.0

    # Invitations
    invitation_ttl_days: int = 7

    # App
    app_name: str = "splarve-api"
    site_url: str = "http://localhost:3000"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
