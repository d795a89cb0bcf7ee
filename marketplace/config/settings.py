from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key; user requests carry their own JWT so RLS applies
    supabase_timeout_seconds: float = 30.0

    # Public site (used to build auth redirect URLs)
    site_url: str = "http://localhost:3000"

    # Route gate
    protected_prefixes: str = "/dashboard,/account"
    oauth_provider: str = "google"

    # Session cookie
    auth_cookie_name: str = "sb-auth-token"
    cookie_secure: bool = False
    cookie_max_age: int = 60 * 60 * 24 * 7

    # Blob storage: "supabase" or "s3"
    storage_backend: str = "supabase"
    profile_photos_bucket: str = "profile-photos"
    max_photo_size_mb: int = 5

    # AWS S3 (will read from uppercase env vars automatically)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    # Username availability checks over websocket
    username_check_debounce_ms: int = 500

    # App
    app_name: str = "creator-marketplace"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_protected_prefixes(self) -> List[str]:
        return [p.strip().rstrip("/") for p in self.protected_prefixes.split(",") if p.strip()]

    @property
    def max_photo_size_bytes(self) -> int:
        return self.max_photo_size_mb * 1024 * 1024

    def absolute_url(self, path: str) -> str:
        return f"{self.site_url.rstrip('/')}{path}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
