from pydantic_settings import BaseSettings
from typing import Optional, List, Literal


def _parse_allowed_origins(v: str) -> List[str]:
    """Parse comma-separated origins string; strip whitespace; keep non-empty."""
    if not v or not v.strip():
        return []
    return [o.strip() for o in v.split(",") if o.strip()]


_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql://postgres:postgres@db:5432/techevents"

    # CORS: comma-separated extra origins for production
    ALLOWED_ORIGINS_EXTRA: str = ""

    def get_allowed_origins(self) -> List[str]:
        """Return CORS allowed origins: default localhost + ALLOWED_ORIGINS_EXTRA."""
        return _DEFAULT_CORS_ORIGINS + _parse_allowed_origins(self.ALLOWED_ORIGINS_EXTRA)

    # Auth
    SECRET_KEY: str = "supersecret_jwt_key_change_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None  # whsec_... signing secret
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # PayMongo
    PAYMONGO_SECRET_KEY: Optional[str] = None
    PAYMONGO_WEBHOOK_SECRET: Optional[str] = None  # When unset, payloads are not verified
    PAYMONGO_API_BASE: str = "https://api.paymongo.com/v1"

    # Webhooks
    # "fail" -> 500 on exceptions escaping dispatch, "acknowledge" -> 200 {received: true}
    WEBHOOK_ERROR_POLICY: Literal["fail", "acknowledge"] = "fail"
    # "first" -> first incomplete subscription whose plan price equals the amount
    # "unique" -> only when exactly one candidate exists
    AMOUNT_MATCH_STRATEGY: Literal["first", "unique"] = "first"

    # Billing
    PLATFORM_FEE_PERCENT: float = 5.0
    DEFAULT_CURRENCY: str = "php"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        # Environment variables win over the .env file


settings = Settings()
