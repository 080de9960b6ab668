"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"
    mongo_timeout_ms: int = 5000
    slow_query_ms: int = 200

    # Redis
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_timeout_seconds: float = 5.0

    # JWT Configuration
    jwt_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds: int = 12

    # Rate Limiting (applied to every /api router)
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 900

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Stripe
    stripe_secret_key: str = "sk_test_placeholder"
    stripe_webhook_secret: str = "whsec_placeholder"
    stripe_basic_price_id: str = "price_basic"
    stripe_premium_price_id: str = "price_premium"

    # Demo trading engine
    demo_leverage: float = 100.0
    demo_contract_size: float = 100000.0
    demo_pip_value_usd: float = 10.0
    demo_default_balance: float = 10000.0

    # WebSocket relay
    ws_broadcast_interval_seconds: float = 5.0
    mock_feed_enabled: bool = True
    ws_redis_fanout: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
