from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "pashmiya"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_AUTO_CREATE: bool = True

    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGO: str = "HS256"
    JWT_ISSUER: str = "pashmiya"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    PASS_HASH_SCHEME: str = "bcrypt"
    DEFAULT_ROLE: str = "user"
    SELF_PROVIDER: str = "email"

    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = None
    RAZORPAY_API_BASE: str = "https://api.razorpay.com/v1"

    SHIPROCKET_EMAIL: Optional[str] = None
    SHIPROCKET_PASSWORD: Optional[str] = None
    SHIPROCKET_API_BASE: str = "https://apiv2.shiprocket.in/v1/external"
    SHIPROCKET_PICKUP_LOCATION: str = "Primary"

    PROVIDER_TIMEOUT_SECONDS: float = 30.0

    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    RATE_LIMIT_BACKEND: str = "memory"     # "memory" / "redis"
    API_RATE_LIMIT: int = 100
    AUTH_RATE_LIMIT: int = 10
    RATE_LIMIT_WINDOW: int = 60
    RATE_LIMIT_SWEEP_SECONDS: int = 60
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    WS_SEND_BUFFER: int = 256

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    @property
    def shiprocket_configured(self) -> bool:
        return bool(self.SHIPROCKET_EMAIL and self.SHIPROCKET_PASSWORD)


config_settings = Settings()
