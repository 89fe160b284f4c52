"""Application settings and validation."""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_TOKEN_SECRET = "change_me_for_prod"


class Settings:
    ENV: str
    DATABASE_URL: str
    ACCESS_TOKEN_SECRET: str
    JWT_ALGORITHM: str
    TOKEN_EXPIRE_DAYS: int
    PAYMENT_SECRET_KEY: str
    PAYMENT_API_BASE: str
    PAYMENT_CURRENCY: str
    PAYMENT_TIMEOUT_SECONDS: float
    ENFORCE_ADMIN_ROLES: bool
    ALLOW_DEV_CORS: bool
    HOST: str
    PORT: int
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///scholarships.db")
        self.ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", DEFAULT_TOKEN_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.TOKEN_EXPIRE_DAYS = int(os.getenv("TOKEN_EXPIRE_DAYS", "365"))
        self.PAYMENT_SECRET_KEY = os.getenv("PAYMENT_SECRET_KEY", "")
        self.PAYMENT_API_BASE = os.getenv("PAYMENT_API_BASE", "https://api.stripe.com").rstrip("/")
        self.PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd").lower()
        self.PAYMENT_TIMEOUT_SECONDS = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "30"))
        # Off by default: protected routes only require a valid token.
        self.ENFORCE_ADMIN_ROLES = os.getenv("ENFORCE_ADMIN_ROLES", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "5000"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and self.ACCESS_TOKEN_SECRET == DEFAULT_TOKEN_SECRET:
            raise RuntimeError("ACCESS_TOKEN_SECRET must be set to a non-default value in non-dev environments")
        if self.TOKEN_EXPIRE_DAYS <= 0:
            raise RuntimeError("TOKEN_EXPIRE_DAYS must be positive")


settings = Settings()
