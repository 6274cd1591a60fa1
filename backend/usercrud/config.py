"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


def _split_list(raw: str):
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    ENV: str
    APP_NAME: str
    APP_VERSION: str
    APP_DEBUG: bool
    HTTP_PORT: int
    LOG_PATH: str
    DATABASE_URL: str
    DB_PREFIX: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_ORIGINS: list
    ALLOW_METHODS: list
    ALLOW_HEADERS: list
    KAFKA_BROKERS: list
    KAFKA_SECURITY_PROTOCOL: str
    KAFKA_USERNAME: str
    KAFKA_PASSWORD: str
    KAFKA_TOPIC_EXAMPLE: str
    KAFKA_GROUP_ID: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.APP_NAME = os.getenv("APP_NAME", "usercrud")
        self.APP_VERSION = os.getenv("APP_VERSION", "v1")
        self.APP_DEBUG = os.getenv("APP_DEBUG", "false").lower() == "true"
        self.HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))
        self.LOG_PATH = os.getenv("LOG_PATH", "")
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'app.db'}")
        self.DB_PREFIX = os.getenv("DB_PREFIX", "")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "1"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        # empty origin list disables CORS entirely
        self.ALLOW_ORIGINS = _split_list(os.getenv("ALLOW_ORIGINS", "*"))
        self.ALLOW_METHODS = _split_list(os.getenv("ALLOW_METHODS", "*"))
        self.ALLOW_HEADERS = _split_list(os.getenv("ALLOW_HEADERS", "*"))
        self.KAFKA_BROKERS = _split_list(os.getenv("KAFKA_BROKERS", ""))
        self.KAFKA_SECURITY_PROTOCOL = os.getenv("KAFKA_SECURITY_PROTOCOL", "PLAINTEXT")
        self.KAFKA_USERNAME = os.getenv("KAFKA_USERNAME", "")
        self.KAFKA_PASSWORD = os.getenv("KAFKA_PASSWORD", "")
        self.KAFKA_TOPIC_EXAMPLE = os.getenv("KAFKA_TOPIC_EXAMPLE", "example")
        self.KAFKA_GROUP_ID = os.getenv("KAFKA_GROUP_ID", "usercrud-worker")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if not self.APP_VERSION.startswith("v"):
            raise RuntimeError("APP_VERSION must start with 'v'")

    def is_production(self) -> bool:
        return self.ENV == "production"


settings = Settings()
