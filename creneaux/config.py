from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change_me")
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL", "sqlite:///creneaux.db")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = os.getenv("DB_ECHO", "false").lower() == "true"
    API_TITLE: str = os.getenv("API_TITLE", "Créneaux API")
    API_VERSION: str = os.getenv("API_VERSION", "0.1.0")
    USER_HEADER: str = os.getenv("USER_HEADER", "X-User-Id")
    LOCAL_TIMEZONE: str = os.getenv("LOCAL_TZ", "Europe/Paris")
    REFRESH_DELAY_SECONDS: float = float(os.getenv("REFRESH_DELAY_SECONDS", "0.5"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ERROR_404_HELP: bool = False


@dataclass
class TestConfig(Config):
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///:memory:"
    REFRESH_DELAY_SECONDS: float = 0.0


config = Config()
