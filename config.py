from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite-файл в каталоге проекта
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'studyroom.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # все часы работы и даты исключений трактуются в этой зоне
    TIMEZONE = os.getenv("TIMEZONE", "Asia/Seoul")

    # транзакция допуска брони: повторы при блокировках/сериализации
    BOOKING_TX_RETRIES = int(os.getenv("BOOKING_TX_RETRIES", 3))
    BOOKING_TX_BACKOFF_MS = int(os.getenv("BOOKING_TX_BACKOFF_MS", 50))
    SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", 30))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # кто делает запрос: заголовок от шлюза аутентификации
    AUTH_HEADER = "X-User-Id"
    AUTHORITY_LEVELS = {
        "student": 10,
        "doorkeeper": 20,
        "class_rep": 30,
        "assistant": 50,
        "professor": 70,
        "admin": 100,
    }
    DEFAULT_ROLE = "student"
    USER_ROLES: dict[str, str] = {}

class DevConfig(BaseConfig):
    DEBUG = True
    # симуляция ролей, пока нет сервиса пользователей
    USER_ROLES = {
        "user_admin": "admin",
        "user_assistant": "assistant",
        "user_professor": "professor",
        "user_class_rep": "class_rep",
        "user_doorkeeper": "doorkeeper",
        "user_student": "student",
    }

class TestConfig(DevConfig):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BOOKING_TX_BACKOFF_MS = 10

class ProdConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
