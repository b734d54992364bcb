# app/core/config.py
import os
from typing import List, Optional
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "LabDesk")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "labdesk")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "labdesk")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "labdesk")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # Full URL wins over the MYSQL_* parts (sqlite:// in tests)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

    # ---------- Security ----------
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-this")
    JWT_ALG: str = os.getenv("JWT_ALG", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # ---------- Lab calendar ----------
    # invoice numbers roll over at local midnight of this zone
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")

    # ---------- Billing / results ----------
    INVOICE_MAX_RETRIES: int = int(os.getenv("INVOICE_MAX_RETRIES", "3"))
    RESULTS_REQUIRE_PAID_BILL: bool = _flag("RESULTS_REQUIRE_PAID_BILL",
                                            "true")

    # ---------- Exports ----------
    EXPORTS_DIR: str = os.getenv("EXPORTS_DIR", "./exports")
    EXPORT_RETENTION_DAYS: int = int(os.getenv("EXPORT_RETENTION_DAYS", "7"))

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+{self.DB_DRIVER}://{quote_plus(self.MYSQL_USER)}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DB}?charset=utf8mb4")


settings = Settings()
