# skyinvest/config.py
import os

from dotenv import load_dotenv

load_dotenv()


def _to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y")


def _split_csv(value: str | None) -> list[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)

    # relative sqlite paths are rewritten under app.instance_path by create_app()
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///skyinvest.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ALLOWED_ORIGINS = _split_csv(os.getenv("CORS_ALLOWED_ORIGINS")) or ["http://localhost:3000"]

    # ── Recurrence scheduler ───────────────────────────────
    SCHEDULER_ENABLED = _to_bool(os.getenv("SCHEDULER_ENABLED"), True)
    RECURRENCE_SWEEP_MINUTES = int(os.getenv("RECURRENCE_SWEEP_MINUTES", "60"))

    # ── Seed admin ─────────────────────────────────────────
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@skyinvest.local")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "ChangeMe123!")

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
