import logging
import os
import secrets
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _get_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the Pasteboard server.

    Built once by the application factory and handed to the services that
    need it; nothing reads the environment after startup.

    session_max_age (SESSION_MAX_AGE) is in seconds, not milliseconds; it
    sets both the cookie lifetime and the expiry of the session row.
    """
    host: str = "127.0.0.1"
    port: int = 3000
    database_url: str = "sqlite:///./pasteboard.db"
    session_secret: str = ""
    session_max_age: int = 7 * 24 * 60 * 60  # seconds
    session_secure: bool = False
    bcrypt_rounds: int = 10
    app_env: str = "development"
    log_level: str = "INFO"
    secret_from_env: bool = False

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment (and a .env file if present)."""
        load_dotenv()
        db_path = os.getenv("DB_PATH", "./pasteboard.db")
        secret = os.getenv("SESSION_SECRET")
        return cls(
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "3000")),
            database_url=os.getenv("DATABASE_URL", f"sqlite:///{db_path}"),
            session_secret=secret or secrets.token_urlsafe(32),
            session_max_age=int(os.getenv("SESSION_MAX_AGE", str(7 * 24 * 60 * 60))),
            session_secure=_get_bool(os.getenv("SESSION_SECURE"), default=False),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
            app_env=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            secret_from_env=bool(secret),
        )


def validate_runtime_config(settings: Settings) -> None:
    if settings.app_env.lower() == "production" and not settings.secret_from_env:
        raise RuntimeError("SESSION_SECRET must be set in production.")
    if not settings.session_secret:
        raise RuntimeError("A session secret is required to sign session cookies.")
    if settings.session_max_age <= 0:
        raise RuntimeError("SESSION_MAX_AGE must be a positive number of seconds.")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        )
    root.setLevel(level.upper())
