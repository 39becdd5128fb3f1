"""
Configuration settings for the board examination records API.
Supports both development and production environments via environment variables.
"""
import os
from pathlib import Path

# Load environment variables from .env file if it exists
from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# Paths
# ============================================================================
BASE_DIR = Path(__file__).parent
LOG_FILE = os.getenv("LOG_FILE", str(BASE_DIR / "logs" / "app.log"))


# ============================================================================
# Database Configuration (PostgreSQL)
# ============================================================================
def _build_database_url() -> str:
    """Use DATABASE_URL when set, otherwise assemble it from the DB_* variables."""
    raw_url = os.getenv("DATABASE_URL")
    if not raw_url:
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "password")
        host = os.getenv("DB_HOST", "localhost")
        port = os.getenv("DB_PORT", "5432")
        name = os.getenv("DB_NAME", "cbse_board_exams")
        raw_url = f"postgresql://{user}:{password}@{host}:{port}/{name}"
    # SQLAlchemy 2 loads dialect "postgresql", not "postgres"; normalize Heroku-style URLs
    if raw_url.startswith("postgres://"):
        return "postgresql://" + raw_url[len("postgres://"):]
    return raw_url


DATABASE_URL = _build_database_url()
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_BOOTSTRAP_RETRIES = int(os.getenv("DB_BOOTSTRAP_RETRIES", "3"))
DB_BOOTSTRAP_RETRY_DELAY = float(os.getenv("DB_BOOTSTRAP_RETRY_DELAY", "2"))

# ============================================================================
# Security Configuration
# ============================================================================
DEFAULT_SECRET_KEY = "change-this-secret-key-in-production"
DEFAULT_SESSION_SECRET = "change-this-session-secret-in-production"
SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
SESSION_SECRET = os.getenv("SESSION_SECRET", DEFAULT_SESSION_SECRET)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_SECONDS = int(os.getenv("ACCESS_TOKEN_EXPIRE_SECONDS", "86400"))  # 24 hours
SESSION_EXPIRE_HOURS = int(os.getenv("SESSION_EXPIRE_HOURS", "24"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session_id")
PASSWORD_MIN_LENGTH = 6

# CORS Settings - include your frontend origin (e.g. CRA default 3000, Vite 5173)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173").split(",") if o.strip()]
CORS_ALLOW_CREDENTIALS = os.getenv("CORS_ALLOW_CREDENTIALS", "true").lower() == "true"

# Trusted Hosts
TRUSTED_HOSTS = os.getenv("TRUSTED_HOSTS", "localhost,127.0.0.1").split(",")

# Rate Limiting
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "120"))
RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "3000"))

# ============================================================================
# Application Settings
# ============================================================================
APP_NAME = os.getenv("APP_NAME", "CBSE Board Exams API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # development, staging, production
PORT = int(os.getenv("PORT", "3000"))


def check_production_secrets(environment: str = None, secret_key: str = None, session_secret: str = None):
    """
    Refuse to run production with the built-in signing secrets.

    Raises:
        RuntimeError: If ENVIRONMENT is production and a secret is unset or left at its default
    """
    environment = ENVIRONMENT if environment is None else environment
    secret_key = SECRET_KEY if secret_key is None else secret_key
    session_secret = SESSION_SECRET if session_secret is None else session_secret
    if environment != "production":
        return
    insecure = [
        name for name, value, default in (
            ("SECRET_KEY", secret_key, DEFAULT_SECRET_KEY),
            ("SESSION_SECRET", session_secret, DEFAULT_SESSION_SECRET),
        )
        if not value or value == default
    ]
    if insecure:
        raise RuntimeError(f"Set {', '.join(insecure)} before running in production")
