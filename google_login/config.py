"""Environment configuration.

Values come from the process environment, optionally populated from an
untracked `.env` file at the project root (see `.env.example`).
"""
import os
from dotenv import load_dotenv

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "google-authentication-app")

GOOGLE_CALLBACK_URL = os.getenv(
    "GOOGLE_CALLBACK_URL", "http://localhost:3000/auth/google/callback"
)

SESSION_COOKIE_NAME = "session_id"
STATE_COOKIE_NAME = "oauth_state"
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(3600 * 2)))


def _flag(name: str) -> bool:
    return os.environ.get(name) in ('1', 'true', 'True')


def cookie_secure_forced() -> bool:
    return _flag('COOKIE_SECURE')


def skip_ssl_verify() -> bool:
    return _flag('SKIP_SSL_VERIFY')


def get_env(name: str) -> str:
    """Return a required environment variable or fail with setup instructions."""
    val = os.environ.get(name)
    if not val:
        raise RuntimeError(
            f"Environment variable {name} is required.\n"
            "Create a `.env` file at the project root or export the variable in your shell.\n"
            "You can copy `.env.example` to `.env` and fill the values:\n"
            "  cp .env.example .env   # then edit .env and restart the server"
        )
    return val
