"""
Runtime settings read from the environment (.env supported).
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "").strip()

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session_token")
SESSION_TTL_HOURS = _int_env("SESSION_TTL_HOURS", 720)

RATING_DEFAULT = _int_env("RATING_DEFAULT", 1000)
HANDICAP_DEFAULT = _int_env("HANDICAP_DEFAULT", 0)
F2F_HANDICAP_DEFAULT = _int_env("F2F_HANDICAP_DEFAULT", 30)

DEF_HANDLE_NAME = os.getenv("DEF_HANDLE_NAME", "def")

BOOTSTRAP_ADMIN_HANDLE = os.getenv("BOOTSTRAP_ADMIN_HANDLE", "").strip()
BOOTSTRAP_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "")
