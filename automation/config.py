"""
Centralized configuration for the meetup automation service.

All settings come from environment variables (loaded from .env files by
main.py). Getters are read at call time so tests can patch os.environ.
"""

import os


def _is_truthy(value: str | None) -> bool:
    return (value or "").lower() in ("true", "1", "yes")


def is_dev_mode() -> bool:
    """Check if running in development mode (DEV_MODE env)."""
    return _is_truthy(os.getenv("DEV_MODE"))


def is_scheduler_enabled() -> bool:
    """The scheduler runs unless DISABLE_SCHEDULER is set (e.g. in test runs)."""
    return not _is_truthy(os.getenv("DISABLE_SCHEDULER"))


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_meetup_timezone() -> str:
    """Timezone that meetup date/time columns are recorded in."""
    return os.getenv("MEETUP_TIMEZONE", "Asia/Seoul")


def get_noshow_penalty() -> int:
    """Trust score points removed for each confirmed no-show."""
    return int(os.getenv("NOSHOW_TRUST_PENALTY", "10"))


def get_sentry_dsn() -> str | None:
    return os.environ.get("SENTRY_DSN") or None


# Environment variables checked at boot
# Format: (name, description, fatal_if_missing)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    (
        "FIREBASE_SERVICE_ACCOUNT",
        "Firebase service account JSON, push notifications are skipped without it",
        False,
    ),
    ("SENTRY_DSN", "Sentry DSN for error reporting", False),
]

# Alternative ways of supplying the same setting
_ENV_ALTERNATIVES = {
    "FIREBASE_SERVICE_ACCOUNT": ("FIREBASE_PROJECT_ID", "GOOGLE_APPLICATION_CREDENTIALS"),
}


def get_missing_env_vars() -> list[tuple[str, str, bool]]:
    """
    Return (name, description, fatal) for every checked variable that is unset.

    A variable counts as set when any of its alternatives is set.
    """
    missing = []
    for name, description, fatal in REQUIRED_ENV_VARS:
        candidates = (name, *_ENV_ALTERNATIVES.get(name, ()))
        if not any(os.environ.get(candidate) for candidate in candidates):
            missing.append((name, description, fatal))
    return missing
