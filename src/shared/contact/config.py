"""Environment-driven configuration for the contact form service."""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Mapping

from dotenv import load_dotenv

# Rate limiting defaults. The route that was wired up in production allowed 5
# submissions per minute; an earlier middleware allowed 3.
DEFAULT_RATE_LIMIT_MAX = 5
DEFAULT_RATE_LIMIT_WINDOW_MS = 60 * 1000

# Time-based bot detection
DEFAULT_MIN_ELAPSED_MS = 3000  # 3 seconds
DEFAULT_MAX_ELAPSED_MS = 3600000  # 1 hour

# Backend variants disagreed (5 vs 10); 10 matches the frontend check.
DEFAULT_MESSAGE_MIN_LENGTH = 10

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000"]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ContactConfig:
    """Settings for the contact pipeline and the HTTP server around it."""
    rate_limit_max: int = DEFAULT_RATE_LIMIT_MAX
    rate_limit_window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    min_elapsed_ms: int = DEFAULT_MIN_ELAPSED_MS
    max_elapsed_ms: int = DEFAULT_MAX_ELAPSED_MS
    expiry_check_enabled: bool = True
    message_min_length: int = DEFAULT_MESSAGE_MIN_LENGTH
    trust_proxy: bool = False
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    public_dir: str = "public"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def _get_list(env: Mapping[str, str], name: str, default: List[str]) -> List[str]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_config(env: Optional[Mapping[str, str]] = None) -> ContactConfig:
    """
    Build a ContactConfig from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ, after loading
            a local .env file for development.

    Returns:
        Populated ContactConfig

    Raises:
        ValueError if a variable is set to a value of the wrong type
    """
    if env is None:
        load_dotenv()
        env = os.environ

    config = ContactConfig(
        rate_limit_max=_get_int(env, "CONTACT_RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX, minimum=1),
        rate_limit_window_ms=_get_int(env, "CONTACT_RATE_LIMIT_WINDOW_MS", DEFAULT_RATE_LIMIT_WINDOW_MS, minimum=1),
        min_elapsed_ms=_get_int(env, "CONTACT_MIN_ELAPSED_MS", DEFAULT_MIN_ELAPSED_MS),
        max_elapsed_ms=_get_int(env, "CONTACT_MAX_ELAPSED_MS", DEFAULT_MAX_ELAPSED_MS),
        expiry_check_enabled=_get_bool(env, "CONTACT_EXPIRY_CHECK", True),
        message_min_length=_get_int(env, "CONTACT_MESSAGE_MIN_LENGTH", DEFAULT_MESSAGE_MIN_LENGTH, minimum=1),
        trust_proxy=_get_bool(env, "CONTACT_TRUST_PROXY", False),
        allowed_origins=_get_list(env, "CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
        public_dir=env.get("PUBLIC_DIR", "public"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        host=env.get("HOST", "0.0.0.0"),
        port=_get_int(env, "PORT", 3000, minimum=1),
    )

    if config.max_elapsed_ms <= config.min_elapsed_ms:
        raise ValueError(
            "CONTACT_MAX_ELAPSED_MS must be greater than CONTACT_MIN_ELAPSED_MS"
        )

    return config
