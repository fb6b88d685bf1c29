"""Configuration module with environment variable validation.

This module provides the session configuration value object, loaded from
environment variables, and the option whitelist used by the session manager
at runtime.
"""

import os
from dataclasses import dataclass, asdict
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from sessionkit.exceptions import SessionError


SAVE_HANDLERS = ("memory", "files", "dynamodb")
SAMESITE_VALUES = ("lax", "strict", "none")

# Recognized option keys and their expected value types
OPTION_TYPES = {
    "name": str,
    "save_handler": str,
    "save_path": str,
    "table_name": str,
    "region": str,
    "gc_maxlifetime": int,
    "gc_probability": int,
    "gc_divisor": int,
    "use_strict_mode": bool,
    "cookie_lifetime": int,
    "cookie_path": str,
    "cookie_domain": str,
    "cookie_secure": bool,
    "cookie_httponly": bool,
    "cookie_samesite": str,
}

COOKIE_OPTION_KEYS = (
    "cookie_lifetime",
    "cookie_path",
    "cookie_domain",
    "cookie_secure",
    "cookie_httponly",
    "cookie_samesite",
)


class ConfigurationError(SessionError):
    """Raised when a configuration value is missing, unknown or invalid."""

    def __init__(self, variable_name: str, message: Optional[str] = None):
        self.variable_name = variable_name
        if message:
            super().__init__(f"{variable_name}: {message}")
        else:
            super().__init__(f"Required configuration value '{variable_name}' is missing or empty")


def _env_bool(env_var: str, default: bool) -> bool:
    raw = os.environ.get(env_var, "").strip().lower()
    if not raw:
        return default
    return raw in ("true", "1", "yes")


def _env_int(env_var: str, default: int) -> int:
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(env_var, f"expected an integer, got '{raw}'")


def check_option(key: str, value: Any) -> None:
    """Validate a single option key and value.

    Args:
        key: Option name
        value: Proposed option value

    Raises:
        ConfigurationError: If the key is not recognized or the value is malformed
    """
    expected = OPTION_TYPES.get(key)
    if expected is None:
        raise ConfigurationError(key, "unrecognized session option")

    # bool is a subclass of int, so reject it explicitly for integer options
    if expected is int and isinstance(value, bool):
        raise ConfigurationError(key, "expected an integer")
    if not isinstance(value, expected):
        raise ConfigurationError(key, f"expected {expected.__name__}, got {type(value).__name__}")

    if key == "name" and (not value or not value.isalnum()):
        raise ConfigurationError(key, "session name must be non-empty and alphanumeric")
    if key == "save_handler" and value not in SAVE_HANDLERS:
        raise ConfigurationError(key, f"must be one of {', '.join(SAVE_HANDLERS)}")
    if key == "cookie_samesite" and value.lower() not in SAMESITE_VALUES:
        raise ConfigurationError(key, f"must be one of {', '.join(SAMESITE_VALUES)}")
    if key in ("gc_maxlifetime", "gc_probability", "cookie_lifetime") and value < 0:
        raise ConfigurationError(key, "must not be negative")
    if key == "gc_divisor" and value <= 0:
        raise ConfigurationError(key, "must be greater than zero")


@dataclass(frozen=True)
class SessionConfig:
    """Session configuration passed to each SessionManager.

    Attributes:
        name: Session name, also used as the cookie name
        save_handler: Storage backend selector ('memory', 'files', 'dynamodb')
        save_path: Directory used by the 'files' backend
        table_name: DynamoDB table used by the 'dynamodb' backend
        region: AWS region for the 'dynamodb' backend
        gc_maxlifetime: Seconds of inactivity after which stored sessions expire
        gc_probability: Numerator of the garbage collection probability
        gc_divisor: Denominator of the garbage collection probability
        use_strict_mode: Reject incoming ids that have no stored session
        cookie_lifetime: Cookie lifetime in seconds (0 = until browser closes)
        cookie_path: Cookie path
        cookie_domain: Cookie domain ('' = host only)
        cookie_secure: Send cookie over HTTPS only
        cookie_httponly: Hide cookie from client-side scripts
        cookie_samesite: SameSite policy ('lax', 'strict', 'none')
    """

    name: str = "SESSIONID"
    save_handler: str = "memory"
    save_path: str = ""
    table_name: str = "sessionkit-sessions"
    region: str = "us-east-1"
    gc_maxlifetime: int = 1440
    gc_probability: int = 1
    gc_divisor: int = 100
    use_strict_mode: bool = True
    cookie_lifetime: int = 0
    cookie_path: str = "/"
    cookie_domain: str = ""
    cookie_secure: bool = False
    cookie_httponly: bool = True
    cookie_samesite: str = "lax"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check every field against the option rules.

        Raises:
            ConfigurationError: If any field is malformed
        """
        for key, value in asdict(self).items():
            check_option(key, value)

    def to_options(self) -> Dict[str, Any]:
        """Return the configuration as a runtime option mapping."""
        return asdict(self)

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Load configuration from environment variables.

        Returns:
            SessionConfig instance with values from environment

        Raises:
            ConfigurationError: If an environment variable holds an invalid value
        """
        defaults = cls.__dataclass_fields__
        values = {
            "name": os.environ.get("SESSION_NAME", "").strip() or defaults["name"].default,
            "save_handler": os.environ.get("SESSION_SAVE_HANDLER", "").strip().lower()
            or defaults["save_handler"].default,
            "save_path": os.environ.get("SESSION_SAVE_PATH", "").strip(),
            "table_name": os.environ.get("SESSION_TABLE_NAME", "").strip()
            or defaults["table_name"].default,
            "region": os.environ.get("AWS_REGION", "").strip() or defaults["region"].default,
            "gc_maxlifetime": _env_int("SESSION_GC_MAXLIFETIME", defaults["gc_maxlifetime"].default),
            "gc_probability": _env_int("SESSION_GC_PROBABILITY", defaults["gc_probability"].default),
            "gc_divisor": _env_int("SESSION_GC_DIVISOR", defaults["gc_divisor"].default),
            "use_strict_mode": _env_bool("SESSION_USE_STRICT_MODE", True),
            "cookie_lifetime": _env_int("SESSION_COOKIE_LIFETIME", 0),
            "cookie_path": os.environ.get("SESSION_COOKIE_PATH", "").strip() or "/",
            "cookie_domain": os.environ.get("SESSION_COOKIE_DOMAIN", "").strip(),
            "cookie_secure": _env_bool("SESSION_COOKIE_SECURE", False),
            "cookie_httponly": _env_bool("SESSION_COOKIE_HTTPONLY", True),
            "cookie_samesite": os.environ.get("SESSION_COOKIE_SAMESITE", "").strip().lower() or "lax",
        }

        if values["save_handler"] == "files" and not values["save_path"]:
            raise ConfigurationError("SESSION_SAVE_PATH", "required when SESSION_SAVE_HANDLER is 'files'")

        return cls(**values)


@lru_cache(maxsize=1)
def get_config() -> SessionConfig:
    """Get the session configuration (cached).

    Values from a local .env file are loaded first.

    Returns:
        SessionConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    load_dotenv()
    return SessionConfig.from_env()
