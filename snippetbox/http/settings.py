"""Runtime settings for the FastAPI server.

This module centralizes environment parsing and derived runtime flags. The
settings are built once at process start and handed to `create_app()`; nothing
below reads the environment at request time.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

PRODUCTION_ENV: Final[str] = "production"
INSECURE_DEV_ENV: Final[str] = "SNIPPETBOX_INSECURE_DEV"
INSECURE_DEV_SECRET: Final[str] = "insecure-dev-secret"
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


class MissingPortError(RuntimeError):
    """Raised when PORT is not set; the server cannot bind without it."""

    def __init__(self) -> None:
        """Create a MissingPortError."""
        super().__init__("Missing PORT environment variable.")


class InvalidPortError(ValueError):
    """Raised when PORT is set but is not a usable TCP port number."""

    def __init__(self, raw: str) -> None:
        """Create an InvalidPortError for the given raw value."""
        super().__init__(f"Invalid PORT value: {raw!r}")


class MissingSessionSecretError(RuntimeError):
    """Raised when the session secret is missing and insecure mode is off."""

    def __init__(self, env_name: str) -> None:
        """Create a MissingSessionSecretError for the given env var name."""
        message = (
            "Missing SESSION_SECRET "
            f"(set {env_name}=1 to allow insecure dev fallback)."
        )
        super().__init__(message)


def env_flag(environ: Mapping[str, str], name: str) -> bool:
    """Return True when an environment variable holds a truthy value."""
    return environ.get(name, "").strip().lower() in _TRUTHY


def parse_port(environ: Mapping[str, str]) -> int:
    """Parse PORT; absence is a startup error."""
    raw = environ.get("PORT", "").strip()
    if not raw:
        raise MissingPortError
    try:
        port = int(raw)
    except ValueError:
        raise InvalidPortError(raw) from None
    if not 0 <= port <= 65535:  # noqa: PLR2004
        raise InvalidPortError(raw)
    return port


def _session_secret(environ: Mapping[str, str]) -> str:
    value = environ.get("SESSION_SECRET", "").strip()
    if value:
        return value
    if env_flag(environ, INSECURE_DEV_ENV):
        return INSECURE_DEV_SECRET
    raise MissingSessionSecretError(INSECURE_DEV_ENV)


def _path_from_env(environ: Mapping[str, str], name: str, default: Path) -> Path:
    raw = environ.get(name, "").strip()
    if raw:
        return Path(raw).expanduser()
    return default


def default_static_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the static directory path for the `/static` mount."""
    # Package-relative resolution works for both source checkouts and wheels.
    default = Path(__file__).resolve().parents[1] / "static"
    env = os.environ if environ is None else environ
    return _path_from_env(env, "SNIPPETBOX_STATIC_DIR", default)


def default_templates_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the Jinja2 templates directory path."""
    default = Path(__file__).resolve().parents[1] / "templates"
    env = os.environ if environ is None else environ
    return _path_from_env(env, "SNIPPETBOX_TEMPLATES_DIR", default)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Derived runtime settings for the FastAPI server process."""

    port: int
    session_secret: str
    base_url: str = "/"
    production: bool = False
    csrf_strict: bool = False
    log_level: str = "INFO"
    static_dir: Path | None = None
    templates_dir: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppSettings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ

        port = parse_port(env)
        production = env.get("NODE_ENV", "").strip() == PRODUCTION_ENV
        base_url = env.get("BASE_URL", "").strip() or "/"
        log_level = env.get("LOG_LEVEL", "").strip().upper() or "INFO"

        return cls(
            port=port,
            session_secret=_session_secret(env),
            base_url=base_url,
            production=production,
            csrf_strict=env_flag(env, "CSRF_STRICT"),
            log_level=log_level,
            static_dir=default_static_dir(env),
            templates_dir=default_templates_dir(env),
        )


__all__ = [
    "INSECURE_DEV_ENV",
    "AppSettings",
    "InvalidPortError",
    "MissingPortError",
    "MissingSessionSecretError",
    "default_static_dir",
    "default_templates_dir",
    "env_flag",
    "parse_port",
]
