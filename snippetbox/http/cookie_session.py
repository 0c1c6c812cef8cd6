"""Session helpers for the FastAPI UI.

The session data lives in `request.scope["session"]` and is persisted by
`SnippetboxSessionMiddleware`. `CookieSession` wraps that dict with the flash
helpers used by the error handlers and the template context.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final, Literal

from vtjson import ValidationError, union, validate

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request

SESSION_COOKIE_NAME: Final[str] = "snippetbox_session"
DEFAULT_SAMESITE: Final[Literal["lax", "strict", "none"]] = "lax"
MAX_COOKIE_BYTES: Final[int] = 3800
FLASH_KEY: Final[str] = "flash"

flash_type = union("danger", "warning", "info", "success")
flash_schema = {"type": flash_type, "text": str}


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def is_valid_flash(value: object) -> bool:
    """Return whether `value` is a well-formed `{type, text}` flash."""
    try:
        validate(flash_schema, value, name="flash")
    except ValidationError:
        return False
    return True


@dataclass
class CookieSession:
    """Dict-backed session with flash helpers."""

    data: dict[str, Any]

    def flash(self, text: str, type: str = "danger") -> None:  # noqa: A002
        """Attach a flash message, replacing any unread one."""
        payload = {"type": type, "text": str(text)}
        validate(flash_schema, payload, name="flash")
        self.data[FLASH_KEY] = payload

    def peek_flash(self) -> dict[str, str] | None:
        """Return the pending flash without consuming it."""
        value = self.data.get(FLASH_KEY)
        return value if is_valid_flash(value) else None

    def pop_flash(self) -> dict[str, str] | None:
        """Consume and return the pending flash, if any."""
        value = self.data.pop(FLASH_KEY, None)
        return value if is_valid_flash(value) else None


def load_session(request: Request) -> CookieSession:
    """Return a `CookieSession` backed by `request.scope["session"]`."""
    scope = request.scope
    session = scope.get("session")
    if not isinstance(session, dict):
        session = {}
        scope["session"] = session
    session.setdefault("created_at", _utc_now_iso())
    return CookieSession(data=session)


def authenticated_user(session: CookieSession) -> str | None:
    """Return the logged-in username from the session, if present."""
    return authenticated_user_from_data(session.data)


def authenticated_user_from_data(session_data: Mapping[str, object]) -> str | None:
    """Return the logged-in username from raw session data, if present."""
    value = session_data.get("user")
    return value if isinstance(value, str) and value else None


__all__ = [
    "DEFAULT_SAMESITE",
    "FLASH_KEY",
    "MAX_COOKIE_BYTES",
    "SESSION_COOKIE_NAME",
    "CookieSession",
    "authenticated_user",
    "authenticated_user_from_data",
    "flash_schema",
    "is_valid_flash",
    "load_session",
]
