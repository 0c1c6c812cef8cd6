"""Shared HTTP boundary for the server-rendered UI.

Ownership: the per-request template locals (base URL, user, session, CSRF
token, pending flash).
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from snippetbox.http.cookie_session import CookieSession, authenticated_user
from snippetbox.http.jinja import static_url

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from starlette.requests import Request


def base_url_for(request: Request) -> str:
    """Return the configured BASE_URL, defaulting to `/`."""
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "base_url", None) or "/"


def csrf_token_for(request: Request) -> str:
    """Return the token issued for this request (empty if none was issued)."""
    token = getattr(request.state, "csrf_token", None)
    return token if isinstance(token, str) else ""


def static_url_for(request: Request) -> Callable[[str], str]:
    """Return `static_url` bound to the configured static directory."""
    settings = getattr(request.app.state, "settings", None)
    static_dir: Path | None = getattr(settings, "static_dir", None)
    return partial(static_url, static_dir=static_dir)


def build_template_context(
    request: Request,
    session: CookieSession,
    extra: Mapping[str, object] | None = None,
    *,
    consume_flash: bool = True,
) -> dict[str, object]:
    """Build the shared template context (includes `request`).

    Rendering a page consumes the pending flash unless `consume_flash` is
    false, in which case no flash is shown.
    """
    user = authenticated_user(session)
    context: dict[str, object] = {
        "request": request,
        "base_url": base_url_for(request),
        "csrf_token": csrf_token_for(request),
        "flash": session.pop_flash() if consume_flash else None,
        "session": session.data,
        "static_url": static_url_for(request),
        "user": {"username": user} if user else None,
    }
    if extra:
        context.update(extra)
    return context


__all__ = [
    "base_url_for",
    "build_template_context",
    "csrf_token_for",
    "static_url_for",
]
