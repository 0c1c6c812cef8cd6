"""FastAPI ASGI application factory and runtime wiring.

`create_app(settings)` builds the application from an explicit `AppSettings`
value; `main()` is the process entrypoint (``snippetbox`` console script, or
``uvicorn snippetbox.app:create_app --factory`` with the settings read from
the environment).

Request flow, outermost first:

1. security headers,
2. signed cookie session,
3. CSRF token issuance,
4. CSRF validation for POST/PUT/DELETE,
5. routes, with the exception handlers as the terminal stage.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Final, Protocol, cast

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from snippetbox.http.cookie_session import DEFAULT_SAMESITE, SESSION_COOKIE_NAME
from snippetbox.http.csrf import CsrfIssueMiddleware, CsrfValidateMiddleware
from snippetbox.http.errors import install_error_handlers
from snippetbox.http.security_headers import (
    SecurityHeaderPolicy,
    SecurityHeadersMiddleware,
)
from snippetbox.http.session_middleware import SnippetboxSessionMiddleware
from snippetbox.http.settings import AppSettings
from snippetbox.views import router as views_router

if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = logging.getLogger(__name__)

DEFAULT_HOST: Final[str] = "0.0.0.0"  # noqa: S104
LOG_FORMAT: Final[str] = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"


class MiddlewareFactory(Protocol):
    def __call__(self, app: ASGIApp, /, *args: object, **kwargs: object) -> ASGIApp: ...


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = AppSettings.from_env()

    policy = SecurityHeaderPolicy()

    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.security_policy = policy

    install_error_handlers(app)

    # add_middleware() prepends: the last one added runs first.
    app.add_middleware(
        cast("MiddlewareFactory", CsrfValidateMiddleware),
        allow_cookie_fallback=not settings.csrf_strict,
    )
    app.add_middleware(
        cast("MiddlewareFactory", CsrfIssueMiddleware),
        secure=settings.production,
    )
    app.add_middleware(
        cast("MiddlewareFactory", SnippetboxSessionMiddleware),
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        max_age=None,
        same_site=DEFAULT_SAMESITE,
        https_only=settings.production,
    )
    app.add_middleware(
        cast("MiddlewareFactory", SecurityHeadersMiddleware),
        policy=policy,
    )

    static_dir = settings.static_dir
    if static_dir is not None and static_dir.is_dir():
        app.mount(
            "/static",
            StaticFiles(directory=str(static_dir)),
            name="static",
        )

    app.include_router(views_router)

    return app


def main() -> int:
    """Start the server; return a non-zero exit status if startup fails."""
    try:
        settings = AppSettings.from_env()
        logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
        app = create_app(settings)
    except Exception:
        logging.basicConfig(format=LOG_FORMAT)
        logger.exception("Server failed to start")
        return 1

    logger.info("Server running at http://localhost:%d", settings.port)
    logger.info("Press Ctrl-C to terminate...")

    # Behind a reverse proxy in production: trust its X-Forwarded-* headers.
    uvicorn.run(
        app,
        host=DEFAULT_HOST,
        port=settings.port,
        proxy_headers=settings.production,
        forwarded_allow_ips="*" if settings.production else None,
        log_level=settings.log_level.lower(),
    )
    return 0


__all__ = [
    "create_app",
    "main",
]


if __name__ == "__main__":
    sys.exit(main())
