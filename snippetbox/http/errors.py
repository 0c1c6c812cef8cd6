"""Error classification and the FastAPI/Starlette error handlers.

Ownership: map a failure to the user-facing response.

- 403, and 404s carrying a specific message, become a `danger` flash plus a
  redirect to the parent path.
- A plain "Not Found" renders the 404 page.
- Everything else renders the generic 500 page in production and a detailed
  error page in development.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, NoReturn

from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import PlainTextResponse, RedirectResponse

from snippetbox.formatting import format_validation_message
from snippetbox.http.cookie_session import load_session
from snippetbox.http.security_headers import (
    SecurityHeaderPolicy,
    apply_security_headers,
)
from snippetbox.http.ui_errors import render_error_response
from snippetbox.models import ModelValidationError

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)

STATUS_FORBIDDEN: Final[int] = 403
STATUS_NOT_FOUND: Final[int] = 404
STATUS_INTERNAL_ERROR: Final[int] = 500
NOT_FOUND_MESSAGE: Final[str] = "Not Found"
PARENT_PATH: Final[str] = "../"

NOT_FOUND_TEMPLATE: Final[str] = "errors/404.html.j2"
SERVER_ERROR_TEMPLATE: Final[str] = "errors/500.html.j2"
DETAILED_ERROR_TEMPLATE: Final[str] = "errors/error.html.j2"


class ErrorKind(enum.Enum):
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


class AppError(Exception):
    """A failure raised by a handler, tagged with its kind and HTTP status."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: int | None = None,
    ) -> None:
        """Create an AppError; `status` defaults from `kind`."""
        self.kind = kind
        self.message = message
        self.status = status if status is not None else _default_status(kind)
        super().__init__(message)

    @classmethod
    def from_status(cls, status: int, message: str) -> AppError:
        """Build the tagged error for an HTTP status code."""
        if status == STATUS_FORBIDDEN:
            return cls(ErrorKind.FORBIDDEN, message)
        if status == STATUS_NOT_FOUND:
            return cls(ErrorKind.NOT_FOUND, message)
        return cls(ErrorKind.UNEXPECTED, message, status=status)

    def __repr__(self) -> str:
        return f"AppError({self.kind.name}, {self.message!r}, status={self.status})"


def _default_status(kind: ErrorKind) -> int:
    if kind is ErrorKind.FORBIDDEN:
        return STATUS_FORBIDDEN
    if kind is ErrorKind.NOT_FOUND:
        return STATUS_NOT_FOUND
    return STATUS_INTERNAL_ERROR


def throw_error(status: int, message: str) -> NoReturn:
    """Raise an AppError for `status`; handlers pick it up from there."""
    raise AppError.from_status(status, message)


class ActionKind(enum.Enum):
    FLASH_REDIRECT = "flash_redirect"
    RENDER = "render"


@dataclass(frozen=True, slots=True)
class ErrorAction:
    """What the error handler should send back."""

    kind: ActionKind
    status_code: int
    template: str | None = None
    flash: dict[str, str] | None = None
    redirect_to: str | None = None
    expose_error: bool = False


def classify_error(error: AppError, *, production: bool) -> ErrorAction:
    """Map a tagged error to the response action (pure, total)."""
    if error.kind is ErrorKind.FORBIDDEN or (
        error.kind is ErrorKind.NOT_FOUND and error.message != NOT_FOUND_MESSAGE
    ):
        return ErrorAction(
            kind=ActionKind.FLASH_REDIRECT,
            status_code=302,
            flash={"type": "danger", "text": error.message},
            redirect_to=PARENT_PATH,
        )

    if error.kind is ErrorKind.NOT_FOUND:
        return ErrorAction(
            kind=ActionKind.RENDER,
            status_code=STATUS_NOT_FOUND,
            template=NOT_FOUND_TEMPLATE,
        )

    if production:
        return ErrorAction(
            kind=ActionKind.RENDER,
            status_code=STATUS_INTERNAL_ERROR,
            template=SERVER_ERROR_TEMPLATE,
        )

    return ErrorAction(
        kind=ActionKind.RENDER,
        status_code=error.status or STATUS_INTERNAL_ERROR,
        template=DETAILED_ERROR_TEMPLATE,
        expose_error=True,
    )


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(getattr(settings, "production", False))


async def _render_error_page(
    request: Request,
    action: ErrorAction,
    error: AppError,
    *,
    consume_flash: bool = True,
) -> Response:
    extra = {"error": error} if action.expose_error else None
    try:
        return await render_error_response(
            request,
            template_name=action.template or SERVER_ERROR_TEMPLATE,
            status_code=action.status_code,
            extra=extra,
            consume_flash=consume_flash,
        )
    except Exception:
        logger.exception("Error page rendering failed")
        body = error.message if action.expose_error else "Internal Server Error"
        return PlainTextResponse(body, status_code=action.status_code)


async def respond_to_error(request: Request, error: AppError) -> Response:
    """Run the classifier and build the terminal response for `error`."""
    action = classify_error(error, production=_is_production(request))
    if action.kind is ActionKind.FLASH_REDIRECT:
        session = load_session(request)
        flash = action.flash or {}
        session.flash(flash.get("text", ""), flash.get("type", "danger"))
        return RedirectResponse(
            url=action.redirect_to or PARENT_PATH,
            status_code=action.status_code,
        )
    return await _render_error_page(request, action, error)


async def _app_error_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, AppError):
        exc = AppError(ErrorKind.UNEXPECTED, str(exc))
    logger.error("Request failed: %r", exc, exc_info=exc)
    return await respond_to_error(request, exc)


async def _http_exception_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, StarletteHTTPException):
        return await _unhandled_exception_handler(request, exc)
    error = AppError.from_status(exc.status_code, str(exc.detail))
    logger.error("Request failed: %r", error, exc_info=exc)
    response = await respond_to_error(request, error)
    if exc.headers and not isinstance(response, RedirectResponse):
        response.headers.update(exc.headers)
    return response


async def _model_validation_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, ModelValidationError):
        return await _unhandled_exception_handler(request, exc)
    logger.error("Validation failed: %s", exc)
    session = load_session(request)
    session.flash(format_validation_message(str(exc), exc.schema), "danger")
    return RedirectResponse(url=request.url.path, status_code=302)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    logger.error("Unhandled error: %r", exc, exc_info=exc)
    error = AppError(ErrorKind.UNEXPECTED, f"{type(exc).__name__}: {exc}")
    action = classify_error(error, production=_is_production(request))
    # Runs outside the session middleware; a consumed flash would not be saved.
    response = await _render_error_page(request, action, error, consume_flash=False)
    policy = getattr(request.app.state, "security_policy", None)
    if not isinstance(policy, SecurityHeaderPolicy):
        policy = SecurityHeaderPolicy()
    return apply_security_headers(response, policy)


def install_error_handlers(app: FastAPI) -> None:
    """Register the exception handlers; they are the terminal request stage."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(ModelValidationError, _model_validation_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)


__all__ = [
    "ActionKind",
    "AppError",
    "ErrorAction",
    "ErrorKind",
    "classify_error",
    "install_error_handlers",
    "respond_to_error",
    "throw_error",
]
