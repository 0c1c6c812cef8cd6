"""CSRF token issuance and validation.

We keep CSRF logic centralized so every state-changing request behaves the
same way. The issuer runs on every request before routing and hands a fresh
token to the template layer through `request.state.csrf_token`. The validator
checks POST/PUT/DELETE requests against the token held in the `XSRF-TOKEN`
cookie the browser sent with the request.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Final

from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import HTTPConnection, Request
from starlette.responses import PlainTextResponse

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.datastructures import FormData
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME: Final[str] = "XSRF-TOKEN"
CSRF_FORM_FIELD: Final[str] = "_csrf"
CSRF_HEADER_NAME: Final[str] = "x-csrf-token"
CSRF_TOKEN_BYTES: Final[int] = 32
CSRF_FAILURE_STATUS: Final[int] = 404
CSRF_FAILURE_BODY: Final[str] = "Invalid CSRF token"
PROTECTED_METHODS: Final[frozenset[str]] = frozenset({"POST", "PUT", "DELETE"})
_FORM_CONTENT_TYPES: Final[tuple[str, ...]] = (
    "application/x-www-form-urlencoded",
    "multipart/form-data",
)


def generate_csrf_token() -> str:
    """Return 32 random bytes as a 64-character hex string."""
    return secrets.token_hex(CSRF_TOKEN_BYTES)


def csrf_cookie_header(token: str, *, secure: bool, path: str = "/") -> str:
    """Build the `Set-Cookie` value carrying the CSRF token."""
    attrs = [f"{CSRF_COOKIE_NAME}={token}", f"Path={path}", "HttpOnly"]
    if secure:
        attrs.append("Secure")
    attrs.append("SameSite=Strict")
    return "; ".join(attrs)


def issue_csrf_token(scope: Scope) -> str:
    """Generate a token and expose it to templates via `request.state`."""
    token = generate_csrf_token()
    scope.setdefault("state", {})["csrf_token"] = token
    return token


def csrf_token_from_form(form: FormData) -> str | None:
    """Extract a CSRF token from a form payload, if present."""
    token = form.get(CSRF_FORM_FIELD)
    return token if isinstance(token, str) else None


def submitted_csrf_token(
    *,
    form_token: str | None,
    headers: Mapping[str, str],
    cookie_token: str | None,
    allow_cookie_fallback: bool = True,
) -> str | None:
    """Pick the candidate token: form field, then header, then the cookie."""
    if form_token:
        return form_token
    header_token = headers.get(CSRF_HEADER_NAME)
    if header_token:
        return header_token
    if allow_cookie_fallback:
        return cookie_token
    return None


def csrf_is_valid(candidate: str | None, cookie_token: str | None) -> bool:
    """Return True only if both tokens are present and byte-equal."""
    if not candidate or not cookie_token:
        return False
    return secrets.compare_digest(
        candidate.encode("utf-8"),
        cookie_token.encode("utf-8"),
    )


class CsrfIssueMiddleware:
    """Issue a fresh CSRF token on every HTTP request."""

    def __init__(self, app: ASGIApp, *, secure: bool = False) -> None:
        """Store the downstream ASGI app and the cookie `Secure` flag."""
        self.app = app
        self.secure = secure

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Expose the token before routing and attach the cookie on response."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        token = issue_csrf_token(scope)

        async def send_with_cookie(message: Message) -> None:
            if message.get("type") == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.append(
                    "Set-Cookie",
                    csrf_cookie_header(token, secure=self.secure),
                )
            await send(message)

        await self.app(scope, receive, send_with_cookie)


async def _read_body(receive: Receive) -> bytes:
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class CsrfValidateMiddleware:
    """Reject POST/PUT/DELETE requests whose token does not match the cookie."""

    def __init__(self, app: ASGIApp, *, allow_cookie_fallback: bool = True) -> None:
        """Store the downstream ASGI app and the fallback policy."""
        self.app = app
        self.allow_cookie_fallback = allow_cookie_fallback

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Validate the submitted token and pass through or respond 404."""
        if scope.get("type") != "http" or scope["method"] not in PROTECTED_METHODS:
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        cookie_token = connection.cookies.get(CSRF_COOKIE_NAME)

        form_token = None
        content_type = connection.headers.get("content-type", "")
        if content_type.startswith(_FORM_CONTENT_TYPES):
            body = await _read_body(receive)
            request = Request(scope, receive=_replay_receive(body, receive))
            try:
                async with request.form() as form:
                    form_token = csrf_token_from_form(form)
            except (HTTPException, MultiPartException):
                logger.info(
                    "Unparseable form body: %s %s",
                    scope["method"],
                    scope.get("path", ""),
                )
            receive = _replay_receive(body, receive)

        candidate = submitted_csrf_token(
            form_token=form_token,
            headers=connection.headers,
            cookie_token=cookie_token,
            allow_cookie_fallback=self.allow_cookie_fallback,
        )
        if not csrf_is_valid(candidate, cookie_token):
            logger.warning(
                "CSRF token validation failed: %s %s",
                scope["method"],
                scope.get("path", ""),
            )
            response = PlainTextResponse(
                CSRF_FAILURE_BODY,
                status_code=CSRF_FAILURE_STATUS,
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


__all__ = [
    "CSRF_COOKIE_NAME",
    "CSRF_FAILURE_BODY",
    "CSRF_FAILURE_STATUS",
    "CSRF_FORM_FIELD",
    "CsrfIssueMiddleware",
    "CsrfValidateMiddleware",
    "csrf_cookie_header",
    "csrf_is_valid",
    "csrf_token_from_form",
    "generate_csrf_token",
    "issue_csrf_token",
    "submitted_csrf_token",
]
