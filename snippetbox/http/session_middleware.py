"""Signed cookie session middleware.

This is a small wrapper around Starlette's session middleware behavior:
- Uses `itsdangerous.TimestampSigner` for signing.
- Persists a JSON-encoded session dict.
- Keeps the cookie under the browser size limit by dropping the flash first.
"""

from __future__ import annotations

import json
from base64 import b64decode, b64encode
from typing import TYPE_CHECKING, Literal

import itsdangerous
from itsdangerous.exc import BadSignature
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection

from snippetbox.http.cookie_session import (
    DEFAULT_SAMESITE,
    FLASH_KEY,
    MAX_COOKIE_BYTES,
    SESSION_COOKIE_NAME,
)

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send


class SnippetboxSessionMiddleware:
    """Session middleware backed by a signed, JSON-encoded cookie."""

    def __init__(  # noqa: PLR0913
        self,
        app: ASGIApp,
        *,
        secret_key: str,
        session_cookie: str = SESSION_COOKIE_NAME,
        max_age: int | None = None,
        path: str = "/",
        same_site: Literal["lax", "strict", "none"] = DEFAULT_SAMESITE,
        https_only: bool = False,
    ) -> None:
        """Initialize the session middleware wrapper."""
        self.app = app
        self.signer = itsdangerous.TimestampSigner(str(secret_key))
        self.session_cookie = session_cookie
        self.max_age = max_age
        self.path = path
        self.same_site = same_site
        self.https_only = https_only

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Load and persist session data for HTTP scopes."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        initial_session_was_empty = True

        session: object = {}
        if self.session_cookie in connection.cookies:
            raw = connection.cookies[self.session_cookie].encode("utf-8")
            try:
                unsigned = self.signer.unsign(raw, max_age=self.max_age)
                session = json.loads(b64decode(unsigned))
                initial_session_was_empty = False
            except (BadSignature, ValueError, TypeError):
                session = {}

        if not isinstance(session, dict):
            session = {}

        scope["session"] = session

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                session_data = scope.get("session") or {}
                headers = MutableHeaders(scope=message)

                if session_data:
                    session_data = _enforce_size_limit(session_data, self.signer)
                    scope["session"] = session_data
                    headers.append(
                        "Set-Cookie",
                        _build_cookie_header(
                            name=self.session_cookie,
                            value=_encode_cookie_value(session_data, self.signer),
                            max_age=self.max_age,
                            path=self.path,
                            secure=self.https_only,
                            same_site=self.same_site,
                        ),
                    )
                elif not initial_session_was_empty:
                    headers.append(
                        "Set-Cookie",
                        _delete_cookie_header(
                            name=self.session_cookie,
                            path=self.path,
                            secure=self.https_only,
                            same_site=self.same_site,
                        ),
                    )

            await send(message)

        await self.app(scope, receive, send_wrapper)


def _cookie_flags(*, secure: bool, same_site: str) -> list[str]:
    flags = ["httponly", f"samesite={same_site}"]
    if secure:
        flags.append("secure")
    return flags


def _build_cookie_header(  # noqa: PLR0913
    *,
    name: str,
    value: str,
    max_age: int | None,
    path: str,
    secure: bool,
    same_site: str,
) -> str:
    attrs = [f"{name}={value}", f"path={path}"]
    if max_age is not None:
        attrs.append(f"Max-Age={max_age}")
    attrs.extend(_cookie_flags(secure=secure, same_site=same_site))
    return "; ".join(attrs)


def _delete_cookie_header(
    *,
    name: str,
    path: str,
    secure: bool,
    same_site: str,
) -> str:
    attrs = [
        f"{name}=null",
        f"path={path}",
        "Max-Age=0",
        "Expires=Thu, 01 Jan 1970 00:00:00 GMT",
        *_cookie_flags(secure=secure, same_site=same_site),
    ]
    return "; ".join(attrs)


def _encode_cookie_value(
    payload: dict[str, object],
    signer: itsdangerous.TimestampSigner,
) -> str:
    data = b64encode(json.dumps(payload).encode("utf-8"))
    signed = signer.sign(data)
    return signed.decode("utf-8")


def _cookie_size_ok(value: str) -> bool:
    return len(value.encode("utf-8")) <= MAX_COOKIE_BYTES


def _enforce_size_limit(
    payload: dict[str, object],
    signer: itsdangerous.TimestampSigner,
) -> dict[str, object]:
    candidate = dict(payload)
    if _cookie_size_ok(_encode_cookie_value(candidate, signer)):
        return candidate

    candidate.pop(FLASH_KEY, None)
    if _cookie_size_ok(_encode_cookie_value(candidate, signer)):
        return candidate

    minimal: dict[str, object] = {}
    for key in ("user", "created_at"):
        if key in candidate:
            minimal[key] = candidate[key]
    return minimal
