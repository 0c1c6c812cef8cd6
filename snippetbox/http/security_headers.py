"""Security header policy and the middleware that applies it.

Ownership: the response headers every page carries (CSP, cross-origin
isolation, referrer policy and the usual hardening headers).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from starlette.datastructures import MutableHeaders

if TYPE_CHECKING:
    from starlette.responses import Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

SELF: Final[str] = "'self'"
NONE: Final[str] = "'none'"
HSTS_MAX_AGE_SECONDS: Final[int] = 60 * 60 * 24 * 365


def _default_csp_directives() -> dict[str, tuple[str, ...]]:
    return {
        "default-src": (SELF,),
        "base-uri": (SELF,),
        "font-src": (SELF, "https:", "data:"),
        "form-action": (SELF,),
        "frame-ancestors": (SELF,),
        "script-src": (SELF,),
        "script-src-attr": (NONE,),
        "style-src": (SELF,),
        "img-src": (SELF, "data:", "https:"),
        "object-src": (NONE,),
        "upgrade-insecure-requests": (),
    }


@dataclass(frozen=True, slots=True)
class SecurityHeaderPolicy:
    """Static description of the security headers set on every response."""

    csp_directives: dict[str, tuple[str, ...]] = field(
        default_factory=_default_csp_directives,
    )
    cross_origin_embedder_policy: str = "require-corp"
    cross_origin_opener_policy: str = "same-origin"
    cross_origin_resource_policy: str = "same-site"
    referrer_policy: str = "no-referrer"
    hsts: bool = True

    def content_security_policy(self) -> str:
        """Serialize the CSP directives into a header value."""
        parts = []
        for directive, sources in self.csp_directives.items():
            parts.append(" ".join((directive, *sources)))
        return "; ".join(parts)

    def headers(self) -> list[tuple[str, str]]:
        """Return the (name, value) pairs in the order they are applied."""
        headers = [
            ("Content-Security-Policy", self.content_security_policy()),
            ("Cross-Origin-Embedder-Policy", self.cross_origin_embedder_policy),
            ("Cross-Origin-Opener-Policy", self.cross_origin_opener_policy),
            ("Cross-Origin-Resource-Policy", self.cross_origin_resource_policy),
            ("Origin-Agent-Cluster", "?1"),
            ("Referrer-Policy", self.referrer_policy),
            ("X-Content-Type-Options", "nosniff"),
            ("X-DNS-Prefetch-Control", "off"),
            ("X-Download-Options", "noopen"),
            ("X-Frame-Options", "SAMEORIGIN"),
            ("X-Permitted-Cross-Domain-Policies", "none"),
            ("X-XSS-Protection", "0"),
        ]
        if self.hsts:
            headers.append(
                (
                    "Strict-Transport-Security",
                    f"max-age={HSTS_MAX_AGE_SECONDS}; includeSubDomains",
                ),
            )
        return headers


def _set_headers(headers: MutableHeaders, policy: SecurityHeaderPolicy) -> None:
    for name, value in policy.headers():
        headers[name] = value


def apply_security_headers(
    response: Response,
    policy: SecurityHeaderPolicy,
) -> Response:
    """Set the policy headers on an already-built response."""
    _set_headers(response.headers, policy)
    return response


class SecurityHeadersMiddleware:
    """Apply a `SecurityHeaderPolicy` to every HTTP response."""

    def __init__(self, app: ASGIApp, *, policy: SecurityHeaderPolicy) -> None:
        """Store the downstream ASGI app and the policy to apply."""
        self.app = app
        self.policy = policy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Stamp the policy headers onto the response start message."""
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message.get("type") == "http.response.start":
                _set_headers(MutableHeaders(scope=message), self.policy)
            await send(message)

        await self.app(scope, receive, send_with_headers)


__all__ = [
    "SecurityHeaderPolicy",
    "SecurityHeadersMiddleware",
    "apply_security_headers",
]
