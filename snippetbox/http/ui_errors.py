"""UI error rendering helpers for FastAPI.

Ownership: render the error templates with the shared template context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.concurrency import run_in_threadpool

from snippetbox.http.boundary import build_template_context
from snippetbox.http.cookie_session import load_session
from snippetbox.http.template_renderer import render_template_to_response

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response


async def render_error_response(
    request: Request,
    *,
    template_name: str,
    status_code: int,
    extra: Mapping[str, object] | None = None,
    consume_flash: bool = True,
) -> Response:
    """Render an error page; the session cookie is committed by the middleware."""
    session = load_session(request)
    context = build_template_context(
        request,
        session,
        extra,
        consume_flash=consume_flash,
    )

    # Template rendering is sync and can be CPU heavy; keep it off the event loop.
    return await run_in_threadpool(
        render_template_to_response,
        request=request,
        template_name=template_name,
        context=context,
        status_code=status_code,
    )
