"""Unified template renderer for Jinja2."""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Protocol, cast

from snippetbox.http import jinja as jinja_renderer

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.templating import Jinja2Templates


@cache
def _jinja_templates(templates_dir: Path | None) -> Jinja2Templates:
    return jinja_renderer.default_templates(templates_dir)


class _TemplateDebugResponse(Protocol):
    template_name: str
    context_data: dict[str, object]


def _templates_dir_for(request: Request) -> Path | None:
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "templates_dir", None)


def render_template_to_response(
    *,
    request: Request,
    template_name: str,
    context: Mapping[str, object],
    status_code: int = 200,
) -> Response:
    """Render a template and return a TemplateResponse with debug metadata."""
    response = jinja_renderer.render_template_response(
        templates=_jinja_templates(_templates_dir_for(request)),
        request=request,
        template_name=template_name,
        context=context,
        options=jinja_renderer.TemplateResponseOptions(status_code=status_code),
    )
    # Attach debug-friendly attributes without clobbering Starlette's
    # native TemplateResponse fields (.template and .context).
    debug_response = cast("_TemplateDebugResponse", response)
    debug_response.template_name = template_name
    debug_response.context_data = dict(context)
    return response
