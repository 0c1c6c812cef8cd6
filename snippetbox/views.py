"""Server-rendered UI routes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from snippetbox.http.boundary import build_template_context
from snippetbox.http.cookie_session import load_session
from snippetbox.http.template_renderer import render_template_to_response

router = APIRouter()


@router.get("/", include_in_schema=False)
async def home(request: Request) -> Response:
    session = load_session(request)
    context = build_template_context(request, session)
    return await run_in_threadpool(
        render_template_to_response,
        request=request,
        template_name="home.html.j2",
        context=context,
    )
