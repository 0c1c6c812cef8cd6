"""Jinja2 template rendering helpers for the FastAPI UI."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Final

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from starlette.templating import Jinja2Templates

from snippetbox.http.settings import default_static_dir, default_templates_dir

if TYPE_CHECKING:
    from collections.abc import Mapping

    from starlette.requests import Request
    from starlette.responses import Response

_MISSING_REQUEST_ERROR: Final[str] = "context must include Request under 'request'"
_DEFAULT_STATIC_DIR: Path = default_static_dir()
_STATIC_URL_PARAM: Final[str] = "x"
_STATIC_TOKEN_CACHE_MAX: int = 1024


@lru_cache(maxsize=_STATIC_TOKEN_CACHE_MAX)
def _static_file_token(static_dir: Path, rel_path: str) -> str | None:
    """Return a cache-buster token for a file under `static_dir`."""
    rel_path = rel_path.replace("\\", "/")
    rel_obj = Path(rel_path)
    if rel_obj.is_absolute() or ".." in rel_obj.parts:
        return None

    file_path = (static_dir / rel_path).resolve()
    try:
        file_path.relative_to(static_dir.resolve())
    except ValueError:
        return None
    try:
        content = file_path.read_bytes()
    except OSError:
        return None

    return (
        base64.urlsafe_b64encode(hashlib.sha384(content).digest())
        .decode("utf-8")
        .rstrip("=")
    )


def static_url(rel_path: str, static_dir: Path | None = None) -> str:
    """Map a static asset path to the `/static` mount with a cache buster."""
    rel_path = rel_path.lstrip("/")
    url = "/static/" + rel_path
    token = _static_file_token(static_dir or _DEFAULT_STATIC_DIR, rel_path)
    if token is None:
        return url
    return f"{url}?{_STATIC_URL_PARAM}={token}"


def default_environment(templates_dir: Path | None = None) -> Environment:
    """Return a Jinja2 environment bound to the templates directory."""
    directory = templates_dir or default_templates_dir()
    env = Environment(
        loader=FileSystemLoader(str(directory)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
        undefined=StrictUndefined,
    )
    env.globals.update({"static_url": static_url})
    return env


def default_templates(templates_dir: Path | None = None) -> Jinja2Templates:
    """Return a Starlette Jinja2Templates instance with the custom environment."""
    return Jinja2Templates(env=default_environment(templates_dir))


@dataclass(frozen=True)
class TemplateResponseOptions:
    """Options for building a Jinja2 template response."""

    status_code: int = 200
    headers: Mapping[str, str] | None = None
    media_type: str | None = None


def render_template_response(
    *,
    templates: Jinja2Templates,
    request: Request,
    template_name: str,
    context: Mapping[str, object],
    options: TemplateResponseOptions | None = None,
) -> Response:
    """Render a template and return a Starlette TemplateResponse."""
    opts = options or TemplateResponseOptions()
    context_dict = dict(context)
    if "request" not in context_dict:
        raise ValueError(_MISSING_REQUEST_ERROR)
    return templates.TemplateResponse(
        request=request,
        name=template_name,
        context=context_dict,
        status_code=opts.status_code,
        headers=opts.headers,
        media_type=opts.media_type,
    )
