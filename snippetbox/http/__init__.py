"""FastAPI HTTP layer.

This package contains the FastAPI-specific adapters (security headers, CSRF,
error handling, settings parsing, template/session shims).

The ASGI entrypoint lives in `snippetbox.app`.
"""
