"""Snippetbox web server.

The ASGI application factory lives in `snippetbox.app`.
"""
