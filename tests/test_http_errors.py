# ruff: noqa: ANN201, ANN206, D100, D101, D102, E501, INP001, PLC0415, PT009

import typing
import unittest

import test_support

from snippetbox.http.errors import (
    ActionKind,
    AppError,
    ErrorKind,
    classify_error,
    throw_error,
)


class TestClassifyError(unittest.TestCase):
    def test_forbidden_flashes_and_redirects(self):
        action = classify_error(AppError.from_status(403, "nope"), production=False)
        self.assertEqual(action.kind, ActionKind.FLASH_REDIRECT)
        self.assertEqual(action.flash, {"type": "danger", "text": "nope"})
        self.assertEqual(action.redirect_to, "../")
        self.assertEqual(action.status_code, 302)

    def test_generic_not_found_renders_404(self):
        action = classify_error(AppError.from_status(404, "Not Found"), production=True)
        self.assertEqual(action.kind, ActionKind.RENDER)
        self.assertEqual(action.template, "errors/404.html.j2")
        self.assertEqual(action.status_code, 404)
        self.assertIsNone(action.flash)

    def test_specific_not_found_flashes_and_redirects(self):
        action = classify_error(
            AppError.from_status(404, "Snippet does not exist"),
            production=False,
        )
        self.assertEqual(action.kind, ActionKind.FLASH_REDIRECT)
        self.assertEqual(action.flash, {"type": "danger", "text": "Snippet does not exist"})
        self.assertEqual(action.redirect_to, "../")

    def test_unexpected_in_production_hides_details(self):
        action = classify_error(AppError.from_status(500, "boom"), production=True)
        self.assertEqual(action.template, "errors/500.html.j2")
        self.assertEqual(action.status_code, 500)
        self.assertFalse(action.expose_error)

        action = classify_error(AppError.from_status(418, "teapot"), production=True)
        self.assertEqual(action.status_code, 500)

    def test_unexpected_in_development_shows_details(self):
        action = classify_error(AppError.from_status(418, "teapot"), production=False)
        self.assertEqual(action.template, "errors/error.html.j2")
        self.assertEqual(action.status_code, 418)
        self.assertTrue(action.expose_error)

    def test_from_status_tags_kind(self):
        self.assertIs(AppError.from_status(403, "x").kind, ErrorKind.FORBIDDEN)
        self.assertIs(AppError.from_status(404, "x").kind, ErrorKind.NOT_FOUND)
        error = AppError.from_status(400, "x")
        self.assertIs(error.kind, ErrorKind.UNEXPECTED)
        self.assertEqual(error.status, 400)
        self.assertEqual(AppError(ErrorKind.UNEXPECTED, "x").status, 500)

    def test_throw_error_is_annotated_as_never_returning(self):
        hints = typing.get_type_hints(throw_error)
        self.assertIs(hints["return"], typing.NoReturn)

    def test_throw_error_raises_tagged_error(self):
        with self.assertRaises(AppError) as ctx:
            throw_error(403, "nope")
        self.assertIs(ctx.exception.kind, ErrorKind.FORBIDDEN)
        self.assertEqual(ctx.exception.message, "nope")


class TestErrorHandlers(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.FastAPI, cls.TestClient = test_support.require_fastapi()

    def _client(self, *, production=False):
        from starlette.exceptions import HTTPException

        from snippetbox.models import USER_SCHEMA, validate_document

        app = test_support.build_test_app(production=production)

        @app.get("/snippets/forbidden")
        async def _forbidden():
            throw_error(403, "nope")

        @app.get("/snippets/missing")
        async def _missing():
            raise HTTPException(status_code=404, detail="Snippet does not exist")

        @app.get("/snippets/boom")
        async def _boom():
            raise RuntimeError("secret detail")

        @app.get("/snippets/teapot")
        async def _teapot():
            throw_error(418, "short and stout")

        @app.get("/signup")
        async def _signup():
            validate_document(USER_SCHEMA, {"username": "x" * 25, "password": "longenough1"})

        return test_support.make_test_client(app)

    def test_forbidden_redirects_with_flash_shown_once(self):
        client = self._client()
        response = client.get("/snippets/forbidden", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "../")

        page = client.get("/")
        self.assertIn("flash-danger", page.text)
        self.assertIn("nope", page.text)

        page = client.get("/")
        self.assertNotIn("nope", page.text)

    def test_specific_not_found_redirects_with_flash(self):
        client = self._client()
        response = client.get("/snippets/missing", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        page = client.get("/")
        self.assertIn("Snippet does not exist", page.text)

    def test_unknown_route_renders_404_page(self):
        client = self._client()
        response = client.get("/this-route-does-not-exist", follow_redirects=False)
        self.assertEqual(response.status_code, 404)
        self.assertTrue(response.headers["content-type"].startswith("text/html"))
        self.assertIn("404 Not Found", response.text)
        self.assertNotIn("flash-danger", response.text)

    def test_production_500_does_not_leak_message(self):
        client = self._client(production=True)
        with self.assertLogs("snippetbox.http.errors", level="ERROR") as logs:
            response = client.get("/snippets/boom")
        self.assertEqual(response.status_code, 500)
        self.assertIn("500 Internal Server Error", response.text)
        self.assertNotIn("secret detail", response.text)
        self.assertIn("secret detail", "\n".join(logs.output))

    def test_development_500_shows_error(self):
        client = self._client()
        response = client.get("/snippets/boom")
        self.assertEqual(response.status_code, 500)
        self.assertIn("RuntimeError: secret detail", response.text)

    def test_500_page_leaves_pending_flash_for_next_page(self):
        from snippetbox.http.cookie_session import SESSION_COOKIE_NAME

        client = self._client()
        client.cookies.set(
            SESSION_COOKIE_NAME,
            test_support.signed_session_cookie(
                {"flash": {"type": "info", "text": "Snippet saved"}},
            ),
        )
        response = client.get("/snippets/boom")
        self.assertEqual(response.status_code, 500)
        self.assertNotIn("Snippet saved", response.text)

        page = client.get("/")
        self.assertIn("Snippet saved", page.text)

    def test_development_keeps_original_status(self):
        client = self._client()
        response = client.get("/snippets/teapot")
        self.assertEqual(response.status_code, 418)
        self.assertIn("short and stout", response.text)

    def test_production_maps_other_status_to_500(self):
        client = self._client(production=True)
        response = client.get("/snippets/teapot")
        self.assertEqual(response.status_code, 500)
        self.assertNotIn("short and stout", response.text)

    def test_validation_error_flashes_formatted_message(self):
        client = self._client()
        response = client.get("/signup", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "/signup")

        page = client.get("/")
        self.assertIn(
            "Username: is longer than the maximum allowed length (20).",
            page.text,
        )


if __name__ == "__main__":
    unittest.main()
