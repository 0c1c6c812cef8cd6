# ruff: noqa: ANN201, ANN206, D100, D101, D102, INP001, PLC0415, PT009, PT027, SLF001

import unittest

import itsdangerous
import test_support
from vtjson import ValidationError

from snippetbox.http.cookie_session import (
    SESSION_COOKIE_NAME,
    CookieSession,
    authenticated_user_from_data,
    is_valid_flash,
)
from snippetbox.http.session_middleware import (
    _cookie_size_ok,
    _encode_cookie_value,
    _enforce_size_limit,
)


class TestCookieSession(unittest.TestCase):
    def test_flash_is_consumed_once(self):
        session = CookieSession(data={})
        session.flash("Snippet does not exist")
        self.assertEqual(
            session.peek_flash(),
            {"type": "danger", "text": "Snippet does not exist"},
        )
        self.assertEqual(
            session.pop_flash(),
            {"type": "danger", "text": "Snippet does not exist"},
        )
        self.assertIsNone(session.pop_flash())

    def test_new_flash_replaces_unread_one(self):
        session = CookieSession(data={})
        session.flash("first", "info")
        session.flash("second", "success")
        self.assertEqual(session.pop_flash(), {"type": "success", "text": "second"})

    def test_unknown_flash_type_is_rejected(self):
        session = CookieSession(data={})
        with self.assertRaises(ValidationError):
            session.flash("text", "shout")
        self.assertNotIn("flash", session.data)

    def test_malformed_stored_flash_is_ignored(self):
        session = CookieSession(data={"flash": ["danger", "text"]})
        self.assertIsNone(session.pop_flash())
        self.assertFalse(is_valid_flash({"type": "danger"}))

    def test_authenticated_user(self):
        self.assertEqual(authenticated_user_from_data({"user": "alice"}), "alice")
        self.assertIsNone(authenticated_user_from_data({"user": ""}))
        self.assertIsNone(authenticated_user_from_data({}))


class TestSessionCookieSize(unittest.TestCase):
    def setUp(self):
        self.signer = itsdangerous.TimestampSigner(test_support.TEST_SECRET)

    def test_small_session_is_kept(self):
        payload = {"user": "alice", "flash": {"type": "info", "text": "hi"}}
        self.assertEqual(_enforce_size_limit(payload, self.signer), payload)

    def test_oversized_flash_is_dropped_first(self):
        payload = {
            "user": "alice",
            "created_at": "2024-01-01T00:00:00+00:00",
            "flash": {"type": "danger", "text": "x" * 5000},
        }
        trimmed = _enforce_size_limit(payload, self.signer)
        self.assertNotIn("flash", trimmed)
        self.assertEqual(trimmed["user"], "alice")
        self.assertTrue(_cookie_size_ok(_encode_cookie_value(trimmed, self.signer)))

    def test_oversized_session_keeps_identity_only(self):
        payload = {"user": "alice", "extra": "y" * 5000}
        self.assertEqual(_enforce_size_limit(payload, self.signer), {"user": "alice"})


class TestSessionMiddleware(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.FastAPI, cls.TestClient = test_support.require_fastapi()

    def _client(self):
        from fastapi import Request

        from snippetbox.http.cookie_session import load_session

        app = test_support.build_test_app()

        @app.get("/whoami")
        async def _whoami(request: Request):
            session = load_session(request)
            return {"user": session.data.get("user")}

        return test_support.make_test_client(app)

    def test_signed_cookie_is_loaded(self):
        client = self._client()
        client.cookies.set(
            SESSION_COOKIE_NAME,
            test_support.signed_session_cookie({"user": "alice"}),
        )
        response = client.get("/whoami")
        self.assertEqual(response.json(), {"user": "alice"})

    def test_tampered_cookie_is_ignored(self):
        client = self._client()
        client.cookies.set(
            SESSION_COOKIE_NAME,
            test_support.signed_session_cookie({"user": "alice"}, "other-secret"),
        )
        response = client.get("/whoami")
        self.assertEqual(response.json(), {"user": None})

    def test_page_shows_logged_in_user(self):
        client = self._client()
        client.cookies.set(
            SESSION_COOKIE_NAME,
            test_support.signed_session_cookie({"user": "alice"}),
        )
        response = client.get("/")
        self.assertIn("alice", response.text)


if __name__ == "__main__":
    unittest.main()
