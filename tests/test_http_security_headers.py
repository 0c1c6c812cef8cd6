# ruff: noqa: ANN201, ANN206, D100, D101, D102, INP001, PLC0415, PT009

import unittest

import test_support

from snippetbox.http.security_headers import SecurityHeaderPolicy

EXPECTED_CSP_PARTS = (
    "default-src 'self'",
    "script-src 'self'",
    "style-src 'self'",
    "img-src 'self' data: https:",
    "object-src 'none'",
    "upgrade-insecure-requests",
)


class TestSecurityHeaderPolicy(unittest.TestCase):
    def test_default_policy_headers(self):
        headers = dict(SecurityHeaderPolicy().headers())
        csp = headers["Content-Security-Policy"]
        for part in EXPECTED_CSP_PARTS:
            self.assertIn(part, csp)
        self.assertEqual(headers["Referrer-Policy"], "no-referrer")
        self.assertEqual(headers["Cross-Origin-Embedder-Policy"], "require-corp")
        self.assertEqual(headers["Cross-Origin-Resource-Policy"], "same-site")
        self.assertEqual(headers["X-Download-Options"], "noopen")
        self.assertEqual(
            headers["Strict-Transport-Security"],
            "max-age=31536000; includeSubDomains",
        )

    def test_upgrade_directive_has_no_sources(self):
        csp = SecurityHeaderPolicy().content_security_policy()
        directives = [d.strip() for d in csp.split(";")]
        self.assertIn("upgrade-insecure-requests", directives)

    def test_hsts_can_be_switched_off(self):
        headers = dict(SecurityHeaderPolicy(hsts=False).headers())
        self.assertNotIn("Strict-Transport-Security", headers)


class TestSecurityHeadersMiddleware(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.FastAPI, cls.TestClient = test_support.require_fastapi()

    def _assert_policy_headers(self, response):
        csp = response.headers.get("content-security-policy", "")
        for part in EXPECTED_CSP_PARTS:
            self.assertIn(part, csp)
        self.assertEqual(response.headers.get("referrer-policy"), "no-referrer")
        self.assertEqual(response.headers.get("x-content-type-options"), "nosniff")
        self.assertIn("max-age=", response.headers.get("strict-transport-security", ""))

    def test_headers_on_every_route(self):
        app = test_support.build_test_app()

        @app.get("/boom")
        async def _boom():
            raise RuntimeError("boom")

        client = test_support.make_test_client(app)
        self._assert_policy_headers(client.get("/"))
        self._assert_policy_headers(client.get("/no-such-page"))
        self._assert_policy_headers(client.post("/", data={"_csrf": "x"}))
        self._assert_policy_headers(client.get("/boom"))


if __name__ == "__main__":
    unittest.main()
