"""Tests for the /translate endpoint.

The proxy fetch and the per-unit translation call are replaced with
lightweight mocks so the tests run without internet access.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from quadra.main import app
from quadra.models.language import SUPPORTED_LANGUAGES, LanguageCode
from quadra.services.errors import NetworkError, ProxyError, TranslationError

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Clear the slowapi in-memory counter before every test."""
    app.state.limiter._storage.reset()
    yield


# ---------------------------------------------------------------------------
# Shared HTML fixtures
# ---------------------------------------------------------------------------

_PAGE_HTML = """
<!DOCTYPE html>
<html>
<head>
  <title>Example</title>
  <link rel="stylesheet" href="/css/site.css">
  <script src="/js/app.js"></script>
</head>
<body>
  <h1>Welcome</h1>
  <p>Hello</p>
  <script>trackVisitor();</script>
  <img src="images/logo.png" alt="logo">
  <a href="/about">About us</a>
</body>
</html>
"""

_TRANSLATIONS = {"Welcome": "Bienvenido", "Hello": "Hola", "About us": "Sobre nosotros"}


def _fake_translate(text, target_language, *, client=None):
    return _TRANSLATIONS.get(text, text)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _post(url: str = "https://example.com/blog/post", **kwargs):
    """POST to /translate with sensible defaults."""
    payload = {"url": url, "target_language": "es", **kwargs}
    return client.post("/translate", json=payload)


class TestTranslateSuccess:
    def test_translates_page(self):
        with (
            patch("quadra.services.pipeline.fetch_page", new=AsyncMock(return_value=_PAGE_HTML)),
            patch(
                "quadra.services.pipeline.translate_text",
                new=AsyncMock(side_effect=_fake_translate),
            ),
        ):
            resp = _post()

        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "done"
        assert data["target_language"] == "es"
        assert "<h1>Bienvenido</h1>" in data["html"]
        assert "<p>Hola</p>" in data["html"]
        assert "trackVisitor" not in data["html"]
        assert "<script" not in data["html"]
        assert 'src="https://example.com/blog/images/logo.png"' in data["html"]
        assert 'href="https://example.com/about"' in data["html"]
        assert data["units_total"] == 3
        assert data["units_translated"] == 3
        assert data["units_failed"] == 0

    def test_partial_failure_is_reported(self):
        def flaky(text, target_language, *, client=None):
            if text == "Hello":
                raise TranslationError("endpoint unavailable")
            return _fake_translate(text, target_language)

        with (
            patch("quadra.services.pipeline.fetch_page", new=AsyncMock(return_value=_PAGE_HTML)),
            patch("quadra.services.pipeline.translate_text", new=AsyncMock(side_effect=flaky)),
        ):
            resp = _post()

        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "done"
        assert "<p>Hello</p>" in data["html"]
        assert "<h1>Bienvenido</h1>" in data["html"]
        assert data["units_failed"] == 1
        assert data["failed_texts"] == ["Hello"]

    def test_language_defaults_to_spanish(self):
        translate = AsyncMock(side_effect=_fake_translate)
        with (
            patch("quadra.services.pipeline.fetch_page", new=AsyncMock(return_value=_PAGE_HTML)),
            patch("quadra.services.pipeline.translate_text", new=translate),
        ):
            resp = client.post("/translate", json={"url": "https://example.com"})

        assert resp.status_code == 200
        assert resp.json()["target_language"] == "es"
        assert all(call.args[1] == "es" for call in translate.call_args_list)


class TestTranslateValidation:
    def test_invalid_url_returns_422(self):
        """Pydantic validates HttpUrl so a bad URL is rejected before the handler."""
        resp = _post(url="not-a-url")
        assert resp.status_code == 422

    def test_unsupported_language_returns_422(self):
        resp = _post(target_language="xx")
        assert resp.status_code == 422

    @pytest.mark.parametrize("code", sorted(SUPPORTED_LANGUAGES))
    def test_every_supported_language_is_accepted(self, code):
        with (
            patch("quadra.services.pipeline.fetch_page", new=AsyncMock(return_value=_PAGE_HTML)),
            patch(
                "quadra.services.pipeline.translate_text",
                new=AsyncMock(side_effect=_fake_translate),
            ),
        ):
            resp = _post(target_language=code)
        assert resp.status_code == 200

    def test_language_literal_matches_language_names(self):
        from typing import get_args

        assert set(get_args(LanguageCode)) == set(SUPPORTED_LANGUAGES)

    def test_language_names_are_documented(self):
        schema = client.get("/openapi.json").json()
        description = schema["components"]["schemas"]["TranslateRequest"]["properties"][
            "target_language"
        ]["description"]
        assert "`ta` (Tamil)" in description
        assert "`es` (Spanish)" in description


class TestTranslateErrorHandling:
    def test_proxy_500_returns_502_with_status(self):
        with (
            patch(
                "quadra.services.pipeline.fetch_page",
                new=AsyncMock(side_effect=NetworkError("Proxy returned HTTP 500.", status_code=500)),
            ),
            patch(
                "quadra.services.pipeline.translate_text",
                new=AsyncMock(side_effect=AssertionError("translation must not be called")),
            ),
        ):
            resp = _post()

        assert resp.status_code == 502
        assert "500" in resp.json()["detail"]

    def test_proxy_error_returns_502(self):
        with patch(
            "quadra.services.pipeline.fetch_page",
            new=AsyncMock(side_effect=ProxyError("Proxy returned an empty body.")),
        ):
            resp = _post()

        assert resp.status_code == 502

    def test_unknown_error_returns_500_with_message(self):
        with patch(
            "quadra.services.pipeline.fetch_page",
            new=AsyncMock(side_effect=KeyError("weird")),
        ):
            resp = _post()

        assert resp.status_code == 500
        assert "weird" in resp.json()["detail"]


class TestHealthCheck:
    def test_root(self):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Hello from Quadra Translate"}
