from typing import Optional
from urllib.parse import urlparse

import httpx

from quadra.config import get_settings
from quadra.services.errors import NetworkError, ProxyError, ValidationError

ALLOWED_SCHEMES = {"http", "https"}


def validate_url(url: str) -> None:
    """Raise ValidationError if *url* is empty or not an absolute http(s) URL."""
    if not url or not url.strip():
        raise ValidationError("Please enter a valid URL.")

    parsed = urlparse(url.strip())

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValidationError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not parsed.hostname:
        raise ValidationError("URL must have a valid hostname.")


def _is_textual(content_type: str) -> bool:
    """Return True when a Content-Type header can carry HTML text."""
    if not content_type:
        return True
    media_type = content_type.split(";")[0].strip().lower()
    return media_type.startswith("text/") or "html" in media_type or "xml" in media_type


async def fetch_page(url: str, *, client: Optional[httpx.AsyncClient] = None) -> str:
    """Fetch *url* through the configured CORS proxy and return the page HTML.

    The target URL travels as the ``url`` query parameter of a single GET to
    ``Settings.proxy_url``.  Pass *client* to reuse a connection pool; a
    short-lived client is created otherwise.

    Raises:
        ValidationError: if *url* is empty or not an absolute http(s) URL.
        NetworkError: on transport errors or a non-success proxy status.
        ProxyError: if the proxy body is not usable HTML text.
    """
    validate_url(url)
    url = url.strip()

    if client is not None:
        return await _fetch_via_proxy(client, url)

    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.request_timeout, follow_redirects=True) as own_client:
        return await _fetch_via_proxy(own_client, url)


async def _fetch_via_proxy(client: httpx.AsyncClient, url: str) -> str:
    settings = get_settings()
    max_size = settings.max_content_size

    try:
        async with client.stream("GET", settings.proxy_url, params={"url": url}) as response:
            if not response.is_success:
                raise NetworkError(
                    f"Proxy returned HTTP {response.status_code} for {url}.",
                    status_code=response.status_code,
                )

            content_type = response.headers.get("content-type", "")
            if not _is_textual(content_type):
                raise ProxyError(f"Proxy returned non-HTML content ({content_type}).")

            content_length = response.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > max_size:
                raise ProxyError("Response body exceeds the maximum allowed size.")

            chunks = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > max_size:
                    raise ProxyError("Response body exceeds the maximum allowed size.")
                chunks.append(chunk)

            encoding = response.encoding or "utf-8"
    except httpx.TimeoutException as exc:
        raise NetworkError(f"Timed out fetching {url} through the proxy.") from exc
    except httpx.HTTPError as exc:
        raise NetworkError(f"Proxy request failed for {url}: {exc}") from exc

    try:
        html = b"".join(chunks).decode(encoding, errors="replace")
    except LookupError as exc:
        raise ProxyError(f"Proxy returned an unknown charset '{encoding}'.") from exc

    if not html.strip():
        raise ProxyError("Proxy returned an empty body.")

    return html
