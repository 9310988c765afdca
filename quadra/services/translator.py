"""Client for the public machine-translation endpoint (one text unit per call)."""

from typing import Any, NamedTuple, Optional

import httpx

from quadra.config import get_settings
from quadra.services.errors import TranslationError


class TranslationResult(NamedTuple):
    source_text: str
    translated_text: str


def parse_translation_payload(payload: Any) -> str:
    """Join the translated segments of a ``translate_a/single`` response.

    The endpoint answers with nested arrays; ``payload[0]`` holds one entry
    per sentence whose first element is the translated segment.  Every other
    field is ignored.

    Raises:
        TranslationError: if *payload* does not have that shape.
    """
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], list):
        raise TranslationError("Unexpected translation response structure.")

    segments = []
    for entry in payload[0]:
        if not isinstance(entry, list) or not entry:
            raise TranslationError("Unexpected translation segment in response.")
        segment = entry[0]
        if segment is None:
            continue
        if not isinstance(segment, str):
            raise TranslationError("Translated segment is not a string.")
        segments.append(segment)
    return "".join(segments)


async def translate_text(
    text: str,
    target_language: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Translate *text* into *target_language*, auto-detecting the source language.

    Raises:
        TranslationError: on network failure, a non-success status, or an
            unparseable response.
    """
    settings = get_settings()
    params = {
        "client": settings.translate_client,
        "sl": "auto",
        "tl": target_language,
        "dt": "t",
        "q": text,
    }

    if client is None:
        async with httpx.AsyncClient(timeout=settings.request_timeout) as own_client:
            return await _request_translation(own_client, settings.translate_url, params)
    return await _request_translation(client, settings.translate_url, params)


async def _request_translation(client: httpx.AsyncClient, endpoint: str, params: dict) -> str:
    try:
        response = await client.get(endpoint, params=params)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise TranslationError(
            f"Translation endpoint returned HTTP {exc.response.status_code}."
        ) from exc
    except httpx.HTTPError as exc:
        raise TranslationError(f"Translation request failed: {exc}") from exc
    except ValueError as exc:
        raise TranslationError("Translation response is not valid JSON.") from exc

    return parse_translation_payload(payload)
