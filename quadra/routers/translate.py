import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from quadra.config import get_settings
from quadra.models.translate_request import TranslateRequest
from quadra.models.translate_response import TranslateResponse
from quadra.services.errors import (
    NetworkError,
    ProxyError,
    SupersededError,
    UnknownError,
    ValidationError,
)
from quadra.services.pipeline import PipelineRegistry, TranslationPipeline

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()
registry = PipelineRegistry()


@router.post(
    "/translate",
    response_model=TranslateResponse,
    summary="Translate a web page",
    description=(
        "Fetches *url* through the CORS proxy, removes scripts, translates every "
        "text node into `target_language`, and rewrites `src`/`href` attributes to "
        "absolute URLs.\n\n"
        "Text units whose translation fails keep their original text and are "
        "listed in `failed_texts`.  Submitting again with the same `session_id` "
        "cancels the previous in-flight translation (it answers 409)."
    ),
)
@limiter.limit(get_settings().rate_limit)
async def translate_page(request: Request, body: TranslateRequest) -> TranslateResponse:
    url = str(body.url)
    session = body.session_id or get_remote_address(request)
    logger.info(
        "Translate request received",
        extra={"url": url, "target_language": body.target_language, "session": session},
    )

    pipeline = TranslationPipeline(url, body.target_language)

    try:
        outcome = await registry.run(session, pipeline.run)
    except ValidationError as exc:
        logger.warning("Invalid URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except (NetworkError, ProxyError) as exc:
        logger.error("Error fetching %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except SupersededError as exc:
        logger.info("Translation of %s superseded for session %s", url, session)
        raise HTTPException(status_code=409, detail=str(exc))
    except UnknownError as exc:
        logger.error("Pipeline failure for %s: %s", url, exc)
        raise HTTPException(status_code=500, detail=f"Error: {exc}")

    return TranslateResponse(
        url=outcome.url,
        target_language=outcome.target_language,
        state=pipeline.state.value,
        html=outcome.html,
        units_total=outcome.units_total,
        units_translated=outcome.units_translated,
        units_failed=outcome.units_failed,
        failed_texts=outcome.failed_texts,
    )
