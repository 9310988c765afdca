"""Page translation pipeline: fetch → parse → translate each unit → rewrite.

A :class:`TranslationPipeline` runs exactly once and walks the state machine::

    idle → fetching → parsing → translating → rewriting → done
                 ↘         ↘                        ↘
                   failed    failed                   failed

Per-unit translation failures never leave ``translating``: the unit keeps its
original text and the run continues.  Any non-terminal state may move to
``cancelled`` when the run is superseded (see :class:`PipelineRegistry`).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from quadra.config import get_settings
from quadra.services.errors import (
    PipelineError,
    SupersededError,
    TranslationError,
    UnknownError,
)
from quadra.services.extractor import TextUnit, extract
from quadra.services.fetcher import fetch_page, validate_url
from quadra.services.rewriter import apply_translations, render, resolve_asset_urls
from quadra.services.translator import TranslationResult, translate_text

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    TRANSLATING = "translating"
    REWRITING = "rewriting"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED, PipelineState.CANCELLED})

_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.FETCHING},
    PipelineState.FETCHING: {PipelineState.PARSING, PipelineState.FAILED},
    PipelineState.PARSING: {PipelineState.TRANSLATING, PipelineState.FAILED},
    PipelineState.TRANSLATING: {PipelineState.REWRITING},
    PipelineState.REWRITING: {PipelineState.DONE, PipelineState.FAILED},
}


@dataclass(frozen=True)
class PipelineEvent:
    """A state change or progress tick reported to the notification sink."""

    state: PipelineState
    completed: int = 0
    total: int = 0
    message: str = ""


NotificationSink = Callable[[PipelineEvent], None]


@dataclass
class PipelineOutcome:
    url: str
    target_language: str
    html: str
    units_total: int
    units_translated: int
    failed_texts: List[str] = field(default_factory=list)

    @property
    def units_failed(self) -> int:
        return len(self.failed_texts)


class TranslationPipeline:
    """One fetch-and-translate run for a single page and target language."""

    def __init__(
        self,
        url: str,
        target_language: str,
        *,
        max_concurrency: Optional[int] = None,
        on_event: Optional[NotificationSink] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.target_language = target_language
        self.max_concurrency = max_concurrency or get_settings().max_concurrency
        self.state = PipelineState.IDLE
        self.error: Optional[PipelineError] = None
        self.completed = 0
        self.total = 0
        self._on_event = on_event
        self._client = client

    def _transition(self, state: PipelineState, message: str = "") -> None:
        if state is PipelineState.CANCELLED:
            allowed = self.state not in TERMINAL_STATES
        else:
            allowed = state in _TRANSITIONS.get(self.state, set())
        if not allowed:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        logger.debug("Pipeline %s: %s -> %s", self.url, self.state.value, state.value)
        self.state = state
        self._notify(message)

    def _notify(self, message: str = "") -> None:
        if self._on_event is not None:
            self._on_event(
                PipelineEvent(
                    state=self.state,
                    completed=self.completed,
                    total=self.total,
                    message=message,
                )
            )

    def _fail(self, error: PipelineError) -> None:
        self.error = error
        self._transition(PipelineState.FAILED, str(error))

    async def run(self) -> PipelineOutcome:
        """Execute the pipeline and return the translated markup.

        Raises:
            ValidationError, NetworkError, ProxyError: fetch failures.
            UnknownError: any other fetch, parse or rewrite failure.
            asyncio.CancelledError: if the run was cancelled.
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("A pipeline instance can only be run once.")

        # Bad input never starts the pipeline: the state stays idle.
        validate_url(self.url)

        try:
            if self._client is not None:
                return await self._run(self._client)
            settings = get_settings()
            async with httpx.AsyncClient(
                timeout=settings.request_timeout, follow_redirects=True
            ) as client:
                return await self._run(client)
        except asyncio.CancelledError:
            if self.state not in TERMINAL_STATES:
                self._transition(PipelineState.CANCELLED, "Superseded by a newer request.")
            raise

    async def _run(self, client: httpx.AsyncClient) -> PipelineOutcome:
        self._transition(PipelineState.FETCHING)
        try:
            html = await fetch_page(self.url, client=client)
        except PipelineError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            self._fail(UnknownError(str(exc)))
            raise self.error from exc

        self._transition(PipelineState.PARSING)
        try:
            soup, units = extract(html)
        except Exception as exc:
            self._fail(UnknownError(str(exc)))
            raise self.error from exc

        self.total = len(units)
        self._transition(PipelineState.TRANSLATING)
        results = await self._translate_units(client, units)

        self._transition(PipelineState.REWRITING)
        try:
            translated = apply_translations(units, results)
            resolve_asset_urls(soup, self.url)
            markup = render(soup)
        except Exception as exc:
            self._fail(UnknownError(str(exc)))
            raise self.error from exc

        failed_texts = [unit.text for unit, result in zip(units, results) if result is None]
        self._transition(PipelineState.DONE)
        logger.info(
            "Translated %s into %s: %d/%d units",
            self.url,
            self.target_language,
            translated,
            len(units),
        )
        return PipelineOutcome(
            url=self.url,
            target_language=self.target_language,
            html=markup,
            units_total=len(units),
            units_translated=translated,
            failed_texts=failed_texts,
        )

    async def _translate_units(
        self, client: httpx.AsyncClient, units: List[TextUnit]
    ) -> List[Optional[TranslationResult]]:
        """Translate *units* with at most ``max_concurrency`` calls in flight.

        Results are indexed like *units*, so completion order has no effect
        on the rewritten document.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _translate_one(unit: TextUnit) -> Optional[TranslationResult]:
            async with semaphore:
                try:
                    translated = await translate_text(
                        unit.text, self.target_language, client=client
                    )
                except TranslationError as exc:
                    logger.warning("Translation failed for unit %d: %s", unit.index, exc)
                    result = None
                except Exception as exc:
                    logger.warning(
                        "Unexpected error translating unit %d: %s", unit.index, exc, exc_info=True
                    )
                    result = None
                else:
                    result = TranslationResult(source_text=unit.text, translated_text=translated)
                self.completed += 1
                self._notify()
                return result

        return list(await asyncio.gather(*(_translate_one(unit) for unit in units)))


class PipelineRegistry:
    """Tracks the in-flight run per session and cancels it when a new one starts."""

    def __init__(self) -> None:
        self._tasks: Dict[str, "asyncio.Task[PipelineOutcome]"] = {}

    async def run(
        self,
        session: str,
        job: Callable[[], Awaitable[PipelineOutcome]],
    ) -> PipelineOutcome:
        """Run *job* for *session*, cancelling the session's previous run if any."""
        previous = self._tasks.get(session)
        if previous is not None and not previous.done():
            logger.info("Cancelling in-flight pipeline for session %s", session)
            previous.cancel()

        task = asyncio.ensure_future(job())
        self._tasks[session] = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._tasks.get(session) is task:
                del self._tasks[session]

        if task.cancelled():
            raise SupersededError("Superseded by a newer request for the same session.")
        return task.result()
