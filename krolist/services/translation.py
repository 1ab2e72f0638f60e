"""Debounced English/Arabic auto-translation for bilingual admin fields.

Typing in one language schedules a translation into the other. Every new
keystroke replaces the pending timer, so at most one translation fires
per quiet window. A translation that has already started is left to
finish; only the waiting timer is cancelled.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional, Set

import structlog

from krolist.config import settings

logger = structlog.get_logger(__name__)

TranslateFn = Callable[[str, str], Awaitable[str]]
TranslatedCallback = Callable[[str, str], None]

_SOURCE_OF = {"ar": "en", "en": "ar"}


class DebouncedTranslator:
    """Owns the pending-timer handle for one bilingual input."""

    def __init__(
        self,
        translate: TranslateFn,
        on_translated: TranslatedCallback,
        delay: Optional[float] = None,
    ):
        """Initialize translator.

        Args:
            translate: Coroutine (text, target_language) -> translated text
            on_translated: Called with (translated_text, target_language)
            delay: Quiet window in seconds; defaults to TRANSLATION_DEBOUNCE_MS
        """
        self._translate = translate
        self._on_translated = on_translated
        self.delay = delay if delay is not None else settings.TRANSLATION_DEBOUNCE_MS / 1000
        self.auto_translate: Dict[str, bool] = {"ar": True, "en": True}
        self.pending_target: Optional[str] = None
        self._pending: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._last_written: Dict[str, str] = {"ar": "", "en": ""}
        self._closed = False

    def on_input(self, text: str, target: str) -> bool:
        """Handle an edit in the field opposite ``target``.

        Args:
            text: Current field value
            target: Language to translate into ("ar" or "en")

        Returns:
            True if a translation was scheduled
        """
        if target not in _SOURCE_OF:
            raise ValueError(f"Unsupported target language: {target}")
        if self._closed or not self.auto_translate[target] or not text.strip():
            return False
        # Ignore the echo of our own last translation into this field
        if text == self._last_written[_SOURCE_OF[target]]:
            return False

        self.cancel()
        self.pending_target = target
        self._pending = asyncio.create_task(self._fire_later(text, target))
        return True

    def cancel(self) -> None:
        """Invalidate the pending timer, if any."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self.pending_target = None

    async def _fire_later(self, text: str, target: str) -> None:
        await asyncio.sleep(self.delay)
        # From here on the translation is in flight and no longer cancellable by typing
        current = asyncio.current_task()
        if current is not None:
            self._in_flight.add(current)
        self._pending = None
        self.pending_target = None
        try:
            await self._run(text, target)
        finally:
            if current is not None:
                self._in_flight.discard(current)

    async def _run(self, text: str, target: str) -> None:
        try:
            translated = await self._translate(text, target)
        except Exception as e:
            logger.error("translation_failed", target=target, error=str(e))
            return
        if not translated:
            return
        self._last_written[target] = translated
        self._on_translated(translated, target)
        logger.debug("translation_applied", target=target, length=len(translated))

    async def aclose(self) -> None:
        """Tear down: drop the pending timer and let in-flight work settle."""
        self._closed = True
        self.cancel()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def __aenter__(self) -> "DebouncedTranslator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
