"""Per-buffer editing sessions.

A session owns everything an editor keeps for one TOON buffer: its settings,
whether the token counter is on, the last count and the single in-flight
recount task. Sessions are created with ``Session.open`` and torn down with
``close``; no state is shared between them.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from . import jsonio
from .align import align_text, shrink_text
from .blocks import column_ranges_for_text, split_lines
from .encode import encode_document
from .tokens import TiktokenCounter, TokenCounter, TokenCountError
from .types import ColumnRange, EncodeOptions, EncodeResult, RewriteResult, SessionConfig

logger = logging.getLogger(__name__)

CountCallback = Callable[[str, int], None]
"""Receives the formatted label and the raw count."""


class Session:
    """State and operations for one editor buffer."""

    def __init__(
        self,
        config: SessionConfig | None = None,
        counter: TokenCounter | None = None,
        on_count: CountCallback | None = None,
    ):
        self.config = config or SessionConfig()
        self.on_count = on_count
        self.token_counter_enabled = self.config.token_counter.enabled
        self.last_count: int | None = None
        self.closed = False
        self._counter = counter
        self._task: asyncio.Task | None = None
        self._generation = 0

    @classmethod
    def open(
        cls,
        config: SessionConfig | None = None,
        counter: TokenCounter | None = None,
        on_count: CountCallback | None = None,
    ) -> "Session":
        session = cls(config, counter, on_count)
        logger.debug("Opened session (align_on_save=%s)", session.config.align_on_save)
        return session

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def counter(self) -> TokenCounter:
        if self._counter is None:
            self._counter = TiktokenCounter(self.config.token_counter.encoding)
        return self._counter

    @property
    def generation(self) -> int:
        """Number of recounts requested or invalidated so far."""
        return self._generation

    def align(self, text: str | Sequence[str]) -> RewriteResult:
        self._check_open()
        return align_text(text)

    def shrink(self, text: str | Sequence[str]) -> RewriteResult:
        self._check_open()
        return shrink_text(text)

    def on_save(self, text: str | Sequence[str]) -> RewriteResult:
        """Align before writing when ``align_on_save`` is set; otherwise a no-op."""
        self._check_open()
        if self.config.align_on_save:
            return align_text(text)
        return RewriteResult(text="\n".join(split_lines(text)))

    def highlight_ranges(self, text: str | Sequence[str]) -> list[ColumnRange]:
        """Cell spans for rainbow column highlighting."""
        self._check_open()
        return column_ranges_for_text(text)

    def json_to_toon(self, json_text: str, options: EncodeOptions | None = None) -> EncodeResult:
        """Convert a JSON buffer to TOON."""
        self._check_open()
        return encode_document(jsonio.loads(json_text), options)

    def label(self, count: int) -> str:
        return self.config.token_counter.format.format(count=count)

    def enable_token_counter(self) -> None:
        self._check_open()
        self.token_counter_enabled = True

    def disable_token_counter(self) -> None:
        self.token_counter_enabled = False
        self._cancel_pending()

    def toggle_token_counter(self) -> bool:
        """Flip the token counter on or off and return the new state."""
        if self.token_counter_enabled:
            self.disable_token_counter()
        else:
            self.enable_token_counter()
        return self.token_counter_enabled

    def request_token_count(self, text: str) -> "asyncio.Task[int | None] | None":
        """
        Schedule a debounced recount of ``text``, superseding any pending one.

        Must be called from a running event loop. A superseded task is
        cancelled. The returned task resolves to the count, or to None when
        the tokenizer failed or the result went stale. Returns None when the
        counter is off.
        """
        self._check_open()
        if not self.token_counter_enabled:
            return None

        self._cancel_pending()
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(self._count(text, generation))
        return self._task

    async def _count(self, text: str, generation: int) -> int | None:
        await asyncio.sleep(self.config.token_counter.debounce_ms / 1000)

        loop = asyncio.get_running_loop()
        try:
            count = await loop.run_in_executor(None, self.counter, text)
        except TokenCountError as e:
            logger.warning("Token count failed: %s", e)
            return None

        # A newer request, disable or close may have happened while counting
        if generation != self._generation or self.closed:
            logger.debug("Discarding stale token count from generation %d", generation)
            return None

        self.last_count = count
        if self.on_count is not None:
            self.on_count(self.label(count), count)
        return count

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def close(self) -> None:
        """Tear the session down; pending recounts are discarded."""
        if self.closed:
            return
        self._cancel_pending()
        self.closed = True
        logger.debug("Closed session")

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("Session is closed")
