"""Token counting for TOON buffers."""

import logging
from collections.abc import Callable

import tiktoken

logger = logging.getLogger(__name__)

TokenCounter = Callable[[str], int]
"""Given text, return its token count or raise ``TokenCountError``."""


class TokenCountError(RuntimeError):
    """The tokenizer could not count a text."""


class TiktokenCounter:
    """Counts tokens with a tiktoken encoding, loaded on first use."""

    def __init__(self, encoding: str = "cl100k_base"):
        self.encoding_name = encoding
        self._encoding: tiktoken.Encoding | None = None

    def _get_encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            try:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                # Unknown names raise ValueError; fetching the BPE file can fail many ways
                raise TokenCountError(
                    f"Cannot load tiktoken encoding {self.encoding_name!r}: {e}"
                ) from e
            logger.debug("Loaded tiktoken encoding %s", self.encoding_name)
        return self._encoding

    def __call__(self, text: str) -> int:
        # Special-token text in a buffer is counted as ordinary text
        return len(self._get_encoding().encode(text, disallowed_special=()))

    def __repr__(self) -> str:
        return f"TiktokenCounter({self.encoding_name!r})"


def count_tokens(text: str, encoding: str = "cl100k_base") -> int:
    """Count the tokens of ``text`` with a tiktoken encoding."""
    return TiktokenCounter(encoding)(text)
