"""Tests for editor sessions and the debounced token counter."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rainbow_toon import ColumnRange, Session, SessionConfig, TokenCounterConfig
from rainbow_toon.tokens import TiktokenCounter, TokenCountError

PACKED = "users[2]{id,name,role}:\n  1,Alice,admin\n  22,Bob,developer"
ALIGNED = "users[2]{id, name , role}:\n  1 , Alice, admin\n  22, Bob  , developer"


def word_counter(text):
    return len(text.split())


def failing_counter(text):
    raise TokenCountError("tokenizer unavailable")


def counting_config(**overrides):
    token_counter = {"enabled": True, "debounce_ms": 0}
    token_counter.update(overrides)
    return SessionConfig.from_mapping({"token_counter": token_counter})


class TestConfig:
    """Session settings."""

    def test_defaults(self):
        config = SessionConfig()
        assert config.align_on_save is False
        assert config.token_counter == TokenCounterConfig()
        assert config.token_counter.debounce_ms == 500
        assert config.token_counter.encoding == "cl100k_base"

    def test_from_mapping_merges_nested(self):
        config = SessionConfig.from_mapping(
            {"align_on_save": True, "token_counter": {"format": "[{count}]"}}
        )
        assert config.align_on_save is True
        assert config.token_counter.format == "[{count}]"
        assert config.token_counter.debounce_ms == 500

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="align_on_load"):
            SessionConfig.from_mapping({"align_on_load": True})

    def test_unknown_nested_key(self):
        with pytest.raises(ValueError, match="delay"):
            SessionConfig.from_mapping({"token_counter": {"delay": 1}})

    def test_nested_must_be_table(self):
        with pytest.raises(ValueError):
            SessionConfig.from_mapping({"token_counter": True})

    def test_invalid_counter_settings(self):
        with pytest.raises(ValueError):
            TokenCounterConfig(debounce_ms=-1)
        with pytest.raises(ValueError):
            TokenCounterConfig(format="tokens")


class TestBufferOperations:
    """Align, shrink, save hooks and highlighting."""

    def test_align_and_shrink(self):
        with Session.open() as session:
            assert session.align(PACKED).text == ALIGNED
            assert session.shrink(ALIGNED).text == PACKED

    def test_on_save_disabled(self):
        with Session.open() as session:
            result = session.on_save(PACKED)
            assert result.text == PACKED
            assert result.replacements == []

    def test_on_save_aligns(self):
        config = SessionConfig(align_on_save=True)
        with Session.open(config) as session:
            assert session.on_save(PACKED).text == ALIGNED

    def test_highlight_ranges(self):
        with Session.open() as session:
            ranges = session.highlight_ranges("t[1]{a,b}:\n  x,yy")
        assert ranges == [
            ColumnRange(line=1, start=2, end=3, column=0),
            ColumnRange(line=1, start=4, end=6, column=1),
        ]

    def test_json_to_toon(self):
        with Session.open() as session:
            result = session.json_to_toon('{"a": [{"y": 1, "x": 2.50}]}')
        assert result.text == "a[1]{x,y}:\n  2.5,1"
        assert result.diagnostics == []

    def test_closed_session_rejects_operations(self):
        session = Session.open()
        session.close()
        session.close()
        assert session.closed
        with pytest.raises(RuntimeError):
            session.align(PACKED)
        with pytest.raises(RuntimeError):
            session.on_save(PACKED)

    def test_sessions_are_independent(self):
        first = Session.open(SessionConfig(align_on_save=True))
        second = Session.open()
        first.close()
        assert second.on_save(PACKED).text == PACKED


class TestTokenCounter:
    """Debounced token counting."""

    def test_default_counter_is_lazy(self):
        session = Session.open(counter=None)
        assert isinstance(session.counter, TiktokenCounter)
        assert session.counter.encoding_name == "cl100k_base"

    def test_disabled_by_default(self):
        async def run():
            with Session.open(counter=word_counter) as session:
                return session.request_token_count("a b")

        assert asyncio.run(run()) is None

    def test_count_reported(self):
        seen = []

        async def run():
            session = Session.open(
                counting_config(),
                counter=word_counter,
                on_count=lambda label, count: seen.append((label, count)),
            )
            count = await session.request_token_count("a b c")
            return session, count

        session, count = asyncio.run(run())
        assert count == 3
        assert session.last_count == 3
        assert seen == [(" 3 tokens ", 3)]

    def test_custom_label(self):
        session = Session.open(counting_config(format="{count} tok"))
        assert session.label(12) == "12 tok"

    def test_newer_request_supersedes(self):
        seen = []

        async def run():
            session = Session.open(
                counting_config(),
                counter=word_counter,
                on_count=lambda label, count: seen.append(count),
            )
            first = session.request_token_count("a")
            second = session.request_token_count("a b")
            count = await second
            with pytest.raises(asyncio.CancelledError):
                await first
            return session, count

        session, count = asyncio.run(run())
        assert count == 2
        assert seen == [2]
        assert session.generation == 2

    def test_disable_cancels_pending(self):
        seen = []

        async def run():
            session = Session.open(
                counting_config(debounce_ms=50),
                counter=word_counter,
                on_count=lambda label, count: seen.append(count),
            )
            task = session.request_token_count("a b")
            session.disable_token_counter()
            with pytest.raises(asyncio.CancelledError):
                await task
            return session

        session = asyncio.run(run())
        assert seen == []
        assert session.last_count is None
        assert session.token_counter_enabled is False

    def test_close_cancels_pending(self):
        async def run():
            session = Session.open(counting_config(debounce_ms=50), counter=word_counter)
            task = session.request_token_count("a b")
            session.close()
            with pytest.raises(asyncio.CancelledError):
                await task
            return session

        session = asyncio.run(run())
        assert session.last_count is None
        with pytest.raises(RuntimeError):
            session.request_token_count("a")

    def test_toggle(self):
        session = Session.open(counter=word_counter)
        assert session.toggle_token_counter() is True
        assert session.toggle_token_counter() is False
        session.enable_token_counter()
        assert session.token_counter_enabled is True

    def test_counter_failure(self, caplog):
        seen = []

        async def run():
            session = Session.open(
                counting_config(),
                counter=failing_counter,
                on_count=lambda label, count: seen.append(count),
            )
            return session, await session.request_token_count("a b")

        with caplog.at_level("WARNING", logger="rainbow_toon.session"):
            session, count = asyncio.run(run())
        assert count is None
        assert session.last_count is None
        assert seen == []
        assert "tokenizer unavailable" in caplog.text
