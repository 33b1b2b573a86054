"""
Unit tests for core helpers: conversation history, tracing, rate limiting.
"""

import pytest
from pydantic import ValidationError

from app.core.history import ConversationHistory, MessageItem, append_history
from app.core.rate_limit import RateLimiter
from app.core.tracing import current_trace, current_trace_id, trace


class TestConversationHistory:
    def test_extend_appends_without_touching_original(self) -> None:
        seed = ConversationHistory([MessageItem.user_text("hi")])
        grown = seed.extend([MessageItem.user_text("more")])
        assert len(seed) == 1
        assert [i.text for i in grown] == ["hi", "more"]

    def test_items_are_immutable(self) -> None:
        item = MessageItem.user_text("hi")
        with pytest.raises(ValidationError):
            item.role = "assistant"

    def test_user_text_shape(self) -> None:
        assert ConversationHistory([MessageItem.user_text("hi")]).as_input() == [
            {"role": "user", "content": [{"type": "input_text", "text": "hi"}]}
        ]

    def test_reducer_accepts_lists_and_single_items(self) -> None:
        a, b, c = (MessageItem.user_text(t) for t in "abc")
        history = append_history(None, [a])
        history = append_history(history, b)
        history = append_history(list(history), (c,))
        assert history.items() == (a, b, c)

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MessageItem(role="system")


class TestTrace:
    def test_binds_and_resets(self) -> None:
        assert current_trace() is None
        with trace("wf", "wf_1") as span:
            assert current_trace() is span
            assert current_trace_id() == span.trace_id
        assert current_trace() is None
        assert current_trace_id() == "-"
        assert span.closed is True

    def test_error_outcome_and_reraise(self) -> None:
        with pytest.raises(RuntimeError):
            with trace("wf", "wf_1") as span:
                raise RuntimeError("boom")
        assert span.outcome == "error:RuntimeError"
        assert span.closed is True
        assert current_trace() is None


class TestRateLimiter:
    def test_window_slides(self) -> None:
        limiter = RateLimiter(limit=2, window=60)
        assert limiter.allow("1.2.3.4", now=0)
        assert limiter.allow("1.2.3.4", now=1)
        assert not limiter.allow("1.2.3.4", now=2)
        assert limiter.allow("5.6.7.8", now=2)
        assert limiter.allow("1.2.3.4", now=60)

    def test_idle_keys_are_dropped_after_window(self) -> None:
        limiter = RateLimiter(limit=5, window=60)
        assert limiter.allow("1.2.3.4", now=0)
        assert limiter.allow("5.6.7.8", now=30)
        assert len(limiter) == 2

        assert limiter.allow("9.9.9.9", now=61)
        assert "1.2.3.4" not in limiter
        assert "5.6.7.8" in limiter
        assert len(limiter) == 2

    def test_reset(self) -> None:
        limiter = RateLimiter(limit=1)
        assert limiter.allow("k")
        assert not limiter.allow("k")
        limiter.reset()
        assert limiter.allow("k")
