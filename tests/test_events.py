"""Tests for the component event emitter."""

import pytest

from minecraft_mcp.events import EventEmitter


class TestEventEmitter:
    def test_emit_calls_listeners_in_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("log", lambda line: calls.append(("a", line)))
        emitter.on("log", lambda line: calls.append(("b", line)))

        emitter.emit("log", "hello")

        assert calls == [("a", "hello"), ("b", "hello")]

    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError, match="Unknown event"):
            EventEmitter().on("spawned", print)

    def test_unsubscribe(self):
        emitter = EventEmitter()
        calls = []
        unsubscribe = emitter.on("stopped", calls.append)
        unsubscribe()
        unsubscribe()

        emitter.emit("stopped", 0)
        assert calls == []

    def test_failing_listener_does_not_block_others(self):
        emitter = EventEmitter()
        calls = []

        def broken(reason):
            raise RuntimeError("listener bug")

        emitter.on("kicked", broken)
        emitter.on("kicked", calls.append)

        emitter.emit("kicked", "banned")
        assert calls == ["banned"]

    def test_emit_without_listeners(self):
        EventEmitter().emit("connected")
