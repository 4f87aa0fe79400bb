"""Tests for Signal."""

from queue_explorer.signals import Signal


class TestSignal:
    def test_emit_reaches_listeners_in_order(self):
        signal: Signal[int] = Signal("numbers")
        received = []
        signal.subscribe(lambda n: received.append(("first", n)))
        signal.subscribe(lambda n: received.append(("second", n)))

        signal.emit(7)

        assert received == [("first", 7), ("second", 7)]

    def test_unsubscribe_stops_delivery(self):
        signal: Signal[int] = Signal("numbers")
        received = []
        unsubscribe = signal.subscribe(received.append)

        unsubscribe()
        unsubscribe()  # second call is harmless
        signal.emit(1)

        assert received == []
        assert signal.listener_count == 0

    def test_failing_listener_does_not_block_others(self):
        """A listener error is logged and delivery continues."""
        signal: Signal[str] = Signal("names")
        received = []

        def broken(_):
            raise RuntimeError("boom")

        signal.subscribe(broken)
        signal.subscribe(received.append)

        signal.emit("orders")

        assert received == ["orders"]

    def test_clear_removes_all_listeners(self):
        signal: Signal[None] = Signal("tick")
        signal.subscribe(lambda _: None)
        signal.subscribe(lambda _: None)

        signal.clear()

        assert signal.listener_count == 0
