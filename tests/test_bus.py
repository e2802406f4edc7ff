"""Test event bus and dispatcher."""

from ircord.events import Dispatcher, message_event
from ircord.gateway.bus import Bus
from ircord.models import SourceTag, message


class MockTarget:
    """Mock event target for testing."""

    def __init__(self, accept_filter=None):
        self.received_events = []
        self.accept_filter = accept_filter or (lambda s, e: True)

    def accept_event(self, source: str, evt: object) -> bool:
        return self.accept_filter(source, evt)

    def push_event(self, source: str, evt: object) -> None:
        self.received_events.append((source, evt))


def sample_event(text: str = "Hello"):
    _, evt = message_event(message(text, "Ada", SourceTag.DISCORD, auth=True))
    return evt


class TestDispatcher:
    """Test event dispatcher."""

    def test_register_target(self):
        dispatcher = Dispatcher()
        target = MockTarget()
        dispatcher.register(target)
        assert target in dispatcher._targets

    def test_unregister_nonexistent_target_is_safe(self):
        dispatcher = Dispatcher()
        dispatcher.unregister(MockTarget())

    def test_dispatch_to_accepting_target(self):
        dispatcher = Dispatcher()
        target = MockTarget()
        dispatcher.register(target)
        evt = sample_event()
        dispatcher.dispatch("discord", evt)
        assert target.received_events == [("discord", evt)]

    def test_dispatch_not_to_rejecting_target(self):
        dispatcher = Dispatcher()
        target = MockTarget(accept_filter=lambda s, e: False)
        dispatcher.register(target)
        dispatcher.dispatch("discord", sample_event())
        assert target.received_events == []

    def test_dispatch_handles_push_event_exception(self):
        class FailingTarget:
            def accept_event(self, source, evt):
                return True

            def push_event(self, source, evt):
                raise RuntimeError("push failed")

        dispatcher = Dispatcher()
        working = MockTarget()
        dispatcher.register(FailingTarget())
        dispatcher.register(working)
        dispatcher.dispatch("discord", sample_event())
        assert len(working.received_events) == 1

    def test_dispatch_handles_accept_event_exception(self):
        """accept_event raising should not prevent other targets from receiving."""

        class ExplodingTarget:
            def accept_event(self, source, evt):
                raise RuntimeError("accept failed")

            def push_event(self, source, evt):
                pass

        dispatcher = Dispatcher()
        working = MockTarget()
        dispatcher.register(ExplodingTarget())
        dispatcher.register(working)
        dispatcher.dispatch("irc", sample_event())
        assert len(working.received_events) == 1

    def test_dispatch_multiple_events_received_in_order(self):
        dispatcher = Dispatcher()
        target = MockTarget()
        dispatcher.register(target)
        events = [sample_event(f"msg {i}") for i in range(5)]
        for evt in events:
            dispatcher.dispatch("discord", evt)
        assert [e for _, e in target.received_events] == events


class TestBus:
    """Test event bus."""

    def test_bus_wraps_dispatcher(self):
        bus = Bus()
        target = MockTarget()
        bus.register(target)
        bus.publish("discord", sample_event())
        assert len(target.received_events) == 1

    def test_bus_unregister(self):
        bus = Bus()
        target = MockTarget()
        bus.register(target)
        bus.unregister(target)
        bus.publish("discord", sample_event())
        assert target.received_events == []
        assert target not in bus._observers

    def test_bus_publish_passes_source_correctly(self):
        bus = Bus()
        target = MockTarget()
        bus.register(target)
        bus.publish("relay", sample_event())
        source, _ = target.received_events[0]
        assert source == "relay"
