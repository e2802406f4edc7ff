"""Test observer event factories and the console observer."""

from ircord.events import (
    Bridged,
    Joined,
    Left,
    Relayed,
    Rename,
    SendFailed,
    bridged_event,
    error_event,
    join_event,
    leave_event,
    message_event,
    rename_event,
)
from ircord.gateway.console import ConsoleObserver
from ircord.models import SourceTag, error_message, message, status_message


class TestFactories:
    def test_message_event(self):
        msg = message("hi", "Ada", SourceTag.DISCORD)
        type_name, evt = message_event(msg)
        assert type_name == "message"
        assert isinstance(evt, Relayed)
        assert evt.message is msg
        assert evt.relayed is True
        assert evt.marked is False

    def test_message_event_suppressed(self):
        _, evt = message_event(message("x", "Gunter", SourceTag.IRC), relayed=False, marked=True)
        assert (evt.relayed, evt.marked) == (False, True)

    def test_join_and_leave(self):
        msg = status_message("Ada joined Discord", SourceTag.DISCORD)
        assert join_event(msg) == ("join", Joined(message=msg))
        assert leave_event(msg) == ("leave", Left(message=msg))

    def test_rename(self):
        msg = status_message("a is now known as b", SourceTag.IRC)
        type_name, evt = rename_event("irc", "a", "b", msg)
        assert type_name == "rename"
        assert evt == Rename(network="irc", old="a", new="b", message=msg)

    def test_error(self):
        exc = ConnectionError("gone")
        msg = error_message(exc, failed_on="irc")
        type_name, evt = error_event("irc", exc, msg)
        assert type_name == "error"
        assert isinstance(evt, SendFailed)
        assert evt.error is exc

    def test_bridged(self):
        type_name, evt = bridged_event(("discord", "irc"))
        assert type_name == "bridged"
        assert evt == Bridged(networks=("discord", "irc"))

    def test_factory_type_attribute(self):
        assert message_event.TYPE == "message"
        assert bridged_event.TYPE == "bridged"


class TestConsoleObserver:
    def test_accepts_message_events_only(self):
        observer = ConsoleObserver()
        _, relayed = message_event(message("hi", "Ada", SourceTag.DISCORD))
        _, bridged = bridged_event(("discord", "irc"))
        assert observer.accept_event("discord", relayed)
        assert not observer.accept_event("bridge", bridged)

    def test_logs_console_line(self, log_records):
        observer = ConsoleObserver()
        _, evt = message_event(message("hello", "alice", SourceTag.IRC))
        observer.push_event("irc", evt)
        assert log_records[-1]["message"] == "[irc] I,alice: hello"
        assert log_records[-1]["level"].name == "INFO"

    def test_send_failure_logged_as_warning(self, log_records):
        observer = ConsoleObserver()
        exc = ConnectionError("gone")
        _, evt = error_event("irc", exc, error_message(exc, failed_on="irc"))
        observer.push_event("relay", evt)
        assert log_records[-1]["level"].name == "WARNING"
        assert log_records[-1]["message"] == "[relay] E,None: gone"
