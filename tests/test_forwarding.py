from typing import List, Tuple

from forwarding import ForwardingEngine, ForwardOutcome
from protocol import DataMessage
from routing import RouteEntry, RoutingTable


class Recorder:
    """Transmit stand-in that records what would have been sent."""

    def __init__(self, succeed: bool = True) -> None:
        self.sent: List[Tuple[bytes, str]] = []
        self.succeed = succeed

    def __call__(self, payload: bytes, address: str) -> bool:
        self.sent.append((payload, address))
        return self.succeed


def engine_for(table: RoutingTable, transmit: Recorder, delivered=None) -> ForwardingEngine:
    deliver = delivered.append if delivered is not None else None
    return ForwardingEngine("B", lambda: table, transmit, deliver)


TABLE = RoutingTable({
    "A": RouteEntry("A", 1, "A"),
    "C": RouteEntry("C", 1, "C"),
    "D": RouteEntry("D", 2, "C"),
})


def test_route_returns_next_hop_or_none():
    fwd = engine_for(TABLE, Recorder())

    assert fwd.route("D") == "C"
    assert fwd.route("Z") is None


def test_message_for_self_is_delivered_locally():
    delivered: List[DataMessage] = []
    transmit = Recorder()
    message = DataMessage("A", "B", "hi")

    result = engine_for(TABLE, transmit, delivered).forward(message, arrived_from="A")

    assert result.outcome is ForwardOutcome.DELIVERED
    assert delivered == [message]
    assert transmit.sent == []


def test_forwarded_unchanged_to_next_hop():
    """The source field travels unchanged with the message."""
    transmit = Recorder()

    result = engine_for(TABLE, transmit).forward(DataMessage("A", "D", "x;y"), arrived_from="A")

    assert result.outcome is ForwardOutcome.FORWARDED
    assert result.next_hop == "C"
    assert transmit.sent == [(b"!A;D;x;y", "C")]


def test_unreachable_destination_is_dropped():
    transmit = Recorder()

    result = engine_for(TABLE, transmit).forward(DataMessage("A", "Z", "lost"), arrived_from="A")

    assert result.outcome is ForwardOutcome.NO_ROUTE
    assert transmit.sent == []


def test_never_sends_back_to_the_sender():
    """A message whose next hop is the neighbour it came from is not retransmitted."""
    transmit = Recorder()

    result = engine_for(TABLE, transmit).forward(DataMessage("C", "D", "bounce"), arrived_from="C")

    assert result.outcome is ForwardOutcome.LOOP_AVOIDED
    assert result.next_hop == "C"
    assert transmit.sent == []


def test_locally_originated_message_has_no_loop_check():
    transmit = Recorder()

    result = engine_for(TABLE, transmit).forward(DataMessage("B", "C", "hello"))

    assert result.outcome is ForwardOutcome.FORWARDED
    assert transmit.sent == [(b"!B;C;hello", "C")]


def test_failed_transmit_is_reported():
    result = engine_for(TABLE, Recorder(succeed=False)).forward(DataMessage("B", "C", "hello"))

    assert result.outcome is ForwardOutcome.SEND_FAILED


def test_lookup_uses_the_current_table():
    """Route lookups always see the latest table swapped in by the owner."""
    tables = [RoutingTable()]
    transmit = Recorder()
    fwd = ForwardingEngine("B", lambda: tables[-1], transmit)

    assert fwd.route("C") is None
    tables.append(TABLE)
    assert fwd.route("C") == "C"
