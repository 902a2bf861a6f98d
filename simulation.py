"""
In-process simulation of several router nodes over a loopback network.

Datagrams are queued instead of sent and delivered in FIFO order by
deliver_pending(), so multi-node runs are deterministic and need no sockets
or event loop.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List, Optional, Set
import logging

from protocol import DataMessage
from routers import RouterNode
from routing import Address, Transport

logger = logging.getLogger(__name__)

# Bound on deliveries per drain; count-to-infinity can otherwise ping-pong
# forever when the clock does not advance.
MAX_DELIVERIES = 10_000


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


@dataclass(frozen=True)
class Datagram:
    source: Address
    destination: Address
    payload: bytes


class LoopbackTransport(Transport):
    def __init__(self, network: "LoopbackNetwork", owner: Address) -> None:
        self._network = network
        self._owner = owner
        self.closed = False

    def send(self, payload: bytes, address: Address) -> None:
        if self.closed:
            raise OSError(f"transport of {self._owner} is closed")
        self._network.enqueue(Datagram(self._owner, address, payload))

    def close(self) -> None:
        self.closed = True


class LoopbackNetwork:
    """
    Set of router nodes joined by a lossless, in-order loopback.

    Nodes can be silenced to model a router that stopped responding: its
    inbound and outbound datagrams are dropped.
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self.clock = clock or ManualClock()
        self.routers: Dict[Address, RouterNode] = {}
        self.delivered: Dict[Address, List[DataMessage]] = {}
        self.sent: List[Datagram] = []
        self._queue: Deque[Datagram] = deque()
        self._silenced: Set[Address] = set()

    def add_router(self, address: Address, neighbors: Iterable[Address], **kwargs) -> RouterNode:
        inbox: List[DataMessage] = []
        self.delivered[address] = inbox
        node = RouterNode(
            address,
            neighbors,
            transport=LoopbackTransport(self, address),
            clock=self.clock,
            on_deliver=inbox.append,
            **kwargs,
        )
        self.routers[address] = node
        return node

    def silence(self, address: Address) -> None:
        self._silenced.add(address)

    def restore(self, address: Address) -> None:
        self._silenced.discard(address)

    def is_silenced(self, address: Address) -> bool:
        return address in self._silenced

    def enqueue(self, datagram: Datagram) -> None:
        self.sent.append(datagram)
        self._queue.append(datagram)

    def announce_all(self) -> None:
        for node in self.routers.values():
            node.announce()

    def deliver_pending(self, max_deliveries: int = MAX_DELIVERIES) -> int:
        """
        Deliver queued datagrams, including those sent while delivering.
        """
        delivered = 0
        while self._queue and delivered < max_deliveries:
            datagram = self._queue.popleft()
            if datagram.source in self._silenced or datagram.destination in self._silenced:
                continue
            node = self.routers.get(datagram.destination)
            if node is None:
                logger.debug("no router at %s, dropping datagram", datagram.destination)
                continue
            node.handle_datagram(datagram.payload, datagram.source)
            delivered += 1
        return delivered


def run_dv_round(network: LoopbackNetwork) -> int:
    """
    Every router broadcasts its table once, then all traffic is delivered.
    """
    for address, node in network.routers.items():
        if not network.is_silenced(address):
            node.broadcast_table("periodic")
    return network.deliver_pending()
