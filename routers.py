"""
Router node for the hop-count overlay.

RouterNode is the single owner of neighbour state and the routing table. The
transport, the timers and the console all call into it from one event loop,
and none of its methods await, so every mutation runs to completion before
the next one starts.
"""

from typing import Callable, Iterable, List, Optional, Set, Tuple
import logging
import time

from algorithms import DistanceVectorEngine
from config import NodeSettings
from distance_vector_engine import HopCountDistanceVectorEngine
from forwarding import ForwardingEngine, ForwardResult
from neighbors import Clock, NeighborLivenessTracker
from protocol import (
    DataMessage,
    Malformed,
    Message,
    RouteAdvert,
    RouterAnnounce,
    UnknownMessage,
    decode,
    encode_advert,
    encode_announce,
)
from routing import Address, RecomputeResult, RoutingTable, Transport, format_table
from scheduler import AdvertisementScheduler

logger = logging.getLogger(__name__)

_DEFAULTS = NodeSettings()


class RouterNode:
    """
    One node of the overlay: neighbour liveness, route recomputation,
    advertisement and forwarding.
    """

    def __init__(
        self,
        address: Address,
        neighbors: Iterable[Address],
        transport: Optional[Transport] = None,
        engine: Optional[DistanceVectorEngine] = None,
        neighbor_timeout: float = _DEFAULTS.neighbor_timeout,
        advert_interval: float = _DEFAULTS.advert_interval,
        liveness_check_interval: float = _DEFAULTS.liveness_check_interval,
        table_log_interval: float = 0.0,
        clock: Clock = time.monotonic,
        on_deliver: Optional[Callable[[DataMessage], None]] = None,
    ) -> None:
        self._address = address
        # Ordered, de-duplicated, never ourselves.
        self._neighbors: Tuple[Address, ...] = tuple(
            dict.fromkeys(n for n in neighbors if n != address)
        )
        self._transport = transport
        self._engine = engine or HopCountDistanceVectorEngine()
        self._neighbor_timeout = neighbor_timeout
        self._tracker = NeighborLivenessTracker(self._neighbors, clock=clock)
        self._table = RoutingTable()
        self._forwarding = ForwardingEngine(address, lambda: self._table, self._send, on_deliver)
        self._scheduler = AdvertisementScheduler(
            self,
            advert_interval=advert_interval,
            liveness_check_interval=liveness_check_interval,
            table_log_interval=table_log_interval,
        )
        now = self._tracker.now()
        self._alive: Set[Address] = set(
            self._tracker.alive_neighbors(self._neighbors, now, neighbor_timeout)
        )
        self._recompute("startup", trigger=False)

    # --- Read-only views ------------------------------------------------------

    @property
    def address(self) -> Address:
        return self._address

    @property
    def neighbors(self) -> Tuple[Address, ...]:
        return self._neighbors

    @property
    def table(self) -> RoutingTable:
        return self._table

    @property
    def tracker(self) -> NeighborLivenessTracker:
        return self._tracker

    @property
    def scheduler(self) -> AdvertisementScheduler:
        return self._scheduler

    def attach_transport(self, transport: Transport) -> None:
        self._transport = transport

    # --- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        """Announce to neighbours and start the periodic timers."""
        logger.info("router %s starting with neighbours %s", self._address, list(self._neighbors))
        self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()
        if self._transport is not None:
            self._transport.close()
        logger.info("router %s stopped", self._address)

    # --- Inbound --------------------------------------------------------------

    def handle_datagram(self, payload: bytes, sender: Address) -> Message:
        """
        Decode and act on one datagram from sender.

        Per-message problems are logged and dropped; nothing is raised.
        """
        message = decode(payload)

        if isinstance(message, Malformed):
            logger.warning("malformed %s message from %s: %s", message.kind, sender, message.reason)
            return message
        if isinstance(message, UnknownMessage):
            logger.warning("unknown message from %s: %r", sender, payload[:64])
            return message

        logger.debug("received %s from %s", type(message).__name__, sender)
        if sender not in self._neighbors:
            self._from_stranger(message, sender)
            return message

        now = self._tracker.now()
        revived = not self._tracker.is_alive(sender, now, self._neighbor_timeout)

        if isinstance(message, RouteAdvert):
            self._tracker.touch(sender, message.routes)
            self._heard_from(sender, revived, "advert", routing_input=True)
        elif isinstance(message, RouterAnnounce):
            if message.address == self._address:
                logger.debug("ignoring announcement of our own address from %s", sender)
                self._tracker.touch(sender)
                self._heard_from(sender, revived, "announce", routing_input=False)
            else:
                logger.info("%s vouches for %s", sender, message.address)
                self._tracker.vouch(sender, message.address)
                self._heard_from(sender, revived, "announce", routing_input=True)
        elif isinstance(message, DataMessage):
            self._tracker.touch(sender)
            self._heard_from(sender, revived, "data", routing_input=False)
            self._forwarding.forward(message, arrived_from=sender)
        return message

    def _from_stranger(self, message: Message, sender: Address) -> None:
        # No state is kept for addresses outside the neighbour list.
        if isinstance(message, DataMessage):
            self._forwarding.forward(message, arrived_from=sender)
        else:
            logger.warning("%s from non-neighbour %s ignored", type(message).__name__, sender)

    def _heard_from(self, sender: Address, revived: bool, reason: str, routing_input: bool) -> None:
        if revived:
            self._alive.add(sender)
            logger.info("neighbour %s is reachable again", sender)
        if routing_input or revived:
            self._recompute(f"{reason} from {sender}")

    # --- Liveness -------------------------------------------------------------

    def check_liveness(self) -> Optional[RecomputeResult]:
        """
        Recompute when any neighbour went silent, or came back, since the
        last check.
        """
        now = self._tracker.now()
        alive = set(self._tracker.alive_neighbors(self._neighbors, now, self._neighbor_timeout))
        expired = sorted(self._alive - alive)
        returned = alive - self._alive
        self._alive = alive
        if not expired and not returned:
            return None
        for neighbor in expired:
            state = self._tracker.state(neighbor)
            silence = now - state.last_contact_at if state else float("inf")
            logger.warning(
                "neighbour %s silent for %.0fs, excluding its routes", neighbor, silence
            )
        return self._recompute("liveness check")

    # --- Routing --------------------------------------------------------------

    def _recompute(self, reason: str, trigger: bool = True) -> RecomputeResult:
        result = self._engine.recompute(
            configured_neighbors=self._neighbors,
            neighbor_states=self._tracker.states(),
            self_address=self._address,
            now=self._tracker.now(),
            timeout_window=self._neighbor_timeout,
            previous=self._table,
        )
        if result.changed:
            self._table = result.table
            for change in result.changes:
                logger.info("%s (%s)", change.describe(), reason)
            if trigger:
                self._scheduler.triggered(result)
        return result

    # --- Outbound -------------------------------------------------------------

    def announce(self) -> None:
        payload = encode_announce(self._address)
        sent = self._broadcast(payload)
        logger.info("announced %s to %d neighbour(s)", self._address, sent)

    def broadcast_table(self, reason: str = "periodic") -> None:
        payload = encode_advert(self._table.advertised_routes())
        sent = self._broadcast(payload)
        log = logger.info if reason == "triggered" else logger.debug
        log("%s table broadcast to %d neighbour(s)", reason, sent)

    def send_text(self, destination: Address, text: str) -> ForwardResult:
        """Originate a data message from this node."""
        return self._forwarding.forward(DataMessage(self._address, destination, text))

    def log_table(self) -> None:
        logger.info("\n%s", format_table(self._table, self._address))

    def _broadcast(self, payload: bytes) -> int:
        sent: List[Address] = [n for n in self._neighbors if self._send(payload, n)]
        return len(sent)

    def _send(self, payload: bytes, address: Address) -> bool:
        if self._transport is None:
            logger.warning("no transport attached, cannot send to %s", address)
            return False
        try:
            self._transport.send(payload, address)
        except OSError as exc:
            logger.warning("send to %s failed: %s", address, exc)
            return False
        return True
