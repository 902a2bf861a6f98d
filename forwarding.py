"""
Hop-by-hop forwarding of data messages over the current routing table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging

from protocol import DataMessage, encode_data
from routing import Address, RoutingTable

logger = logging.getLogger(__name__)


class ForwardOutcome(Enum):
    DELIVERED = "delivered"
    FORWARDED = "forwarded"
    NO_ROUTE = "no_route"
    LOOP_AVOIDED = "loop_avoided"
    SEND_FAILED = "send_failed"


@dataclass(frozen=True)
class ForwardResult:
    outcome: ForwardOutcome
    next_hop: Optional[Address] = None


class ForwardingEngine:
    """
    Decides, for each data message, between local delivery, forwarding and drop.

    The only loop protection is refusing to hand a message straight back to
    the neighbour it arrived from; longer cycles are left to convergence.
    """

    def __init__(
        self,
        self_address: Address,
        table: Callable[[], RoutingTable],
        transmit: Callable[[bytes, Address], bool],
        deliver: Optional[Callable[[DataMessage], None]] = None,
    ) -> None:
        self._self = self_address
        self._table = table
        self._transmit = transmit
        self._deliver = deliver

    def route(self, destination: Address) -> Optional[Address]:
        return self._table().next_hop(destination)

    def forward(self, message: DataMessage, arrived_from: Optional[Address] = None) -> ForwardResult:
        """
        Deliver, forward unchanged, or drop one data message.

        arrived_from is None for messages originated locally.
        """
        if message.destination == self._self:
            logger.info(
                "message delivered from %s: %r", message.source, message.text
            )
            if self._deliver is not None:
                self._deliver(message)
            return ForwardResult(ForwardOutcome.DELIVERED)

        next_hop = self.route(message.destination)
        if next_hop is None:
            logger.warning(
                "no route to %s, dropping message from %s", message.destination, message.source
            )
            return ForwardResult(ForwardOutcome.NO_ROUTE)

        if arrived_from is not None and next_hop == arrived_from:
            logger.warning(
                "next hop for %s is the sender %s, not forwarding", message.destination, arrived_from
            )
            return ForwardResult(ForwardOutcome.LOOP_AVOIDED, next_hop)

        if not self._transmit(encode_data(message), next_hop):
            return ForwardResult(ForwardOutcome.SEND_FAILED, next_hop)
        logger.info(
            "forwarding message %s -> %s via %s", message.source, message.destination, next_hop
        )
        return ForwardResult(ForwardOutcome.FORWARDED, next_hop)
