"""
Neighbour liveness tracking.

Keeps, per neighbour, the time it was last heard from and the most recent full
route snapshot it advertised. State is never dropped on timeout; an expired
neighbour is only excluded from recomputation until it is heard again.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional
import time

from routing import Address

Clock = Callable[[], float]


@dataclass
class NeighborState:
    address: Address
    last_contact_at: float
    # Replaced wholesale by each advert, never merged.
    advertised_routes: Dict[Address, int] = field(default_factory=dict)


class NeighborLivenessTracker:
    """
    Per-neighbour last-contact timestamps and advertised snapshots.
    """

    def __init__(
        self,
        neighbors: Iterable[Address] = (),
        clock: Clock = time.monotonic,
    ) -> None:
        self._clock = clock
        self._states: Dict[Address, NeighborState] = {}
        # Seed configured neighbours as just contacted so they are reachable
        # straight after launch.
        now = clock()
        for address in neighbors:
            self._states.setdefault(address, NeighborState(address, now))

    def now(self) -> float:
        return self._clock()

    def touch(
        self,
        address: Address,
        routes_snapshot: Optional[Mapping[Address, int]] = None,
    ) -> NeighborState:
        """
        Record contact from address, replacing its snapshot when one is given.
        """
        now = self._clock()
        state = self._states.get(address)
        if state is None:
            state = NeighborState(address, now)
            self._states[address] = state
        state.last_contact_at = now
        if routes_snapshot is not None:
            state.advertised_routes = dict(routes_snapshot)
        return state

    def vouch(self, address: Address, vouched: Address) -> NeighborState:
        """
        Record that address can reach vouched at advertised metric 0.

        Sets a single snapshot entry; the next full advert replaces it.
        """
        state = self.touch(address)
        state.advertised_routes[vouched] = 0
        return state

    def state(self, address: Address) -> Optional[NeighborState]:
        return self._states.get(address)

    def states(self) -> Mapping[Address, NeighborState]:
        return dict(self._states)

    def is_alive(self, address: Address, now: float, timeout_window: float) -> bool:
        state = self._states.get(address)
        if state is None:
            return False
        return now - state.last_contact_at <= timeout_window

    def alive_neighbors(
        self, neighbors: Iterable[Address], now: float, timeout_window: float
    ) -> List[Address]:
        return [n for n in neighbors if self.is_alive(n, now, timeout_window)]
