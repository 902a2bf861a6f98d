"""
Algorithm interfaces for routing.

Keeps route computation separate from router wiring and transport details.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from neighbors import NeighborState
from routing import Address, RecomputeResult, RoutingTable


class DistanceVectorEngine(ABC):
    """
    Interface for a full distance-vector recomputation.
    """

    @abstractmethod
    def recompute(
        self,
        configured_neighbors: Sequence[Address],
        neighbor_states: Mapping[Address, NeighborState],
        self_address: Address,
        now: float,
        timeout_window: float,
        previous: RoutingTable,
    ) -> RecomputeResult:
        """
        Rebuild the routing table from the latest neighbour snapshots.

        Args:
            configured_neighbors: neighbours allowed to act as next hops.
            neighbor_states: last contact and advertised routes per neighbour.
            self_address: local address; never appears in the result.
            now: current time on the same clock as the neighbour states.
            timeout_window: maximum silence before a neighbour is ignored.
            previous: table to diff the result against.

        Returns:
            The new table plus the change events relative to previous.
        """
        raise NotImplementedError
