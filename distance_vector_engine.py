"""
Hop-count Bellman–Ford distance-vector engine.

Rebuilds the whole table from the most recent neighbour snapshots on every
call instead of patching the previous one.
"""

from typing import Dict, List, Mapping, Sequence

from algorithms import DistanceVectorEngine
from neighbors import NeighborState
from routing import Address, ChangeKind, RecomputeResult, RouteChange, RouteEntry, RoutingTable


class HopCountDistanceVectorEngine(DistanceVectorEngine):
    """
    Single-pass recomputation over alive configured neighbours.

    No split horizon or poison reverse: a neighbour may echo back a route it
    learned from us, so a stale route can count upwards until its next hop
    times out.
    """

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
        Seed direct routes for alive neighbours, then relax over their adverts.

        Neighbours and their advertised destinations are visited in sorted
        order, and a candidate only replaces an existing one when strictly
        cheaper, so ties always go to the first neighbour in address order.
        """
        alive: List[Address] = []
        for neighbor in sorted(set(configured_neighbors)):
            if neighbor == self_address:
                continue
            state = neighbor_states.get(neighbor)
            if state is None or now - state.last_contact_at > timeout_window:
                continue
            alive.append(neighbor)

        best: Dict[Address, RouteEntry] = {}
        for neighbor in alive:
            best[neighbor] = RouteEntry(neighbor, 1, neighbor)

        for neighbor in alive:
            advertised = neighbor_states[neighbor].advertised_routes
            for dest in sorted(advertised):
                if dest == self_address:
                    continue
                candidate = advertised[dest] + 1
                current = best.get(dest)
                if current is None or candidate < current.metric:
                    best[dest] = RouteEntry(dest, candidate, neighbor)

        table = RoutingTable(best)
        return RecomputeResult(table, tuple(diff_tables(previous, table)))


def diff_tables(old: RoutingTable, new: RoutingTable) -> List[RouteChange]:
    """
    Change events turning old into new, ordered by destination.
    """
    changes: List[RouteChange] = []
    for dest in sorted(set(old) | set(new)):
        before = old.get(dest)
        after = new.get(dest)
        if before is None and after is not None:
            changes.append(RouteChange(ChangeKind.ADDED, dest, None, after))
        elif before is not None and after is None:
            changes.append(RouteChange(ChangeKind.REMOVED, dest, before, None))
        elif before != after:
            changes.append(RouteChange(ChangeKind.UPDATED, dest, before, after))
    return changes
