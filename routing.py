"""
Routing abstractions for the hop-count overlay.

Defines route entries, the immutable routing table, change events produced by
recomputation, and the Transport interface the router sends through.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

# Node identifiers are raw textual addresses (e.g. IP literals), compared exactly.
Address = str


@dataclass(frozen=True)
class RouteEntry:
    """
    Single forwarding entry in a node's routing table.
    """
    destination: Address
    metric: int      # hop count
    next_hop: Address


class RoutingTable:
    """
    Immutable destination -> RouteEntry mapping.

    Tables are rebuilt wholesale on every recomputation and swapped in by the
    owning router, so a reader never sees one half-updated.
    """

    def __init__(self, entries: Optional[Mapping[Address, RouteEntry]] = None) -> None:
        self._entries: Dict[Address, RouteEntry] = dict(entries or {})

    def get(self, destination: Address) -> Optional[RouteEntry]:
        return self._entries.get(destination)

    def next_hop(self, destination: Address) -> Optional[Address]:
        entry = self._entries.get(destination)
        return entry.next_hop if entry else None

    def entries(self) -> List[RouteEntry]:
        """Entries sorted by destination."""
        return [self._entries[dest] for dest in sorted(self._entries)]

    def advertised_routes(self) -> List[Tuple[Address, int]]:
        """(destination, metric) pairs in the order they go on the wire."""
        return [(entry.destination, entry.metric) for entry in self.entries()]

    def __contains__(self, destination: object) -> bool:
        return destination in self._entries

    def __iter__(self) -> Iterator[Address]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoutingTable):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"RoutingTable({self.entries()!r})"


def format_table(table: RoutingTable, self_address: Address) -> str:
    """
    Human-readable rendering, one row per destination.
    """
    lines = [
        f"routing table of {self_address}",
        f"{'destination':<20}{'metric':>8}  next hop",
    ]
    for entry in table.entries():
        lines.append(f"{entry.destination:<20}{entry.metric:>8}  {entry.next_hop}")
    if not len(table):
        lines.append("(empty)")
    return "\n".join(lines)


class ChangeKind(Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass(frozen=True)
class RouteChange:
    """
    Difference for one destination between the previous and the new table.

    `before` is None for ADDED, `after` is None for REMOVED.
    """
    kind: ChangeKind
    destination: Address
    before: Optional[RouteEntry]
    after: Optional[RouteEntry]

    def describe(self) -> str:
        if self.kind is ChangeKind.ADDED and self.after is not None:
            return (
                f"route added: {self.destination} via {self.after.next_hop}, "
                f"metric {self.after.metric}"
            )
        if self.kind is ChangeKind.UPDATED and self.before is not None and self.after is not None:
            return (
                f"route updated: {self.destination} "
                f"(was via {self.before.next_hop}, metric {self.before.metric}; "
                f"now via {self.after.next_hop}, metric {self.after.metric})"
            )
        if self.before is not None:
            return (
                f"route removed: {self.destination} "
                f"(was via {self.before.next_hop}, metric {self.before.metric})"
            )
        return f"route {self.kind.value}: {self.destination}"


@dataclass(frozen=True)
class RecomputeResult:
    table: RoutingTable
    changes: Tuple[RouteChange, ...]

    @property
    def changed(self) -> bool:
        return bool(self.changes)


class Transport(ABC):
    """
    Fire-and-forget datagram sender used by the router.
    """

    @abstractmethod
    def send(self, payload: bytes, address: Address) -> None:
        """
        Send one datagram to address.

        May raise OSError; callers treat that as a per-destination failure.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the underlying socket."""
        raise NotImplementedError
