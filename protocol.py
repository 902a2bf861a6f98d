"""
Wire codec for the three overlay message kinds.

    route advert     #<dest>-<metric>#<dest>-<metric>...   (empty table: "#")
    router announce  *<address>
    text/data        !<source>;<destination>;<text>

Decoding is total: every byte string maps to one of the message types below,
including UnknownMessage and Malformed, and never raises.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple, Union

from routing import Address

ADVERT_PREFIX = "#"
ANNOUNCE_PREFIX = "*"
DATA_PREFIX = "!"

_METRIC_SEPARATOR = "-"
_DATA_SEPARATOR = ";"
ENCODING = "utf-8"


@dataclass(frozen=True)
class RouteAdvert:
    """Full route snapshot advertised by a neighbour."""
    routes: Mapping[Address, int]


@dataclass(frozen=True)
class RouterAnnounce:
    """The sender vouches that it can reach `address`."""
    address: Address


@dataclass(frozen=True)
class DataMessage:
    source: Address
    destination: Address
    text: str


@dataclass(frozen=True)
class UnknownMessage:
    raw: bytes


@dataclass(frozen=True)
class Malformed:
    kind: str
    reason: str
    raw: bytes


Message = Union[RouteAdvert, RouterAnnounce, DataMessage, UnknownMessage, Malformed]


# --- Encoding ---------------------------------------------------------------

def encode_advert(routes: Iterable[Tuple[Address, int]]) -> bytes:
    parts = [f"{ADVERT_PREFIX}{dest}{_METRIC_SEPARATOR}{metric}" for dest, metric in routes]
    return ("".join(parts) or ADVERT_PREFIX).encode(ENCODING)


def encode_announce(address: Address) -> bytes:
    return f"{ANNOUNCE_PREFIX}{address}".encode(ENCODING)


def encode_data(message: DataMessage) -> bytes:
    return (
        f"{DATA_PREFIX}{message.source}{_DATA_SEPARATOR}"
        f"{message.destination}{_DATA_SEPARATOR}{message.text}"
    ).encode(ENCODING)


def encode(message: Union[RouteAdvert, RouterAnnounce, DataMessage]) -> bytes:
    if isinstance(message, RouteAdvert):
        return encode_advert(sorted(message.routes.items()))
    if isinstance(message, RouterAnnounce):
        return encode_announce(message.address)
    if isinstance(message, DataMessage):
        return encode_data(message)
    raise TypeError(f"cannot encode {type(message).__name__}")


# --- Decoding ---------------------------------------------------------------

def decode(raw: bytes) -> Message:
    try:
        text = raw.decode(ENCODING)
    except UnicodeDecodeError:
        return Malformed("unknown", "payload is not valid UTF-8", raw)

    if text.startswith(DATA_PREFIX):
        return _decode_data(text[len(DATA_PREFIX):], raw)

    # Control messages tolerate surrounding whitespace (e.g. a trailing newline).
    stripped = text.strip()
    if stripped.startswith(ADVERT_PREFIX):
        return _decode_advert(stripped, raw)
    if stripped.startswith(ANNOUNCE_PREFIX):
        return _decode_announce(stripped[len(ANNOUNCE_PREFIX):], raw)
    return UnknownMessage(raw)


def _decode_advert(text: str, raw: bytes) -> Message:
    routes: Dict[Address, int] = {}
    for part in text.split(ADVERT_PREFIX):
        if not part:
            continue
        dest, sep, metric_text = part.rpartition(_METRIC_SEPARATOR)
        if not sep or not dest:
            return Malformed("advert", f"entry {part!r} lacks '<dest>-<metric>'", raw)
        # "a--1" is a negative metric, not a route to "a-".
        if dest.endswith(_METRIC_SEPARATOR):
            return Malformed("advert", f"metric in {part!r} is negative", raw)
        if not (metric_text.isascii() and metric_text.isdigit()):
            return Malformed("advert", f"metric {metric_text!r} is not a non-negative integer", raw)
        routes[dest] = int(metric_text)
    return RouteAdvert(routes)


def _decode_announce(address: str, raw: bytes) -> Message:
    address = address.strip()
    if not address:
        return Malformed("announce", "missing address", raw)
    return RouterAnnounce(address)


def _decode_data(payload: str, raw: bytes) -> Message:
    # Only the first two separators are structural; the text keeps the rest.
    fields = payload.split(_DATA_SEPARATOR, 2)
    if len(fields) < 3:
        return Malformed("data", "expected '<source>;<destination>;<text>'", raw)
    source, destination, text = fields
    if not source or not destination:
        return Malformed("data", "empty source or destination", raw)
    return DataMessage(source, destination, text)
