"""
asyncio UDP transport for router nodes.

One socket, one fixed port for both directions. Peers are addressed by their
raw textual address; the port is implied.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple
import asyncio
import logging

from routing import Address, Transport

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9000

DatagramHandler = Callable[[bytes, Address], object]


class TransportBindError(OSError):
    """The UDP socket could not be bound; fatal at startup."""


class UdpTransport(asyncio.DatagramProtocol, Transport):
    """
    Datagram protocol that hands every inbound payload to a handler.

    The handler runs on the event loop; an exception from it is logged and
    the socket keeps receiving.
    """

    def __init__(self, handler: DatagramHandler, port: int = DEFAULT_PORT) -> None:
        self._handler = handler
        self._port = port
        self._transport: Optional[asyncio.DatagramTransport] = None

    @property
    def port(self) -> int:
        return self._port

    @property
    def sockname(self) -> Optional[Tuple[str, int]]:
        """Locally bound (host, port), or None before binding."""
        if self._transport is None:
            return None
        return self._transport.get_extra_info("sockname")

    # --- asyncio.DatagramProtocol ---------------------------------------------

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        sender = addr[0]
        try:
            self._handler(data, sender)
        except Exception:
            logger.exception("error while handling datagram from %s", sender)

    def error_received(self, exc: Exception) -> None:
        logger.warning("socket error: %s", exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._transport = None

    # --- Transport ------------------------------------------------------------

    def send(self, payload: bytes, address: Address) -> None:
        if self._transport is None:
            raise OSError(f"socket closed, cannot send to {address}")
        self._transport.sendto(payload, (address, self._port))

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()


async def open_udp_transport(
    handler: DatagramHandler,
    host: str = "0.0.0.0",
    port: int = DEFAULT_PORT,
) -> UdpTransport:
    """
    Bind the UDP socket. Raises TransportBindError when that fails.
    """
    loop = asyncio.get_running_loop()
    try:
        _, protocol = await loop.create_datagram_endpoint(
            lambda: UdpTransport(handler, port),
            local_addr=(host, port),
        )
    except OSError as exc:
        raise TransportBindError(f"cannot bind udp {host}:{port}: {exc}") from exc
    logger.info("listening on udp %s:%d", host, port)
    return protocol
