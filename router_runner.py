"""
CLI to run one overlay router.

Loads the neighbour list and optional YAML settings, binds the UDP port,
announces the router, and serves the interactive console until quit.

Exit status: 0 on normal shutdown, 1 when the configuration cannot be loaded
or the socket cannot be bound.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple
import argparse
import asyncio
import logging
import sys

from config import ConfigError, NodeSettings, load_neighbors, load_settings
from console import Console, format_delivery, run_console
from routers import RouterNode
from routing import Address
from transport import TransportBindError, open_udp_transport

logger = logging.getLogger("router_runner")

DEFAULT_NEIGHBORS_FILE = "neighbors.txt"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a distance-vector overlay router.")
    parser.add_argument("address", help="address of this router, e.g. its IP")
    parser.add_argument(
        "neighbors",
        nargs="?",
        default=DEFAULT_NEIGHBORS_FILE,
        type=Path,
        help=f"neighbour list file (default: {DEFAULT_NEIGHBORS_FILE})",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--port", type=int, default=None, help="UDP port, overrides the settings file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging level (default: INFO)",
    )
    return parser.parse_args(argv)


async def run_router(
    address: Address,
    neighbors: Tuple[Address, ...],
    settings: NodeSettings,
    readline: Optional[Callable[[], str]] = None,
) -> None:
    """
    Serve one router until the console is closed.
    """
    node = RouterNode(
        address,
        neighbors,
        neighbor_timeout=settings.neighbor_timeout,
        advert_interval=settings.advert_interval,
        liveness_check_interval=settings.liveness_check_interval,
        table_log_interval=settings.table_log_interval,
        on_deliver=lambda message: print(format_delivery(message), flush=True),
    )
    transport = await open_udp_transport(node.handle_datagram, settings.bind_host, settings.port)
    node.attach_transport(transport)
    node.start()
    node.log_table()
    try:
        await run_console(Console(node), readline=readline, prompt=f"router({address})> ")
    finally:
        await node.stop()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, datefmt="%H:%M:%S")

    try:
        settings = load_settings(args.config).with_overrides(port=args.port)
        neighbors = load_neighbors(args.neighbors, args.address)
    except ConfigError as exc:
        logger.critical("%s", exc)
        return 1

    if not neighbors:
        logger.warning("no neighbours configured in %s", args.neighbors)
    logger.info("router %s, neighbours from %s: %s", args.address, args.neighbors, list(neighbors))

    try:
        asyncio.run(run_router(args.address, neighbors, settings))
    except TransportBindError as exc:
        logger.critical("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
