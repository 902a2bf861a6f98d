"""
Interactive command surface for a running router.

    send <destination> <text>        send a text message
    !<source>;<destination>;<text>   same, in wire notation
    table                            show the routing table
    help                             list commands
    quit | exit                      stop the router
"""

from __future__ import annotations

from typing import Callable, Optional, TextIO
import asyncio
import sys
import threading

from forwarding import ForwardOutcome, ForwardResult
from protocol import DATA_PREFIX, DataMessage, Malformed, decode
from routers import RouterNode
from routing import format_table

HELP_TEXT = """commands:
  send <destination> <text>        send a text message
  !<source>;<destination>;<text>   send a text message (wire notation)
  table                            show the routing table
  help                             show this help
  quit                             stop the router"""

_OUTCOME_TEXT = {
    ForwardOutcome.DELIVERED: "delivered locally",
    ForwardOutcome.FORWARDED: "sent via {next_hop}",
    ForwardOutcome.NO_ROUTE: "no route to {destination}",
    ForwardOutcome.LOOP_AVOIDED: "not sent: next hop {next_hop} loops back",
    ForwardOutcome.SEND_FAILED: "send via {next_hop} failed",
}


def format_delivery(message: DataMessage) -> str:
    return f"message from {message.source} to {message.destination}: {message.text}"


class Console:
    """
    Executes command lines against one router node.

    Output goes to `out`; execute() returns False once the user asked to quit.
    """

    def __init__(self, node: RouterNode, out: Optional[TextIO] = None) -> None:
        self._node = node
        self._out = out if out is not None else sys.stdout

    def execute(self, line: str) -> bool:
        line = line.strip()
        if not line:
            return True
        if line.startswith(DATA_PREFIX):
            self._send_wire(line)
            return True

        command, _, rest = line.partition(" ")
        command = command.lower()
        if command in ("quit", "exit"):
            return False
        if command == "table":
            self._print(format_table(self._node.table, self._node.address))
        elif command == "help":
            self._print(HELP_TEXT)
        elif command == "send":
            destination, _, text = rest.strip().partition(" ")
            if not destination or not text:
                self._print("usage: send <destination> <text>")
            else:
                self._report(destination, self._node.send_text(destination, text))
        else:
            self._print(f"unknown command {command!r}; try 'help'")
        return True

    def _send_wire(self, line: str) -> None:
        message = decode(line.encode("utf-8"))
        if isinstance(message, Malformed) or not isinstance(message, DataMessage):
            self._print("usage: !<source>;<destination>;<text>")
            return
        if message.source != self._node.address:
            self._print(
                f"warning: source {message.source} is not this router, "
                f"sending as {self._node.address}"
            )
        self._report(message.destination, self._node.send_text(message.destination, message.text))

    def _report(self, destination: str, result: ForwardResult) -> None:
        template = _OUTCOME_TEXT[result.outcome]
        self._print(template.format(destination=destination, next_hop=result.next_hop))

    def _print(self, text: str) -> None:
        print(text, file=self._out, flush=True)


async def run_console(
    console: Console,
    readline: Optional[Callable[[], str]] = None,
    prompt: Optional[str] = None,
    out: Optional[TextIO] = None,
) -> None:
    """
    Read commands until quit or end of input.

    Blocking reads happen on a daemon thread so shutdown never waits on the
    terminal; each command is executed back on the event loop.
    """
    loop = asyncio.get_running_loop()
    lines: "asyncio.Queue[str]" = asyncio.Queue()
    readline = readline or sys.stdin.readline
    out = out if out is not None else sys.stdout

    def pump() -> None:
        while True:
            line = readline()
            try:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            except RuntimeError:
                return  # loop already closed
            if not line:
                return

    threading.Thread(target=pump, name="console-input", daemon=True).start()
    while True:
        if prompt:
            print(prompt, end="", file=out, flush=True)
        line = await lines.get()
        if not line or not console.execute(line):
            return
