"""systemd sd_notify helpers.

Messages go to the datagram socket named by ``$NOTIFY_SOCKET``. Every
function is a no-op when the variable is unset, so running outside systemd
needs no special handling.
"""

from __future__ import annotations

import logging
import os
import socket

_logger = logging.getLogger("volsched.systemd_notify")


def _send(*fields: str) -> None:
    address = os.environ.get("NOTIFY_SOCKET")
    if not address:
        return
    if address.startswith("@"):
        address = "\0" + address[1:]  # abstract namespace
    payload = "\n".join(fields).encode()
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
            sock.sendto(payload, address)
    except OSError as exc:
        _logger.debug("[sd_notify] Failed to send %r: %s", fields, exc)


def ready(message: str | None = None) -> None:
    """Report startup complete, optionally with an initial status line."""
    if message:
        _send("READY=1", f"STATUS={message}")
    else:
        _send("READY=1")


def status(message: str) -> None:
    _send(f"STATUS={message}")


def stopping() -> None:
    _send("STOPPING=1")
