"""Local TCP port allocation for the dev server."""

from __future__ import annotations

import socket

from spadev.constants import LOOPBACK_ADDRESS


def find_available_port(host: str = LOOPBACK_ADDRESS) -> int:
    """Ask the OS for a free TCP port on the loopback interface.

    Binds a listener to port 0, reads back the port the OS assigned and closes
    the listener again. The port is only known to be free at the moment of the
    check: another process may take it before the dev server binds it. That
    window is accepted for a development-only tool; a server that loses the race
    fails to start and reports it on stderr.

    Args:
        host: Address to bind the probe listener on (default: 127.0.0.1)

    Returns:
        The port number the OS handed out
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        sock.listen(1)
        return int(sock.getsockname()[1])
