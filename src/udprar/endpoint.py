"""Endpoint management: open, bind and size the receive socket.

The socket is opened and bound once; its ``SO_RCVBUF`` size is queried
once and used as the capacity of the receive buffer.  ``SO_REUSEADDR``
is not set, so a second bind to a busy port fails.

Example:
    >>> from udprar.endpoint import Endpoint, open_socket, receive_buffer_size
    >>> sock = open_socket(Endpoint("127.0.0.1", 8861))
    >>> receive_buffer_size(sock) > 0
    True
    >>> sock.close()
"""

import logging
import socket
from dataclasses import dataclass

from udprar.errors import BindError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """Local interface address and UDP port to listen on.

    The address is that of the *receiving* network interface, e.g.
    ``"127.0.0.1"`` or ``"0.0.0.0"`` for all interfaces.
    """

    address: str
    port: int


def open_socket(endpoint: Endpoint) -> socket.socket:
    """Create an IPv4 UDP socket bound to *endpoint*.

    Raises:
        BindError: Malformed address, port out of range or in use,
            insufficient privilege, or interface unavailable.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        raise BindError(endpoint, str(exc)) from exc

    try:
        sock.bind((endpoint.address, endpoint.port))
    except (OSError, OverflowError, TypeError) as exc:
        sock.close()
        raise BindError(endpoint, str(exc)) from exc

    return sock


def receive_buffer_size(sock: socket.socket) -> int:
    """Return the OS receive buffer size of *sock* in bytes."""
    size = sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)
    log.debug("bound %s, SO_RCVBUF=%d", sock.getsockname(), size)
    return size
