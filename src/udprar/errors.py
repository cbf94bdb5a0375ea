"""Exception types raised by udprar.

Both derive from :class:`OSError` so callers that already handle socket
faults keep working; the distinct types let them tell a setup failure
from a fault on a receive in progress.

Example:
    >>> from udprar.errors import BindError
    >>> try:
    ...     UdpReceiver("127.0.0.1", port_in_use)
    ... except BindError as exc:
    ...     exc.endpoint.port
    8861
"""


class BindError(OSError):
    """The socket could not be opened or bound to the requested endpoint.

    Raised from construction only; no usable receiver exists afterwards.

    Args:
        endpoint: The endpoint that failed to bind.
        reason: Underlying error message.
    """

    def __init__(self, endpoint, reason: str):
        super().__init__("cannot bind %s:%s: %s" % (endpoint.address, endpoint.port, reason))
        self.endpoint = endpoint


class ReceiveError(OSError):
    """A transport fault surfaced from a blocking or non-blocking receive.

    Never used for "no data yet"; that outcome is an empty result.
    """

    def __init__(self, endpoint, reason: str):
        super().__init__("receive failed on %s:%s: %s" % (endpoint.address, endpoint.port, reason))
        self.endpoint = endpoint
