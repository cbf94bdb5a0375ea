"""Option-free UDP receiver with blocking and non-blocking reception.

The socket is opened and bound, and a buffer the size of the socket's
receive buffer is allocated, as soon as a :class:`UdpReceiver` is
created.  Every receive, blocking or not, lands in that one buffer and
is copied out before being returned.

Not thread-safe: use an instance from a single thread only, and do not
start a blocking receive while a non-blocking one is outstanding.

Example:
    >>> from udprar.receiver import UdpReceiver
    >>> with UdpReceiver("127.0.0.1", 8861) as rar:
    ...     datagram = rar.receive_sync()          # blocks
    ...     data = b""
    ...     while not data:
    ...         data = rar.receive_binary_async()  # returns at once
    ...         time.sleep(0.1)                    # do other work
"""

import logging

from udprar.endpoint import Endpoint, open_socket, receive_buffer_size
from udprar.engine import IoEngine, SelectorEngine
from udprar.errors import ReceiveError
from udprar.state import PendingReceive, ReceiveState

log = logging.getLogger(__name__)

# One character per byte, so text is a lossless view of the datagram.
TEXT_ENCODING = "latin-1"


class UdpReceiver:
    """Receive UDP datagrams on a bound local endpoint.

    Args:
        address: Address of the *receiving* network interface.
        port: UDP port to listen on.
        engine: Asynchronous I/O engine for the non-blocking path.
            Defaults to a private :class:`~udprar.engine.SelectorEngine`.

    Raises:
        BindError: The endpoint could not be bound.

    Closing the receiver while a non-blocking receive is outstanding
    abandons that receive; a datagram it would have captured is lost.
    """

    def __init__(self, address: str, port: int, engine: IoEngine | None = None):
        """Bind the socket and allocate the receive buffer."""
        self._endpoint = Endpoint(address, port)
        self._sock = open_socket(self._endpoint)
        try:
            self._buffer = bytearray(receive_buffer_size(self._sock))
            self._pending = PendingReceive()
            self._owns_engine = engine is None
            self._engine = engine if engine is not None else SelectorEngine()
        except BaseException:
            self._sock.close()
            raise
        self._closed = False

    @property
    def endpoint(self) -> Endpoint:
        """The bound endpoint."""
        return self._endpoint

    @property
    def buffer_size(self) -> int:
        """Capacity of the receive buffer, i.e. the largest datagram returned whole."""
        return len(self._buffer)

    @property
    def state(self) -> ReceiveState:
        """State of the non-blocking receive slot."""
        return self._pending.state

    def receive_binary_sync(self) -> bytes:
        """Receive one datagram, blocking until it arrives.

        Returns:
            Exactly the datagram's payload.

        Raises:
            ReceiveError: Socket error, or the receiver is closed.
            RuntimeError: A non-blocking receive is outstanding.
        """
        self._check_open()
        if self._pending.in_progress:
            raise RuntimeError("blocking receive while a non-blocking receive is outstanding")

        try:
            self._sock.setblocking(True)
            nbytes = self._sock.recv_into(self._buffer)
        except OSError as exc:
            raise ReceiveError(self._endpoint, str(exc)) from exc

        return self._copy_out(nbytes)

    def receive_sync(self, encoding: str = TEXT_ENCODING) -> str:
        """Receive one datagram as text, blocking until it arrives."""
        return self.receive_binary_sync().decode(encoding)

    def receive_binary_async(self) -> bytes:
        """Receive a datagram if one is ready, without blocking.

        The first call launches a receive and returns empty.  Later calls
        advance the engine by one step and return empty until the
        datagram has arrived, then return it and leave the slot idle for
        the next launch.

        Returns:
            The datagram's payload, or ``b""`` if none has arrived yet.

        Raises:
            ReceiveError: The outstanding receive failed, or the
                receiver is closed.
        """
        self._check_open()

        if self._pending.state is ReceiveState.IDLE:
            self._pending.launch()
            try:
                self._engine.start_receive(
                    self._sock, self._buffer, self._pending.complete, self._pending.fail,
                )
            except Exception as exc:
                if self._pending.state is ReceiveState.PENDING:
                    self._pending.fail(exc)
                self._pending.reset()
                if isinstance(exc, OSError):
                    raise ReceiveError(self._endpoint, str(exc)) from exc
                raise
            log.debug("%s:%d: receive launched", self._endpoint.address, self._endpoint.port)
            return b""

        if self._pending.state is ReceiveState.PENDING:
            self._engine.poll_one()

        if self._pending.state is ReceiveState.COMPLETED:
            data = self._copy_out(self._pending.bytes_ready)
            self._pending.reset()
            return data

        if self._pending.state is ReceiveState.FAILED:
            exc = self._pending.error
            self._pending.reset()
            raise ReceiveError(self._endpoint, str(exc)) from exc

        return b""

    def receive_async(self, encoding: str = TEXT_ENCODING) -> str:
        """Receive a datagram as text if one is ready, else ``""``."""
        return self.receive_binary_async().decode(encoding)

    receive_blocking = receive_binary_sync
    receive_blocking_text = receive_sync
    receive_nonblocking = receive_binary_async
    receive_nonblocking_text = receive_async

    def _copy_out(self, nbytes: int) -> bytes:
        """Copy the first *nbytes* of the shared buffer."""
        if nbytes == 0:
            log.debug("%s:%d: zero-length datagram", self._endpoint.address, self._endpoint.port)
        return bytes(self._buffer[:nbytes])

    def _check_open(self) -> None:
        if self._closed:
            raise ReceiveError(self._endpoint, "receiver is closed")

    def __enter__(self) -> "UdpReceiver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the socket, abandoning any outstanding receive."""
        if self._closed:
            return
        self._closed = True

        if self._pending.state is ReceiveState.PENDING:
            log.debug("%s:%d: closing with a receive outstanding",
                      self._endpoint.address, self._endpoint.port)
        self._engine.cancel(self._sock)
        if self._owns_engine:
            self._engine.close()

        try:
            self._sock.close()
        except OSError:
            pass
