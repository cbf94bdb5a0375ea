"""Shared helpers and fixtures for udprar tests."""

import socket
import time

import pytest

from udprar.receiver import UdpReceiver


def find_free_port() -> int:
    """Find an available UDP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def send_udp(port: int, data: bytes) -> None:
    """Send a UDP datagram to localhost:port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.sendto(data, ("127.0.0.1", port))
    sock.close()


def poll_until_data(receiver, max_polls: int = 200, interval_s: float = 0.01) -> bytes:
    """Poll receive_binary_async until it returns data or polls run out."""
    for _ in range(max_polls):
        data = receiver.receive_binary_async()
        if data:
            return data
        time.sleep(interval_s)
    return b""


class FakeEngine:
    """Test double for IoEngine: records launches, completes on demand.

    ``poll_one`` fires the queued outcome, if any, set via
    :meth:`deliver` or :meth:`break_with`.
    """

    def __init__(self):
        self.launches = 0
        self.polls = 0
        self.cancelled = 0
        self.closed = False
        self._op = None
        self._outcome = None

    def start_receive(self, sock, buffer, on_complete, on_error) -> None:
        """Record the launch and hold on to its callbacks."""
        self.launches += 1
        self._op = (buffer, on_complete, on_error)

    def deliver(self, data: bytes) -> None:
        """Queue *data* to be written into the buffer on the next poll."""
        self._outcome = ("data", data)

    def break_with(self, exc: Exception) -> None:
        """Queue *exc* to be reported on the next poll."""
        self._outcome = ("error", exc)

    def poll_one(self) -> int:
        """Fire the queued outcome for the outstanding receive."""
        self.polls += 1
        if self._op is None or self._outcome is None:
            return 0
        buffer, on_complete, on_error = self._op
        kind, value = self._outcome
        self._op = None
        self._outcome = None
        if kind == "data":
            buffer[:len(value)] = value
            on_complete(len(value))
        else:
            on_error(value)
        return 1

    def cancel(self, sock) -> None:
        """Drop the outstanding receive."""
        self.cancelled += 1
        self._op = None

    def close(self) -> None:
        """Mark closed."""
        self.closed = True


@pytest.fixture()
def port():
    """A free UDP port on localhost."""
    return find_free_port()


@pytest.fixture()
def receiver(port):
    """A UdpReceiver bound to localhost on a free port."""
    rar = UdpReceiver("127.0.0.1", port)
    yield rar
    rar.close()


@pytest.fixture()
def fake_engine():
    """A FakeEngine instance."""
    return FakeEngine()
