"""End-to-end scenarios over localhost UDP.

Mirrors the usage pattern the receiver is built for: a sender fires
datagrams at the bound port while the caller alternates blocking
receives with a paced non-blocking poll loop.
"""

import time

import pytest

from udprar.engine import AsyncioEngine
from udprar.errors import BindError
from udprar.receiver import UdpReceiver

from conftest import find_free_port, send_udp

_POLL_INTERVAL_S = 0.01


@pytest.mark.integration
class TestScenarios:
    """Scenarios from the receiver's usage synopsis."""

    def test_blocking_text_on_default_port(self) -> None:
        """'message1' sent to 127.0.0.1:8861 comes back from receive_sync."""
        with UdpReceiver("127.0.0.1", 8861) as rar:
            send_udp(8861, b"message1")
            assert rar.receive_sync() == "message1"

    @pytest.mark.parametrize("engine_cls", [None, AsyncioEngine])
    def test_poll_loop_picks_up_late_datagram(self, engine_cls) -> None:
        """Nine empty polls, a send before the tenth, then exactly one hit."""
        port = find_free_port()
        engine = engine_cls() if engine_cls else None
        rar = UdpReceiver("127.0.0.1", port, engine=engine)
        try:
            for _ in range(9):
                assert rar.receive_async() == ""
                time.sleep(_POLL_INTERVAL_S)

            send_udp(port, b"message2")

            received = ""
            polls = 0
            while not received and polls < 100:
                received = rar.receive_async()
                polls += 1
                time.sleep(_POLL_INTERVAL_S)

            assert received == "message2"

            for _ in range(10):
                assert rar.receive_async() == ""
                time.sleep(_POLL_INTERVAL_S)
        finally:
            rar.close()
            if engine is not None:
                engine.close()

    def test_blocking_binary(self) -> None:
        """receive_binary_sync returns the sent bytes."""
        port = find_free_port()
        with UdpReceiver("127.0.0.1", port) as rar:
            send_udp(port, b"message3")
            assert rar.receive_binary_sync() == b"message3"

    def test_async_binary_preserves_zero_and_high_bytes(self) -> None:
        """Zero and high-bit bytes survive the non-blocking path."""
        port = find_free_port()
        m4 = b"message4" + bytes([0x00, 0x01, 0x80, 0xFF])
        with UdpReceiver("127.0.0.1", port) as rar:
            data = b""
            i = 0
            while not data and i < 100:
                data = rar.receive_binary_async()
                time.sleep(_POLL_INTERVAL_S)
                i += 1
                if i == 10:
                    send_udp(port, m4)

            assert data == m4
            assert len(data) == 12

    def test_text_and_binary_agree(self) -> None:
        """The text and binary blocking calls see the same bytes."""
        port = find_free_port()
        payload = b"message4\x00\x01\x80\xff"
        with UdpReceiver("127.0.0.1", port) as rar:
            send_udp(port, payload)
            send_udp(port, payload)
            binary = rar.receive_blocking()
            text = rar.receive_blocking_text()
            assert binary == payload
            assert text == binary.decode("latin-1")

    def test_port_already_bound(self) -> None:
        """A second receiver on a bound port fails at construction."""
        port = find_free_port()
        with UdpReceiver("127.0.0.1", port):
            with pytest.raises(BindError):
                UdpReceiver("127.0.0.1", port)

    def test_full_sequence(self) -> None:
        """Sync text, async text, sync binary, async binary on one receiver."""
        port = find_free_port()
        with UdpReceiver("127.0.0.1", port) as rar:
            send_udp(port, b"message1")
            assert rar.receive_sync() == "message1"

            datagram = ""
            for i in range(1, 100):
                datagram = rar.receive_async()
                if datagram:
                    break
                time.sleep(_POLL_INTERVAL_S)
                if i == 10:
                    send_udp(port, b"message2")
            assert datagram == "message2"

            send_udp(port, b"message3")
            assert rar.receive_binary_sync() == b"message3"

            m4 = b"message4\x00\x01\x80\xff"
            data = b""
            for i in range(1, 100):
                data = rar.receive_binary_async()
                if data:
                    break
                time.sleep(_POLL_INTERVAL_S)
                if i == 10:
                    send_udp(port, m4)
            assert data == m4
