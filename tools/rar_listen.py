#!/usr/bin/env python3
"""Demo listener -- log every datagram arriving on an endpoint.

Polls a UdpReceiver without blocking, sleeping between polls, or with
``--sync`` loops on the blocking receive.  Stops on SIGINT or SIGTERM;
in ``--sync`` mode the signal interrupts the blocked receive.

Usage:
    python rar_listen.py [--address A] [--port P] [--sync] [-v]

Example:
    python rar_listen.py --port 8861 -v
"""

import argparse
import logging
import signal
import sys
import threading

# Add parent src to path so we can import udprar
sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parents[1] / "src"))

from udprar.errors import BindError, ReceiveError
from udprar.receiver import UdpReceiver

log = logging.getLogger("rar_listen")

# Sleep between empty non-blocking polls, in seconds.
POLL_INTERVAL_S = 0.1

_shutdown = threading.Event()


def _on_signal(signum, frame):
    """Set the module-level shutdown event on SIGINT/SIGTERM."""
    _shutdown.set()


def _on_signal_interrupt(signum, frame):
    """Set the shutdown event and break out of a blocked receive."""
    _shutdown.set()
    raise KeyboardInterrupt


def run(receiver, shutdown, interval_s):
    """Poll *receiver* until *shutdown* is set.

    Sleeps *interval_s* between empty polls.  Returns the number of
    datagrams received.
    """
    count = 0

    while not shutdown.is_set():
        data = receiver.receive_nonblocking()
        if data:
            count += 1
            log.info("datagram %d: %d bytes %r", count, len(data), data)
        else:
            shutdown.wait(interval_s)

    return count


def run_sync(receiver, shutdown):
    """Loop on the blocking receive until *shutdown* is set or interrupted.

    Returns the number of datagrams received.
    """
    count = 0

    try:
        while not shutdown.is_set():
            data = receiver.receive_blocking()
            count += 1
            log.info("datagram %d: %d bytes %r", count, len(data), data)
    except KeyboardInterrupt:
        pass

    return count


def main(argv=None):
    """Parse args, bind, and log datagrams until signalled."""
    _shutdown.clear()

    parser = argparse.ArgumentParser(description="udprar demo listener")
    parser.add_argument("--address", default="127.0.0.1",
                        help="interface address to bind")
    parser.add_argument("--port", type=int, default=8861,
                        help="UDP port to bind")
    parser.add_argument("--sync", action="store_true",
                        help="use the blocking receive")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="enable debug logging")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=level,
    )

    try:
        receiver = UdpReceiver(args.address, args.port)
    except BindError as exc:
        log.error("%s", exc)
        return 1

    handler = _on_signal_interrupt if args.sync else _on_signal
    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)

    log.info(
        "listening: address=%s port=%d buffer=%d mode=%s",
        args.address, args.port, receiver.buffer_size,
        "sync" if args.sync else "async",
    )
    try:
        if args.sync:
            count = run_sync(receiver, _shutdown)
        else:
            count = run(receiver, _shutdown, POLL_INTERVAL_S)
    except ReceiveError as exc:
        log.warning("%s", exc)
        return 1
    finally:
        receiver.close()

    log.info("shutting down after %d datagrams", count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
