#!/usr/bin/env python3
"""Fire-and-forget UDP sender for exercising udprar by hand.

Sends each argument as one datagram.  ``--hex`` treats the arguments
as hex strings so binary payloads (zero and high-bit bytes) can be sent.

Usage:
    python send_datagram.py [--host H] [--port P] [--hex] <payload>...

Example:
    python send_datagram.py message1
    python send_datagram.py --hex 6d657373616765340001 80ff
"""

import argparse
import socket


def send(host, port, payloads):
    """Send each payload in *payloads* as one datagram to host:port.

    Args:
        host: Destination address (str).
        port: Destination UDP port (int).
        payloads: Iterable of bytes.

    Returns:
        int: Number of datagrams sent.
    """
    count = 0
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for payload in payloads:
            sock.sendto(payload, (host, port))
            count += 1
    return count


def main():
    """Parse args and send."""
    parser = argparse.ArgumentParser(description="send UDP datagrams")
    parser.add_argument("payload", nargs="+")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8861)
    parser.add_argument("--hex", action="store_true",
                        help="payloads are hex strings")
    args = parser.parse_args()

    if args.hex:
        payloads = [bytes.fromhex(p) for p in args.payload]
    else:
        payloads = [p.encode() for p in args.payload]

    n = send(args.host, args.port, payloads)
    print("sent {} datagram(s) to {}:{}".format(n, args.host, args.port))


if __name__ == "__main__":
    main()
