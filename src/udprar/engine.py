"""Asynchronous I/O engines that drive the non-blocking receive.

An engine launches a receive into a caller-owned buffer and later, from
inside :meth:`poll_one`, reports the outcome through one of two
callbacks.  ``poll_one`` never blocks and makes at most one step of
progress per call; pacing between calls belongs to the caller.

Two engines are provided:

- :class:`SelectorEngine` -- a ``selectors`` readiness reactor (default).
- :class:`AsyncioEngine` -- a private ``asyncio`` event loop, stepped
  one iteration per poll.

Example:
    >>> engine = SelectorEngine()
    >>> engine.start_receive(sock, buf, on_complete, on_error)
    >>> engine.poll_one()  # 1 once a datagram has been read into buf
    0
"""

import asyncio
import logging
import selectors
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

log = logging.getLogger(__name__)

CompleteCallback = Callable[[int], None]
ErrorCallback = Callable[[Exception], None]


class IoEngine(Protocol):
    """What the receiver needs from an asynchronous I/O facility."""

    def start_receive(
        self,
        sock: socket.socket,
        buffer: bytearray,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Launch one receive into *buffer*; do not wait for it.

        Exactly one of the callbacks runs, normally from a later
        :meth:`poll_one`; the receiver also copes with one that runs
        before this returns.
        """
        ...

    def poll_one(self) -> int:
        """Run at most one ready completion without blocking."""
        ...

    def cancel(self, sock: socket.socket) -> None:
        """Abandon the outstanding receive on *sock*, if any."""
        ...

    def close(self) -> None:
        """Release engine resources."""
        ...


@dataclass
class _Receive:
    """One launched receive: target buffer and its callbacks."""

    buffer: bytearray
    on_complete: CompleteCallback
    on_error: ErrorCallback


class SelectorEngine:
    """Readiness reactor built on :mod:`selectors`.

    ``start_receive`` only registers interest; the datagram is read in
    ``poll_one`` once the selector reports the socket readable, so the
    buffer is not touched until then.
    """

    def __init__(self):
        self._selector = selectors.DefaultSelector()

    def start_receive(self, sock, buffer, on_complete, on_error) -> None:
        sock.setblocking(False)
        try:
            self._selector.register(
                sock, selectors.EVENT_READ, _Receive(buffer, on_complete, on_error),
            )
        except KeyError:
            raise RuntimeError("receive already outstanding on fd %d" % sock.fileno()) from None

    def poll_one(self) -> int:
        # Windows select() rejects an empty fd set
        if not self._selector.get_map():
            return 0

        for key, _ in self._selector.select(timeout=0):
            op = key.data
            try:
                nbytes = key.fileobj.recv_into(op.buffer)
            except BlockingIOError:
                # Spurious readiness; stay registered
                return 0
            except OSError as exc:
                self._selector.unregister(key.fileobj)
                op.on_error(exc)
                return 1
            self._selector.unregister(key.fileobj)
            op.on_complete(nbytes)
            return 1

        return 0

    def cancel(self, sock) -> None:
        try:
            self._selector.unregister(sock)
        except (KeyError, ValueError):
            pass

    def close(self) -> None:
        self._selector.close()


class AsyncioEngine:
    """Engine backed by a private :mod:`asyncio` event loop.

    Each ``poll_one`` runs exactly one loop iteration, so a datagram
    usually needs a few polls to travel from readiness through the task
    wake-up to the done callback.  The loop is never run by anything
    else; it must not be the running loop of the calling thread.
    """

    def __init__(self):
        self._loop = asyncio.new_event_loop()
        self._tasks: dict[int, asyncio.Task] = {}
        self._completed = 0

    def start_receive(self, sock, buffer, on_complete, on_error) -> None:
        fd = sock.fileno()
        if fd in self._tasks:
            raise RuntimeError("receive already outstanding on fd %d" % fd)

        sock.setblocking(False)
        task = self._loop.create_task(self._loop.sock_recv_into(sock, buffer))

        def _done(t: asyncio.Task) -> None:
            self._tasks.pop(fd, None)
            if t.cancelled():
                return
            self._completed += 1
            exc = t.exception()
            if exc is not None:
                on_error(exc)
            else:
                on_complete(t.result())

        task.add_done_callback(_done)
        self._tasks[fd] = task

    def poll_one(self) -> int:
        before = self._completed
        self._loop.call_soon(self._loop.stop)
        self._loop.run_forever()
        return self._completed - before

    def cancel(self, sock) -> None:
        task = self._tasks.pop(sock.fileno(), None)
        if task is None:
            return
        task.cancel()
        # Let the cancellation unwind so the reader is removed from the loop
        self._loop.run_until_complete(asyncio.gather(task, return_exceptions=True))

    def close(self) -> None:
        for task in list(self._tasks.values()):
            task.cancel()
        if self._tasks:
            self._loop.run_until_complete(
                asyncio.gather(*self._tasks.values(), return_exceptions=True)
            )
        self._tasks.clear()
        self._loop.close()
