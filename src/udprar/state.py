"""Pending-receive state for the non-blocking receive path.

At most one asynchronous receive is outstanding at a time.  The state is
an explicit tag rather than a flag plus a byte count, so "launched but
not arrived" and "arrived with zero bytes" cannot be confused.

Lifecycle::

    IDLE --launch()--> PENDING --complete(n)--> COMPLETED --reset()--> IDLE
                               \\--fail(exc)--> FAILED ----reset()--> IDLE

``complete`` and ``fail`` are the completion callbacks handed to an I/O
engine.  They only record the outcome; copying the data out of the
shared buffer is the receiver's job.
"""

import enum


class ReceiveState(enum.Enum):
    """Where the single receive slot is in its lifecycle."""

    IDLE = "idle"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PendingReceive:
    """Single-slot state machine for one outstanding receive.

    Not thread-safe; owned by exactly one receiver.

    Example:
        >>> slot = PendingReceive()
        >>> slot.launch()
        >>> slot.complete(8)
        >>> slot.state, slot.bytes_ready
        (<ReceiveState.COMPLETED: 'completed'>, 8)
        >>> slot.reset()
        >>> slot.state
        <ReceiveState.IDLE: 'idle'>
    """

    def __init__(self):
        self.state = ReceiveState.IDLE
        self.bytes_ready = 0
        self.error: Exception | None = None

    @property
    def in_progress(self) -> bool:
        """True from launch until the outcome has been consumed."""
        return self.state is not ReceiveState.IDLE

    def launch(self) -> None:
        """Mark a new receive as outstanding."""
        if self.state is not ReceiveState.IDLE:
            raise RuntimeError("receive already outstanding (%s)" % self.state.value)
        self.bytes_ready = 0
        self.state = ReceiveState.PENDING

    def complete(self, nbytes: int) -> None:
        """Record that *nbytes* were written into the buffer."""
        self._require_pending()
        self.bytes_ready = nbytes
        self.state = ReceiveState.COMPLETED

    def fail(self, exc: Exception) -> None:
        """Record a transport error for the outstanding receive."""
        self._require_pending()
        self.error = exc
        self.state = ReceiveState.FAILED

    def reset(self) -> None:
        """Return to IDLE once the outcome has been consumed."""
        if self.state not in (ReceiveState.COMPLETED, ReceiveState.FAILED):
            raise RuntimeError("nothing to consume (%s)" % self.state.value)
        self.bytes_ready = 0
        self.error = None
        self.state = ReceiveState.IDLE

    def _require_pending(self) -> None:
        if self.state is not ReceiveState.PENDING:
            raise RuntimeError("no receive outstanding (%s)" % self.state.value)
