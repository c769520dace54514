"""Error type and byte-sink helpers used by the Borsh encoder and decoder."""

from __future__ import annotations

import enum
from typing import Optional, Protocol, Union


class ErrorKind(enum.Enum):
    """General categories of errors raised while encoding or decoding."""

    NOT_FOUND = "entity not found"
    PERMISSION_DENIED = "permission denied"
    CONNECTION_REFUSED = "connection refused"
    CONNECTION_RESET = "connection reset"
    CONNECTION_ABORTED = "connection aborted"
    NOT_CONNECTED = "not connected"
    ADDR_IN_USE = "address in use"
    ADDR_NOT_AVAILABLE = "address not available"
    BROKEN_PIPE = "broken pipe"
    ALREADY_EXISTS = "entity already exists"
    WOULD_BLOCK = "operation would block"
    INVALID_INPUT = "invalid input parameter"
    INVALID_DATA = "invalid data"
    TIMED_OUT = "timed out"
    WRITE_ZERO = "write zero"
    INTERRUPTED = "operation interrupted"
    OTHER = "other os error"
    UNEXPECTED_EOF = "unexpected end of file"

    @property
    def description(self) -> str:
        """Short human-readable description of this kind."""
        return self.value


class BorshError(Exception):
    """An error of a given kind, optionally carrying its own message."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        super().__init__(kind, message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        if self.message is not None:
            return self.message
        return self.kind.description

    def __repr__(self) -> str:
        if self.message is None:
            return f"BorshError(kind={self.kind.name})"
        return f"BorshError(kind={self.kind.name}, message={self.message!r})"


class _Writer(Protocol):
    def write(self, data: bytes) -> Optional[int]: ...


class FixedBufferWriter:
    """Writes into a pre-allocated writable buffer, overwriting its bytes in order."""

    def __init__(self, buffer: Union[bytearray, memoryview]) -> None:
        view = memoryview(buffer)
        if view.readonly:
            raise TypeError("FixedBufferWriter needs a writable buffer")
        self._view = view.cast("B")
        self._position = 0

    def write(self, data: bytes) -> int:
        """Copy as much of ``data`` as fits and return the number of bytes copied."""
        amount = min(len(data), self.remaining())
        end = self._position + amount
        self._view[self._position:end] = bytes(data[:amount])
        self._position = end
        return amount

    def flush(self) -> None:
        """Nothing is buffered; check that the target buffer is still available."""
        try:
            size = self._view.nbytes
        except ValueError:
            raise BorshError(ErrorKind.BROKEN_PIPE, "buffer has been released") from None
        if self._position > size:
            raise BorshError(ErrorKind.INVALID_DATA, "write position past end of buffer")

    def remaining(self) -> int:
        """Number of bytes that can still be written."""
        return len(self._view) - self._position


def write_all(writer: Union[bytearray, _Writer], data: bytes) -> None:
    """Write the whole of ``data`` to ``writer``.

    A ``bytearray`` grows as needed. Any other writer is called repeatedly
    until everything is written; interrupted writes are retried and a write
    that accepts nothing raises a ``WRITE_ZERO`` error.
    """
    if isinstance(writer, bytearray):
        writer.extend(data)
        return
    pending = memoryview(bytes(data))
    while pending:
        try:
            written = writer.write(bytes(pending))
        except InterruptedError:
            continue
        except BorshError as error:
            if error.kind is ErrorKind.INTERRUPTED:
                continue
            raise
        if written is None:
            return
        if written == 0:
            raise BorshError(ErrorKind.WRITE_ZERO, "failed to write whole buffer")
        pending = pending[written:]