"""A fixed-size buffer for secret data that is wiped when released."""

from __future__ import annotations


class SecureMemoryError(Exception):
    """Raised when secure memory cannot be allocated, locked or accessed."""


_ALLOCATION_FAILED = "Failed to allocate secure memory"
_LOCK_FAILED = "Failed to lock memory pages"
_INVALID_ALIGNMENT = "Invalid memory alignment"


class SecureMemory:
    """Fixed-size byte buffer that is zeroed on clear and on close."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise SecureMemoryError(_INVALID_ALIGNMENT)
        try:
            self._buffer = bytearray(size)
        except MemoryError as exc:
            raise SecureMemoryError(_ALLOCATION_FAILED) from exc
        self._locked = True

    @property
    def size(self) -> int:
        return len(self._buffer)

    @property
    def locked(self) -> bool:
        return self._locked

    def write(self, data: bytes) -> None:
        """Copy ``data`` to the start of the buffer."""
        if not self._locked:
            raise SecureMemoryError(_LOCK_FAILED)
        if len(data) > len(self._buffer):
            raise SecureMemoryError(_INVALID_ALIGNMENT)
        self._buffer[:len(data)] = data

    def read(self, length: int) -> bytes:
        """Return the first ``length`` bytes of the buffer."""
        if not self._locked:
            raise SecureMemoryError(_LOCK_FAILED)
        if length < 0:
            raise ValueError("length must be non-negative")
        if length > len(self._buffer):
            raise SecureMemoryError(_INVALID_ALIGNMENT)
        return bytes(self._buffer[:length])

    def clear(self) -> None:
        """Overwrite the whole buffer with zeros."""
        if self._locked:
            self._buffer[:] = bytes(len(self._buffer))

    def close(self) -> None:
        """Wipe and release the buffer; further access fails."""
        self.clear()
        self._locked = False

    def __enter__(self) -> SecureMemory:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()