"""
ChunkBuffer — fixed-capacity holding area for ciphertext not yet read.

    0 <= read cursor <= write cursor <= capacity

When the consumer drains everything both cursors go back to zero. An
append that would run past capacity while the read cursor is non-zero
first shifts the unread bytes down to offset zero.
"""


class ChunkBuffer:
    """Byte accumulator with a read cursor. Never pulls or blocks."""

    DEFAULT_CAPACITY = 64 * 1024

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("ChunkBuffer capacity must be positive.")
        self._capacity = capacity
        self._data     = bytearray()
        self._read     = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def available(self) -> int:
        return len(self._data) - self._read

    def is_empty(self) -> bool:
        return self.available() == 0

    def free(self) -> int:
        return self._capacity - self.available()

    def append(self, data: bytes) -> None:
        if not data:
            return
        if len(data) > self.free():
            raise BufferError(
                f"ChunkBuffer overflow: {len(data)}B into {self.free()}B free.")
        if len(self._data) + len(data) > self._capacity:
            self._compact()
        self._data += data

    def read_into(self, dest, max_len: int) -> int:
        """Copy up to max_len buffered bytes into dest. Returns the count."""
        n = min(max_len, self.available(), len(dest))
        if n <= 0:
            return 0
        start = self._read
        dest[:n] = self._data[start:start + n]
        self._read += n
        if self._read == len(self._data):
            self.clear()
        return n

    def clear(self) -> None:
        self._data = bytearray()
        self._read = 0

    def _compact(self) -> None:
        del self._data[:self._read]
        self._read = 0

    def __len__(self):
        return self.available()

    def __repr__(self):
        return f"ChunkBuffer({self.available()}/{self._capacity})"
