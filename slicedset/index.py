"""A collection of encoded sequences stored one after another in a single buffer."""

from __future__ import annotations

import operator
import struct
from pathlib import Path

from .sequence import Sequence


class Index:
    """Read-only view over a serialized index: universe, offsets and sequences."""

    def __init__(self, buffer: bytes | bytearray | memoryview) -> None:
        view = memoryview(buffer).cast("B")
        if len(view) < 8:
            raise ValueError("truncated index")
        (count,) = struct.unpack_from("<Q", view, 0)
        if count == 0:
            raise ValueError("index holds no universe entry")
        start = 8 + 8 * count + 8
        if start > len(view):
            raise ValueError("truncated index")
        offsets = struct.unpack_from(f"<{count}Q", view, 8)
        (length,) = struct.unpack_from("<Q", view, 8 + 8 * count)
        if start + length > len(view):
            raise ValueError("truncated index")

        self._universe = offsets[0]
        self._offsets = offsets[1:]
        self._sequences = view[start : start + length]

    @classmethod
    def open(cls, path: str | Path) -> Index:
        """Load an index written by ``IndexBuilder.save``."""
        return cls(Path(path).read_bytes())

    def __len__(self) -> int:
        return len(self._offsets)

    def __getitem__(self, i: int) -> Sequence:
        """Return sequence ``i``; negative positions are not accepted."""
        i = operator.index(i)
        if not 0 <= i < len(self._offsets):
            raise IndexError(f"sequence {i} out of range")
        return Sequence(self._sequences, self._offsets[i])

    def universe(self) -> int:
        return self._universe