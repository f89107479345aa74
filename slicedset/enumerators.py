"""Stateful readers over an encoded sequence: full enumeration and successor queries."""

from __future__ import annotations

from typing import Iterator

from .sequence import (
    ChunkCursor,
    Sequence,
    _blocks,
    _check_value,
    _chunk_min,
    _next_geq_block,
    _next_set_bit,
    decode_chunk,
)
from .util import BLOCK_SIZE, NOT_FOUND, ChunkType


class Enumerator:
    """Walks the values of a sequence in increasing order, one chunk decoded at a time."""

    def __init__(self, sequence: Sequence, past_the_end: int = NOT_FOUND) -> None:
        self._cursor = sequence.cursor()
        self._chunk = 0
        self._chunks = sequence.chunks
        self._past_the_end = past_the_end
        self._buffer = decode_chunk(self._cursor)
        self._i = 0
        self._has_next = True

    def has_next(self) -> bool:
        return self._has_next

    def next(self) -> None:
        """Move to the following value; does nothing once the end is reached."""
        if not self._has_next:
            return
        self._i += 1
        if self._i == len(self._buffer):
            self._chunk += 1
            if self._chunk == self._chunks:
                self._has_next = False
                return
            self._i = 0
            self._cursor.next()
            self._buffer = decode_chunk(self._cursor)

    def value(self) -> int:
        """Current value, or the past-the-end value once exhausted."""
        return self._buffer[self._i] if self._has_next else self._past_the_end

    def __iter__(self) -> Iterator[int]:
        while self._has_next:
            yield self.value()
            self.next()


class NextGeqEnumerator:
    """Answers successor queries whose arguments do not decrease, moving forward only."""

    def __init__(self, sequence: Sequence) -> None:
        self._size = len(sequence)
        self._cursor: ChunkCursor = sequence.cursor()
        self._chunk_id: int | None = None
        self._blocks: list = []
        self._block = 0

    def size(self) -> int:
        return self._size

    def next_geq(self, value: int) -> int:
        """Return the smallest element ``>= value``, or ``NOT_FOUND``."""
        _check_value(value)
        cursor = self._cursor
        cursor.skip_to_value(value >> 16)
        if not cursor.has_next():
            return NOT_FOUND
        if cursor.base() >= value:
            return _chunk_min(cursor)

        low = value & 0xFFFF
        kind = cursor.type()
        if kind is ChunkType.FULL:
            found: int | None = low
        elif kind is ChunkType.DENSE:
            found = _next_set_bit(cursor.data, low)
        else:
            found = self._next_geq_sparse(cursor, low)
        if found is not None:
            return found + cursor.base()

        cursor.next()
        if cursor.has_next():
            return _chunk_min(cursor)
        return NOT_FOUND

    def _next_geq_sparse(self, cursor: ChunkCursor, low: int) -> int | None:
        if self._chunk_id != cursor.id():
            self._blocks = list(_blocks(cursor.data, cursor.blocks()))
            self._block = 0
            self._chunk_id = cursor.id()

        blocks = self._blocks
        block_id = low >> 8
        while self._block < len(blocks) and blocks[self._block][0] < block_id:
            self._block += 1
        if self._block == len(blocks):
            return None

        bid, card, payload = blocks[self._block]
        base = bid * BLOCK_SIZE
        if base >= low:
            return base + _next_geq_block(payload, card, 0)

        found = _next_geq_block(payload, card, low & 0xFF)
        if found is not None:
            return base + found

        if self._block + 1 == len(blocks):
            return None
        self._block += 1
        bid, card, payload = blocks[self._block]
        return bid * BLOCK_SIZE + _next_geq_block(payload, card, 0)