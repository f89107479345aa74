"""Read access to one encoded sequence: decoding, membership, select and successor."""

from __future__ import annotations

import struct
from typing import Iterator

from .util import ASSOCIATIVITY, BLOCK_SIZE, CHUNK_SIZE, NOT_FOUND, ChunkType

_SPARSE_BLOCK_LIMIT = 31  # blocks holding fewer values than this are stored sparse
_DENSE_BLOCK_BYTES = BLOCK_SIZE // 8
_CHUNK_BYTES = CHUNK_SIZE // 8
_END_ID = 1 << 16
_FULL_CHUNK = (1 << CHUNK_SIZE) - 1
_MAX_VALUE = 0xFFFFFFFF


def _lowest_bit(word: int) -> int:
    return (word & -word).bit_length() - 1


def _check_value(value: int) -> None:
    if not 0 <= value <= _MAX_VALUE:
        raise ValueError(f"value {value} does not fit in 32 unsigned bits")


def decode_bitmap(data: bytes | memoryview, base: int) -> list[int]:
    """Return ``base + i`` for every bit ``i`` set in a little-endian bitmap."""
    if len(data) % 8:
        raise ValueError("bitmap size must be a multiple of 8 bytes")
    out: list[int] = []
    words = struct.unpack(f"<{len(data) // 8}Q", data)
    for index, word in enumerate(words):
        word_base = base + index * 64
        while word:
            low = word & -word
            out.append(word_base + low.bit_length() - 1)
            word ^= low
    return out


def _blocks(data: memoryview, blocks: int) -> Iterator[tuple[int, int, memoryview]]:
    """Yield (block id, cardinality, payload) for each block of a sparse chunk."""
    header = bytes(data[: 2 * blocks])
    pos = 2 * blocks
    for block_id, card_minus_one in zip(header[0::2], header[1::2]):
        card = card_minus_one + 1
        size = card if card < _SPARSE_BLOCK_LIMIT else _DENSE_BLOCK_BYTES
        yield block_id, card, data[pos : pos + size]
        pos += size


def _next_set_bit(data: bytes | memoryview, low: int) -> int | None:
    word = int.from_bytes(data, "little") >> low
    return low + _lowest_bit(word) if word else None


def _select_bitmap(data: bytes | memoryview, rank: int) -> int:
    words = struct.unpack(f"<{len(data) // 8}Q", data)
    for index, word in enumerate(words):
        count = word.bit_count()
        if rank < count:
            for _ in range(rank):
                word &= word - 1
            return index * 64 + _lowest_bit(word)
        rank -= count
    raise IndexError("rank beyond the bitmap's cardinality")


def _block_contains(payload: memoryview, card: int, value: int) -> bool:
    if card < _SPARSE_BLOCK_LIMIT:
        return value in bytes(payload)
    return bool(payload[value >> 3] >> (value & 7) & 1)


def _next_geq_block(payload: memoryview, card: int, low: int) -> int | None:
    if card < _SPARSE_BLOCK_LIMIT:
        return next((x for x in payload if x >= low), None)
    return _next_set_bit(payload, low)


def _next_geq_sparse_chunk(data: memoryview, blocks: int, value: int) -> int | None:
    block_id = value >> 8
    for bid, card, payload in _blocks(data, blocks):
        if bid < block_id:
            continue
        base = bid * BLOCK_SIZE
        found = _next_geq_block(payload, card, max(value - base, 0))
        if found is not None:
            return found + base
    return None


def _select_sparse_chunk(data: memoryview, blocks: int, rank: int) -> int:
    for bid, card, payload in _blocks(data, blocks):
        if rank < card:
            base = bid * BLOCK_SIZE
            if card < _SPARSE_BLOCK_LIMIT:
                return payload[rank] + base
            return _select_bitmap(payload, rank) + base
        rank -= card
    raise IndexError("rank beyond the chunk's cardinality")


class ChunkCursor:
    """Position over the chunks of a sequence, with skipping through the pointers."""

    __slots__ = ("_seq", "_pos", "_end", "_data", "_rank")

    def __init__(self, sequence: Sequence) -> None:
        self._seq = sequence
        self._pos = 0
        self._end = sequence.chunks
        self._data, self._rank = sequence._group_starts[0]

    def _header(self) -> tuple[int, int, int, int]:
        return self._seq._headers[self._pos]

    def id(self) -> int:
        """Chunk id, or 65536 once the cursor is past the last chunk."""
        return self._header()[0] if self.has_next() else _END_ID

    def base(self) -> int:
        return self.id() << 16

    def cardinality(self) -> int:
        return self._header()[1] + 1

    def type(self) -> ChunkType:
        return ChunkType(self._header()[2] & 0xFF)

    def blocks(self) -> int:
        return (self._header()[2] >> 8) + 1

    @property
    def data(self) -> memoryview:
        """Payload bytes of the current chunk."""
        return self._seq._view[self._data : self._data + self._header()[3]]

    def has_next(self) -> bool:
        return self._pos < self._end

    def next(self) -> None:
        header = self._header()
        self._data += header[3]
        self._rank += header[1] + 1
        self._pos += 1

    def advance(self, lower_bound: int) -> None:
        """Step forward until the chunk id reaches ``lower_bound``."""
        while self.has_next() and self.id() < lower_bound:
            self.next()

    def _jump_to_group(self, group: int) -> None:
        target = group * ASSOCIATIVITY
        if target > self._pos:
            self._pos = target
            self._data, self._rank = self._seq._group_starts[group]

    def skip_to_value(self, lower_bound: int) -> None:
        """Move to the first chunk whose id is at least ``lower_bound``."""
        headers = self._seq._headers
        group = self._pos // ASSOCIATIVITY
        while (group + 1) * ASSOCIATIVITY < self._end and (
            headers[(group + 1) * ASSOCIATIVITY][0] <= lower_bound
        ):
            group += 1
        self._jump_to_group(group)
        self.advance(lower_bound)

    def skip_to_position(self, rank: int) -> int:
        """Move to the chunk holding the element of ``rank``; return the elements before it."""
        starts = self._seq._group_starts
        group = self._pos // ASSOCIATIVITY
        while (group + 1) * ASSOCIATIVITY < self._end and starts[group + 1][1] <= rank:
            group += 1
        self._jump_to_group(group)
        while self.has_next():
            if self._rank + self.cardinality() > rank:
                break
            self.next()
        return self._rank

    def copy(self) -> ChunkCursor:
        other = ChunkCursor.__new__(ChunkCursor)
        other._seq = self._seq
        other._pos = self._pos
        other._end = self._end
        other._data = self._data
        other._rank = self._rank
        return other


def decode_chunk(cursor: ChunkCursor) -> list[int]:
    """Decode the values of the cursor's current chunk."""
    base = cursor.base()
    kind = cursor.type()
    if kind is ChunkType.FULL:
        return list(range(base, base + CHUNK_SIZE))
    if kind is ChunkType.DENSE:
        return decode_bitmap(cursor.data, base)
    out: list[int] = []
    for bid, card, payload in _blocks(cursor.data, cursor.blocks()):
        block_base = base + bid * BLOCK_SIZE
        if card < _SPARSE_BLOCK_LIMIT:
            out.extend(block_base + x for x in payload)
        else:
            out.extend(decode_bitmap(payload, block_base))
    return out


def uncompress_chunk(cursor: ChunkCursor) -> tuple[int, int]:
    """Return the current chunk as a 65536-bit integer bitmap and its cardinality."""
    kind = cursor.type()
    if kind is ChunkType.FULL:
        bitmap = _FULL_CHUNK
    elif kind is ChunkType.DENSE:
        bitmap = int.from_bytes(cursor.data, "little")
    else:
        bitmap = 0
        for bid, card, payload in _blocks(cursor.data, cursor.blocks()):
            if card < _SPARSE_BLOCK_LIMIT:
                block = 0
                for x in payload:
                    block |= 1 << x
            else:
                block = int.from_bytes(payload, "little")
            bitmap |= block << (bid * BLOCK_SIZE)
    return bitmap, cursor.cardinality()


def _chunk_min(cursor: ChunkCursor) -> int:
    kind = cursor.type()
    if kind is ChunkType.FULL:
        low = 0
    elif kind is ChunkType.DENSE:
        low = _next_set_bit(cursor.data, 0)
    else:
        low = _next_geq_sparse_chunk(cursor.data, cursor.blocks(), 0)
    if low is None:
        raise ValueError("corrupt chunk: no values")
    return cursor.base() + low


class Sequence:
    """An encoded sorted sequence of distinct 32-bit integers, read in place."""

    def __init__(self, buffer: bytes | bytearray | memoryview, offset: int = 0) -> None:
        view = memoryview(buffer).cast("B")
        try:
            (last,) = struct.unpack_from("<H", view, offset)
            chunks = last + 1
            groups = chunks // ASSOCIATIVITY
            pos = offset + 2
            pointers = struct.unpack_from(f"<{2 * groups}I", view, pos)
            pos += 8 * groups
            flat = struct.unpack_from(f"<{4 * chunks}H", view, pos)
            pos += 8 * chunks
        except struct.error as exc:
            raise ValueError("truncated sequence") from exc

        self._view = view
        self.chunks = chunks
        self._headers: list[tuple[int, int, int, int]] = list(zip(*[iter(flat)] * 4))
        if pos + sum(h[3] for h in self._headers) > len(view):
            raise ValueError("truncated sequence")

        starts = [(pos, 0)]
        data, rank = pos, 0
        for card, size in zip(pointers[0::2], pointers[1::2]):
            data += size
            rank += card
            starts.append((data, rank))
        self._group_starts = starts

    def cardinality(self) -> int:
        return sum(h[1] for h in self._headers) + self.chunks

    def __len__(self) -> int:
        return self.cardinality()

    def cursor(self) -> ChunkCursor:
        return ChunkCursor(self)

    def decode(self) -> list[int]:
        """Return all values in increasing order."""
        out: list[int] = []
        cursor = self.cursor()
        while cursor.has_next():
            out.extend(decode_chunk(cursor))
            cursor.next()
        return out

    def uncompress(self) -> tuple[int, int]:
        """Return the whole sequence as an integer bitmap and its cardinality."""
        last_id = self._headers[-1][0]
        out = bytearray((last_id + 1) * _CHUNK_BYTES)
        total = 0
        cursor = self.cursor()
        while cursor.has_next():
            bitmap, count = uncompress_chunk(cursor)
            start = cursor.id() * _CHUNK_BYTES
            out[start : start + _CHUNK_BYTES] = bitmap.to_bytes(_CHUNK_BYTES, "little")
            total += count
            cursor.next()
        return int.from_bytes(out, "little"), total

    def contains(self, value: int) -> bool:
        _check_value(value)
        cursor = self.cursor()
        chunk_id = value >> 16
        cursor.skip_to_value(chunk_id)
        if cursor.id() != chunk_id:
            return False
        low = value & 0xFFFF
        kind = cursor.type()
        if kind is ChunkType.FULL:
            return True
        data = cursor.data
        if kind is ChunkType.DENSE:
            return bool(data[low >> 3] >> (low & 7) & 1)
        block_id = low >> 8
        for bid, card, payload in _blocks(data, cursor.blocks()):
            if bid > block_id:
                return False
            if bid == block_id:
                return _block_contains(payload, card, low & 0xFF)
        return False

    def select(self, rank: int) -> int:
        """Return the value of the given rank; raise IndexError if there is none."""
        if rank < 0:
            raise IndexError("rank must be non-negative")
        cursor = self.cursor()
        elements = cursor.skip_to_position(rank)
        if not cursor.has_next():
            raise IndexError(f"rank {rank} out of range")
        local = rank - elements
        kind = cursor.type()
        if kind is ChunkType.FULL:
            value = local
        elif kind is ChunkType.DENSE:
            value = _select_bitmap(cursor.data, local)
        else:
            value = _select_sparse_chunk(cursor.data, cursor.blocks(), local)
        return value + cursor.base()

    def next_geq(self, value: int) -> int:
        """Return the smallest element ``>= value``, or ``NOT_FOUND``."""
        _check_value(value)
        cursor = self.cursor()
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
            found = _next_geq_sparse_chunk(cursor.data, cursor.blocks(), low)
        if found is not None:
            return found + cursor.base()

        cursor.next()
        if cursor.has_next():
            return _chunk_min(cursor)
        return NOT_FOUND