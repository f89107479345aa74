"""Encoding of sorted integer sequences into the sliced layout."""

from __future__ import annotations

import logging
import struct
from itertools import chain, groupby, islice, takewhile
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .util import (
    ASSOCIATIVITY,
    BLOCK_SIZE,
    BLOCK_SPARSENESS_THRESHOLD,
    CHUNK_SIZE,
    CHUNK_SPARSENESS_THRESHOLD,
    ChunkType,
    Parameters,
    Statistics,
    bytes_for,
    num_chunks,
    passes,
)

logger = logging.getLogger(__name__)

_MAX_VALUE = 0xFFFFFFFF
_DENSE_CHUNK_BYTES = bytes_for(CHUNK_SIZE)
_DENSE_BLOCK_MIN = BLOCK_SPARSENESS_THRESHOLD - 1


def write_bits(values: Iterable[int], bits: int, base: int) -> bytes:
    """Return a little-endian bitmap of ``bits`` bits with ``value - base`` set."""
    if bits % 64:
        raise ValueError("bitmap size must be a multiple of 64 bits")
    bitmap = 0
    for value in values:
        position = value - base
        if not 0 <= position < bits:
            raise ValueError(f"position {position} outside a {bits}-bit bitmap")
        bitmap |= 1 << position
    return bitmap.to_bytes(bits // 8, "little")


def chunk_cardinality(values: Sequence[int], start: int, right: int) -> int:
    """Count the values from ``start`` on that are below ``right``."""
    count = 0
    prev = None
    for value in takewhile(lambda v: v < right, islice(values, start, None)):
        if prev is not None:
            if value == prev:
                raise ValueError("duplicate element")
            if value < prev:
                raise ValueError("sequence must be sorted in increasing order")
        prev = value
        count += 1
    return count


def _blocks(
    values: Sequence[int], start: int, left: int, right: int
) -> Iterator[tuple[int, list[int]]]:
    """Yield (block id, offsets within block) for the chunk ``[left, right)``."""
    in_chunk = takewhile(lambda v: v < right, islice(values, start, None))
    for block_id, members in groupby(in_chunk, key=lambda v: (v - left) // BLOCK_SIZE):
        yield block_id, [(v - left) % BLOCK_SIZE for v in members]


def _account_block(block_size: int, stats: Statistics) -> None:
    stats.blocks += 1
    if block_size == 0:
        stats.empty_blocks += 1
    elif block_size >= _DENSE_BLOCK_MIN:
        stats.dense_blocks += 1
        stats.dense_blocks_bits += BLOCK_SIZE
        stats.integers_in_dense_blocks += block_size
    else:
        stats.sparse_blocks += 1
        stats.integers_in_sparse_blocks += block_size
        stats.sparse_blocks_bits += 8 * (block_size + 1)
        stats.sparse_blocks_cardinalities[block_size] += 1


def sparse_chunk_bitsize(
    values: Sequence[int], start: int, left: int, right: int
) -> Statistics:
    """Block statistics of the chunk ``[left, right)`` if encoded as sparse."""
    stats = Statistics()
    prev_id = -1
    for block_id, members in _blocks(values, start, left, right):
        for _ in range(block_id - prev_id - 1):
            _account_block(0, stats)
        _account_block(len(members), stats)
        prev_id = block_id
    if prev_id < 0:
        _account_block(0, stats)
    return stats


def _encode_sparse_chunk(values: Sequence[int], start: int, left: int, right: int) -> bytes:
    header = bytearray()
    data = bytearray()
    for block_id, members in _blocks(values, start, left, right):
        header += bytes((block_id, len(members) - 1))
        if len(members) >= _DENSE_BLOCK_MIN:
            data += write_bits(members, BLOCK_SIZE, 0)
        else:
            data += bytes(members)
    return bytes(header + data)


def _encode(values: Sequence[int], stats: Statistics) -> bytes:
    """Encode one sequence, updating ``stats`` with its sizes."""
    if not values:
        raise ValueError("cannot encode an empty sequence")
    universe = values[-1]
    if values[0] < 0 or universe > _MAX_VALUE:
        raise ValueError("values must fit in 32 unsigned bits")
    chunks = num_chunks(universe)

    stats.sequences += 1
    stats.integers += len(values)
    stats.chunks += chunks

    headers: list[tuple[int, int, int, int]] = []
    payload = bytearray()
    start = 0

    def dense(left: int, cardinality: int) -> tuple[int, int]:
        stats.dense_chunks += 1
        stats.dense_chunks_bits += _DENSE_CHUNK_BYTES * 8
        stats.integers_in_dense_chunks += cardinality
        payload.extend(write_bits(values[start : start + cardinality], CHUNK_SIZE, left))
        return ChunkType.DENSE, CHUNK_SIZE // 8

    for chunk_id in range(chunks):
        left = chunk_id * CHUNK_SIZE
        right = left + CHUNK_SIZE
        if start == len(values) or values[start] >= right:
            stats.empty_chunks += 1
            continue
        if values[start] < left:
            raise ValueError("sequence must be sorted in increasing order")
        cardinality = chunk_cardinality(values, start, right)

        if cardinality < CHUNK_SPARSENESS_THRESHOLD:
            sparse = sparse_chunk_bitsize(values, start, left, right)
            sparse_bytes = (
                sparse.dense_blocks * 16
                + sparse.sparse_blocks * 8
                + sparse.dense_blocks_bits
                + sparse.sparse_blocks_bits
            ) // 8
            if sparse_bytes >= _DENSE_CHUNK_BYTES:
                kind, size = dense(left, cardinality)
            else:
                stats.sparse_chunks += 1
                stats.integers_in_sparse_chunks += cardinality
                non_empty = sparse.dense_blocks + sparse.sparse_blocks
                stats.num_blocks_in_chunks[non_empty] += 1
                stats.num_integers[non_empty] += cardinality
                stats.blocks += non_empty + sparse.empty_blocks
                stats.accumulate(sparse)
                kind = ChunkType.SPARSE | ((non_empty - 1) << 8)
                size = sparse_bytes
                payload += _encode_sparse_chunk(values, start, left, right)
        elif cardinality == CHUNK_SIZE:
            stats.full_chunks += 1
            stats.integers_in_full_chunks += cardinality
            kind, size = ChunkType.FULL, 0
        else:
            kind, size = dense(left, cardinality)

        headers.append((chunk_id, cardinality - 1, int(kind), size))
        start += cardinality

    if start != len(values):
        raise ValueError("sequence must be sorted in increasing order")

    count = len(headers)
    groups = count // ASSOCIATIVITY
    out = bytearray(struct.pack("<H", count - 1))
    for first in range(0, groups * ASSOCIATIVITY, ASSOCIATIVITY):
        group = headers[first : first + ASSOCIATIVITY]
        cardinality = sum(h[1] + 1 for h in group)
        offset = sum(h[3] for h in group)
        out += struct.pack("<II", cardinality, offset)
    out += struct.pack(f"<{4 * count}H", *chain.from_iterable(headers))
    out += payload

    stats.chunks_header_bits += count * 16 * 4 + 16 + groups * 32 * 2
    return bytes(out)


def _finalize(stats: Statistics) -> None:
    stats.blocks_header_bits = stats.dense_blocks * 16 + stats.sparse_blocks * 8
    stats.bits = (
        stats.chunks_header_bits
        + stats.blocks_header_bits
        + stats.dense_chunks_bits
        + stats.dense_blocks_bits
        + stats.sparse_blocks_bits
        + 2 * 64
    )


def encode_sequence(values: Iterable[int]) -> tuple[bytes, Statistics]:
    """Encode a strictly increasing sequence; return its bytes and statistics."""
    stats = Statistics()
    data = _encode(list(values), stats)
    _finalize(stats)
    return data, stats


def read_collection(path: str | Path) -> tuple[int, list[list[int]]]:
    """Read a binary collection: a ``[1, universe]`` header, then length-prefixed lists."""
    raw = Path(path).read_bytes()
    if len(raw) % 4:
        raise ValueError("collection size is not a multiple of 4 bytes")
    words = iter(struct.unpack(f"<{len(raw) // 4}I", raw))
    header = list(islice(words, 2))
    if len(header) != 2 or header[0] != 1:
        raise ValueError("collection must start with a singleton list holding the universe")
    lists = []
    for n in words:
        items = list(islice(words, n))
        if len(items) != n:
            raise ValueError("collection is truncated")
        lists.append(items)
    return header[1], lists


class SequenceBuilder:
    """Encodes a single sequence in memory."""

    def __init__(self) -> None:
        self._out = b""

    def build(self, values: Iterable[int]) -> Statistics:
        self._out, stats = encode_sequence(values)
        return stats

    def data(self) -> bytes:
        return self._out


class IndexBuilder:
    """Encodes every selected list of a collection file into one index."""

    def __init__(self, params: Parameters) -> None:
        self.params = params
        self._offsets: list[int] | None = None
        self._sequences = bytearray()

    def build(self) -> Statistics:
        universe, lists = read_collection(self.params.collection_filename)
        logger.info("universe size: %d", universe)
        stats = Statistics()
        offsets = [universe, 0]
        sequences = bytearray()
        for values in lists:
            last = values[-1] if values else 0
            if passes(self.params, len(values), last):
                sequences += _encode(values, stats)
                offsets.append(len(sequences))
                if stats.sequences % 1000 == 0:
                    logger.info("processed %d sequences", stats.sequences)
        offsets.pop()

        _finalize(stats)
        stats.bits += len(offsets) * 64

        self._offsets = offsets
        self._sequences = sequences
        return stats

    def to_bytes(self) -> bytes:
        """Serialize the index: offsets vector, then the sequences byte vector."""
        if self._offsets is None:
            raise RuntimeError("build() has not been called")
        offsets = self._offsets
        return b"".join(
            (
                struct.pack("<Q", len(offsets)),
                struct.pack(f"<{len(offsets)}Q", *offsets),
                struct.pack("<Q", len(self._sequences)),
                bytes(self._sequences),
            )
        )

    def save(self, path: str | Path) -> int:
        """Write the index to ``path`` and return the number of bytes written."""
        data = self.to_bytes()
        Path(path).write_bytes(data)
        return len(data)