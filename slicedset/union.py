"""Union of encoded sequences, chunk by chunk."""

from __future__ import annotations

from typing import Iterable

from .sequence import ChunkCursor, Sequence, decode_bitmap, decode_chunk, uncompress_chunk
from .util import CHUNK_SIZE, ChunkType

_CHUNK_BYTES = CHUNK_SIZE // 8
_END_ID = 1 << 16


def _decode_chunk_bitmap(bitmap: int, base: int) -> list[int]:
    return decode_bitmap(bitmap.to_bytes(_CHUNK_BYTES, "little"), base)


def _or_chunks(left: ChunkCursor, right: ChunkCursor) -> list[int]:
    """Union of two chunks that share the same id."""
    kind_l, kind_r = left.type(), right.type()
    base = left.base()
    if kind_l is ChunkType.FULL or kind_r is ChunkType.FULL:
        return list(range(base, base + CHUNK_SIZE))
    if kind_l is ChunkType.SPARSE and kind_r is ChunkType.SPARSE:
        return sorted(set(decode_chunk(left)).union(decode_chunk(right)))
    bitmap_l, _ = uncompress_chunk(left)
    bitmap_r, _ = uncompress_chunk(right)
    return _decode_chunk_bitmap(bitmap_l | bitmap_r, base)


def pairwise_union(left: Sequence, right: Sequence) -> list[int]:
    """Return the sorted values present in either sequence."""
    out: list[int] = []
    it_l, it_r = left.cursor(), right.cursor()
    while it_l.has_next() and it_r.has_next():
        id_l, id_r = it_l.id(), it_r.id()
        if id_l == id_r:
            out.extend(_or_chunks(it_l, it_r))
            it_l.next()
            it_r.next()
        elif id_l < id_r:
            out.extend(decode_chunk(it_l))
            it_l.next()
        else:
            out.extend(decode_chunk(it_r))
            it_r.next()
    for cursor in (it_l, it_r):
        while cursor.has_next():
            out.extend(decode_chunk(cursor))
            cursor.next()
    return out


def union_many(sequences: Iterable[Sequence]) -> list[int]:
    """Return the sorted values present in any of the sequences."""
    cursors = [s.cursor() for s in sequences]
    if not cursors:
        raise ValueError("union needs at least one sequence")

    out: list[int] = []
    header = min(c.id() for c in cursors)
    while header < _END_ID:
        bitmap = 0
        for cursor in cursors:
            if cursor.id() == header:
                chunk, _ = uncompress_chunk(cursor)
                bitmap |= chunk
                cursor.next()
        out.extend(_decode_chunk_bitmap(bitmap, header << 16))
        header = min(c.id() for c in cursors)
    return out