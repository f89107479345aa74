"""Intersection of encoded sequences, chunk by chunk."""

from __future__ import annotations

from typing import Iterable

from .sequence import ChunkCursor, Sequence, decode_bitmap, decode_chunk, uncompress_chunk
from .util import CHUNK_SIZE, ChunkType

_CHUNK_BYTES = CHUNK_SIZE // 8
_END_ID = 1 << 16


def _decode_chunk_bitmap(bitmap: int, base: int) -> list[int]:
    return decode_bitmap(bitmap.to_bytes(_CHUNK_BYTES, "little"), base)


def _and_chunks(left: ChunkCursor, right: ChunkCursor) -> list[int]:
    kind_l, kind_r = left.type(), right.type()
    if kind_l is ChunkType.FULL:
        return decode_chunk(right)
    if kind_r is ChunkType.FULL:
        return decode_chunk(left)
    if kind_l is ChunkType.SPARSE and kind_r is ChunkType.SPARSE:
        others = set(decode_chunk(right))
        return [v for v in decode_chunk(left) if v in others]
    bitmap_l, _ = uncompress_chunk(left)
    bitmap_r, _ = uncompress_chunk(right)
    return _decode_chunk_bitmap(bitmap_l & bitmap_r, left.base())


def pairwise_intersection(left: Sequence, right: Sequence) -> list[int]:
    """Return the sorted values common to both sequences."""
    out: list[int] = []
    it_l, it_r = left.cursor(), right.cursor()
    while it_l.has_next() and it_r.has_next():
        id_l, id_r = it_l.id(), it_r.id()
        if id_l == id_r:
            out.extend(_and_chunks(it_l, it_r))
            it_l.next()
            it_r.next()
        elif id_l < id_r:
            it_l.advance(id_r)
        else:
            it_r.advance(id_l)
    return out


def _common_chunk_ids(cursors: list[ChunkCursor]) -> list[int]:
    common: list[int] = []
    first = cursors[0]
    candidate = first.id()
    while candidate < _END_ID:
        for cursor in cursors:
            cursor.skip_to_value(candidate)
            if cursor.id() != candidate:
                candidate = cursor.id()
                break
        else:
            common.append(candidate)
            first.next()
            candidate = first.id()
    return common


def intersection(sequences: Iterable[Sequence]) -> list[int]:
    """Return the sorted values common to every sequence."""
    ordered = sorted(sequences, key=len)
    if not ordered:
        raise ValueError("intersection needs at least one sequence")

    common = _common_chunk_ids([s.cursor() for s in ordered])
    first, *rest = [s.cursor() for s in ordered]
    out: list[int] = []
    for chunk_id in common:
        first.advance(chunk_id)
        bitmap, count = uncompress_chunk(first)
        for cursor in rest:
            cursor.advance(chunk_id)
            if cursor.type() is not ChunkType.FULL:
                other, _ = uncompress_chunk(cursor)
                bitmap &= other
                count = bitmap.bit_count()
            if count == 0:
                break
        if count:
            out.extend(_decode_chunk_bitmap(bitmap, chunk_id << 16))
    return out