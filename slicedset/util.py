"""Layout constants, build parameters and size statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

CHUNK_SIZE = 1 << 16
BLOCK_SIZE = 1 << 8

CHUNK_SIZE_IN_64BIT_WORDS = CHUNK_SIZE // 64
BLOCK_SIZE_IN_64BIT_WORDS = BLOCK_SIZE // 64

CHUNK_SPARSENESS_THRESHOLD = CHUNK_SIZE // 2
BLOCK_SPARSENESS_THRESHOLD = BLOCK_SIZE // 8

BLOCKS_PER_CHUNK = CHUNK_SIZE // BLOCK_SIZE
MAX_SPARSE_BLOCK_CARDINALITY = BLOCK_SPARSENESS_THRESHOLD - 2

ASSOCIATIVITY = 32

NOT_FOUND = 0xFFFFFFFF


class ChunkType(IntEnum):
    """Representation of a chunk (or block) inside an encoded sequence."""

    EMPTY = 0
    SPARSE = 1
    FULL = 2
    DENSE = 3


@dataclass
class Parameters:
    """Options selecting which lists of a collection get indexed."""

    collection_filename: str = ""
    density: float = -1.0
    size: int = 0


def passes(params: Parameters, n: int, universe: int) -> bool:
    """Tell whether a list of ``n`` integers ending at ``universe`` is indexed."""
    if params.density >= 0.0:
        if universe:
            ratio = n / universe
        else:
            ratio = math.inf if n else math.nan
        if ratio > params.density:
            return True
    return n > params.size


def elias_fano_bitsize(n: int, u: int) -> int:
    """Bits taken by Elias-Fano for ``n`` sorted integers drawn from ``[0, u)``."""
    if n == 0:
        return 0
    low = math.ceil(math.log2(u / n)) if u > n else 0
    return n * (low + 2)


def num_chunks(universe: int) -> int:
    """Number of chunks needed to cover values up to ``universe`` inclusive."""
    return (universe + CHUNK_SIZE) // CHUNK_SIZE


def bytes_for(bits: int) -> int:
    """Bytes needed to hold ``bits`` bits."""
    return (bits + 7) // 8


def _div(a: float, b: float) -> float:
    if b:
        return a / b
    if a > 0:
        return math.inf
    if a < 0:
        return -math.inf
    return math.nan


def _g(x: float) -> str:
    return f"{x:g}"


@dataclass
class Statistics:
    """Counters collected while encoding sequences."""

    sequences: int = 0

    integers: int = 0
    integers_in_sparse_chunks: int = 0
    integers_in_dense_chunks: int = 0
    integers_in_full_chunks: int = 0
    integers_in_sparse_blocks: int = 0
    integers_in_dense_blocks: int = 0

    chunks: int = 0
    empty_chunks: int = 0
    sparse_chunks: int = 0
    very_sparse_chunks: int = 0
    dense_chunks: int = 0
    full_chunks: int = 0

    blocks: int = 0
    empty_blocks: int = 0
    sparse_blocks: int = 0
    dense_blocks: int = 0

    bits: int = 0
    chunks_header_bits: int = 0
    blocks_header_bits: int = 0
    dense_chunks_bits: int = 0
    dense_blocks_bits: int = 0
    sparse_blocks_bits: int = 0

    sparse_blocks_cardinalities: list[int] = field(
        default_factory=lambda: [0] * (1 + MAX_SPARSE_BLOCK_CARDINALITY)
    )
    num_blocks_in_chunks: list[int] = field(
        default_factory=lambda: [0] * (1 + BLOCKS_PER_CHUNK)
    )
    num_integers: list[int] = field(default_factory=lambda: [0] * (1 + BLOCKS_PER_CHUNK))

    def accumulate(self, other: Statistics) -> None:
        """Add the block-level counters of ``other`` to these."""
        self.dense_blocks += other.dense_blocks
        self.sparse_blocks += other.sparse_blocks
        self.empty_blocks += other.empty_blocks
        self.integers_in_dense_blocks += other.integers_in_dense_blocks
        self.integers_in_sparse_blocks += other.integers_in_sparse_blocks
        self.dense_blocks_bits += other.dense_blocks_bits
        self.sparse_blocks_bits += other.sparse_blocks_bits
        self.sparse_blocks_cardinalities = [
            mine + theirs
            for mine, theirs in zip(
                self.sparse_blocks_cardinalities, other.sparse_blocks_cardinalities
            )
        ]

    def report(self) -> str:
        """Return a human-readable summary of the counters."""
        ints = self.integers
        lines = [
            f"processed {self.sequences} sequences, {ints} integers",
            f"chunks: {self.chunks}",
            f"full chunks: {self.full_chunks} "
            f"({_g(_div(self.integers_in_full_chunks * 100.0, ints))}% of ints)",
            f"empty chunks: {self.empty_chunks} "
            f"({_g(_div(self.empty_chunks * 100.0, self.chunks))}% of chunks)",
            f"dense chunks: {self.dense_chunks} "
            f"({_g(_div(self.integers_in_dense_chunks * 100.0, ints))}% of ints)",
            f"sparse chunks: {self.sparse_chunks} "
            f"({_g(_div(self.integers_in_sparse_chunks * 100.0, ints))}% of ints)",
            f"blocks: {self.blocks}",
            f"empty blocks: {self.empty_blocks} "
            f"({_g(_div(self.empty_blocks * 100.0, self.blocks))}% of blocks)",
            f"dense blocks: {self.dense_blocks} "
            f"({_g(_div(self.integers_in_dense_blocks * 100.0, ints))}% of ints)",
            f"sparse blocks: {self.sparse_blocks} "
            f"({_g(_div(self.integers_in_sparse_blocks * 100.0, ints))}% of ints)",
            f"{_g(_div(self.chunks_header_bits, ints))} [bpi] for chunks' headers",
            f"{_g(_div(self.blocks_header_bits, ints))} [bpi] for blocks' headers",
            f"{_g(_div(self.dense_chunks_bits, ints))} [bpi] for dense chunks",
            f"{_g(_div(self.dense_blocks_bits, ints))} [bpi] for dense blocks",
            f"{_g(_div(self.sparse_blocks_bits, ints))} [bpi] for sparse blocks",
            f"total bytes: {self.bits // 8}",
            f"total bpi: {_g(_div(self.bits, ints))}",
            "== sparse blocks cardinalities (%) ==",
        ]

        expected_value = 0.0
        for card, count in enumerate(self.sparse_blocks_cardinalities[1:], start=1):
            p_i = _div(count, self.sparse_blocks)
            lines.append(f"sparse blocks with card. {card}: {_g(p_i * 100.0)}")
            expected_value += card * p_i
        lines.append(f"expected_value {_g(expected_value)}")

        lines.append(
            "== distribution of blocks in sparse chunks ("
            f"{_g(_div(self.integers_in_sparse_chunks * 100.0, ints))}% of ints) =="
        )
        covered = 0
        expected_value = 0.0
        pairs = zip(self.num_blocks_in_chunks[1:], self.num_integers[1:])
        for blocks, (chunks_with, integers_in) in enumerate(pairs, start=1):
            avg_per_chunk = integers_in // chunks_with if chunks_with else 0
            ef_bits = elias_fano_bitsize(avg_per_chunk, CHUNK_SIZE)
            avg_per_block = _div(integers_in, blocks * chunks_with)
            p_i = _div(chunks_with, self.sparse_chunks)
            lines.append(
                f"sparse chunks with {blocks} blocks: {_g(p_i * 100.0)}%; "
                f"avg_num_integers_per_block = {_g(avg_per_block)}; "
                f"avg_num_integers_per_chunk = {avg_per_chunk}"
            )
            expected_value += blocks * p_i
            covered += integers_in
            lines.append(f"Elias-Fano avg. bpi {_g(_div(ef_bits, avg_per_chunk))} vs. 8")
            lines.append(
                " -- total integers covered "
                f"{_g(_div(covered * 100.0, self.integers_in_sparse_chunks))}%"
            )
        lines.append(f"expected_value {_g(expected_value)}")
        return "\n".join(lines)