"""Synthetic collections and query workloads for exercising an index."""

from __future__ import annotations

import random
import struct
from pathlib import Path
from typing import Iterable, Iterator

from .index import Index
from .sequence import Sequence
from .util import CHUNK_SIZE

SKIP = 0
INCLUDE_ALL = 1
INCLUDE_SOME = 2

CLUSTERED_EVENTS = ((SKIP, 0.3), (INCLUDE_ALL, 0.2), (INCLUDE_SOME, 0.5))

_MIN_CLUSTER = 10
_MAX_CLUSTER = CHUNK_SIZE // 4


def gen_event(events: Iterable[tuple[int, float]], p: float) -> int:
    """Pick the code whose cumulative probability first reaches ``p``."""
    if not 0.0 <= p <= 1.0:
        raise ValueError(f"probability {p} outside [0, 1]")
    cumulative = 0.0
    for code, prob in events:
        cumulative += prob
        if cumulative >= p:
            return code
    raise ValueError(f"event probabilities do not reach {p}")


def _write_binary(path: str | Path, universe: int, lists: list[list[int]]) -> None:
    with open(path, "wb") as out:
        out.write(struct.pack("<II", 1, universe))
        for values in lists:
            out.write(struct.pack(f"<I{len(values)}I", len(values), *values))


def _write_text(path: str | Path, lists: list[list[int]]) -> None:
    with open(path, "w", encoding="ascii") as out:
        for values in lists:
            out.write(f"{len(values)}\n")
            out.writelines(f"{x}\n" for x in values)


def generate_uniform(
    num_lists: int,
    min_length: int,
    max_length: int,
    universe: int,
    path: str | Path,
    rng: random.Random | None = None,
) -> list[list[int]]:
    """Write a binary collection of lists drawn uniformly from ``[0, universe]``."""
    if min_length > max_length:
        raise ValueError("min_length exceeds max_length")
    rng = rng or random.Random()
    lists = []
    for _ in range(num_lists):
        n = rng.randint(min_length, max_length)
        lists.append(sorted({rng.randint(0, universe) for _ in range(n)}))
    _write_binary(path, universe, lists)
    return lists


def _clustered_list(universe: int, rng: random.Random) -> list[int]:
    values: list[int] = []
    for left in range(0, universe, CHUNK_SIZE):
        code = gen_event(CLUSTERED_EVENTS, rng.random())
        end = min(left + CHUNK_SIZE, universe)
        if code == INCLUDE_ALL:
            values.extend(range(left, end))
        elif code == INCLUDE_SOME:
            n = rng.randint(_MIN_CLUSTER, _MAX_CLUSTER)
            values.extend(rng.randint(left, end) for _ in range(n))
    return sorted(set(values))


def generate_clustered(
    num_lists: int,
    universe: int,
    path: str | Path,
    binary: bool = False,
    rng: random.Random | None = None,
) -> list[list[int]]:
    """Write lists whose values cluster chunk by chunk, as binary or as text."""
    rng = rng or random.Random()
    lists = [_clustered_list(universe, rng) for _ in range(num_lists)]
    if binary:
        _write_binary(path, universe, lists)
    else:
        _write_text(path, lists)
    return lists


def pairwise_queries(
    num_queries: int, num_sequences: int, rng: random.Random | None = None
) -> list[tuple[int, int]]:
    """Random pairs of sequence positions in ``[0, num_sequences)``."""
    if num_sequences < 1:
        raise ValueError("need at least one sequence")
    rng = rng or random.Random()
    last = num_sequences - 1
    return [(rng.randint(0, last), rng.randint(0, last)) for _ in range(num_queries)]


def _sequences(index: Index) -> Iterator[Sequence]:
    return (index[i] for i in range(len(index)))


def select_queries(
    index: Index, num_queries_per_sequence: int, rng: random.Random | None = None
) -> list[int]:
    """Random valid ranks, ``num_queries_per_sequence`` for each sequence in turn."""
    rng = rng or random.Random()
    queries = []
    for sequence in _sequences(index):
        last = len(sequence) - 1
        queries.extend(rng.randint(0, last) for _ in range(num_queries_per_sequence))
    return queries


def next_geq_queries(
    index: Index, num_queries_per_sequence: int, rng: random.Random | None = None
) -> list[int]:
    """Random elements of each sequence, ``num_queries_per_sequence`` per sequence."""
    rng = rng or random.Random()
    queries = []
    for sequence in _sequences(index):
        values = sequence.decode()
        queries.extend(rng.choice(values) for _ in range(num_queries_per_sequence))
    return queries