"""Command-line entry points: build an index, run and time queries against it."""

from __future__ import annotations

import argparse
import struct
import sys
import time
from pathlib import Path
from statistics import fmean
from typing import Callable, Iterator, TextIO

from .building import IndexBuilder, SequenceBuilder
from .index import Index
from .intersection import pairwise_intersection
from .sequence import Sequence
from .union import pairwise_union
from .util import Parameters, Statistics


def parse_query(line: str) -> list[int]:
    """Parse a line of sequence positions, sorted and without duplicates."""
    return sorted({int(token) for token in line.split()})


def _tokens(stream: TextIO) -> Iterator[int]:
    for line in stream:
        for token in line.split():
            yield int(token)


def read_pairs(stream: TextIO, limit: int) -> list[tuple[int, int]]:
    """Read up to ``limit`` whitespace-separated integer pairs from ``stream``."""
    tokens = _tokens(stream)
    pairs: list[tuple[int, int]] = []
    for _ in range(limit):
        first = next(tokens, None)
        second = next(tokens, None)
        if first is None or second is None:
            break
        pairs.append((first, second))
    return pairs


def _read_values(stream: TextIO, limit: int) -> list[int]:
    tokens = _tokens(stream)
    return [value for value, _ in zip(tokens, range(limit))]


def build(params: Parameters, output_path: str | Path | None = None) -> Statistics:
    """Build an index from ``params.collection_filename``, print statistics, optionally save."""
    builder = IndexBuilder(params)
    stats = builder.build()
    print(stats.report())
    if output_path:
        print("saving data structure to disk...")
        written = builder.save(output_path)
        print(f"saved {written} bytes")
    return stats


def _timed(runs: int, work: Callable[[], int]) -> tuple[int, float]:
    """Run ``work`` ``runs`` times; return the summed results and the mean time in
    microseconds, ignoring the first run when there is more than one."""
    total = 0
    times: list[float] = []
    for _ in range(runs):
        start = time.perf_counter()
        total += work()
        times.append((time.perf_counter() - start) * 1e6)
    if len(times) > 1:
        times = times[1:]
    return total, fmean(times)


def _sequences(index: Index) -> list[Sequence]:
    return [index[i] for i in range(len(index))]


def _read_pair_queries(num_queries: int) -> list[tuple[int, int]]:
    print("reading queries...")
    queries = read_pairs(sys.stdin, num_queries)
    print("DONE")
    return queries


def _report_mean(avg: float, count: int, unit: str = "[musec]", scale: float = 1.0) -> None:
    print(f"Mean per run: {avg:g} [musec]")
    per_query = avg / count * scale if count else float("nan")
    print(f"Mean per query: {per_query:g} {unit}")


def _cmd_build(args: argparse.Namespace) -> int:
    params = Parameters(
        collection_filename=args.collection_filename,
        density=args.density,
        size=args.size,
    )
    build(params, args.out)
    return 0


def _cmd_cardinality(args: argparse.Namespace) -> int:
    index = Index.open(args.index_filename)
    sequences = _sequences(index)
    runs = 11
    total, avg = _timed(runs, lambda: sum(s.cardinality() for s in sequences))
    print(total // runs)
    _report_mean(avg, len(sequences), "[ns]", 1000.0)
    return 0


def _cmd_contains(args: argparse.Namespace) -> int:
    index = Index.open(args.index_filename)
    queries = _read_pair_queries(args.num_queries)
    print(f"performing {len(queries)} contains queries...")
    total, avg = _timed(4, lambda: sum(index[i].contains(j) for i, j in queries))
    print(total)
    _report_mean(avg, len(queries))
    return 0


def _report_decoding(count: int, integers: int, elapsed: float) -> None:
    print(f"decoded {count} sequences")
    print(f"decoded {integers} integers")
    print(f"Elapsed time: {elapsed / 1e6:g} [sec]")
    per_sequence = elapsed / count if count else float("nan")
    per_integer = elapsed / integers * 1000 if integers else float("nan")
    print(f"Mean per sequence: {per_sequence:g} [musec]")
    print(f"Mean per integer: {per_integer:g} [ns]")


def _cmd_decode(args: argparse.Namespace) -> int:
    index = Index.open(args.index_filename)
    sequences = _sequences(index)
    integers, elapsed = _timed(1, lambda: sum(len(s.decode()) for s in sequences))
    _report_decoding(len(sequences), integers, elapsed)
    return 0


def _cmd_uncompress(args: argparse.Namespace) -> int:
    index = Index.open(args.index_filename)
    print(f"universe size: {index.universe()}")
    sequences = _sequences(index)
    integers, elapsed = _timed(1, lambda: sum(s.uncompress()[1] for s in sequences))
    _report_decoding(len(sequences), integers, elapsed)
    return 0


def _cmd_example(args: argparse.Namespace) -> int:
    tokens = _tokens(sys.stdin)
    n = next(tokens, 0)
    values = [value for value, _ in zip(tokens, range(n))]

    builder = SequenceBuilder()
    stats = builder.build(values)
    print(stats.report())

    if args.output:
        payload = builder.data()
        Path(args.output).write_bytes(struct.pack("<Q", len(payload)) + payload)
        print(f"saved {8 + len(payload)} bytes")
        sequence = Sequence(Path(args.output).read_bytes(), 8)
    else:
        sequence = Sequence(builder.data())

    decoded = sequence.decode()
    for rank, (expected, got) in enumerate(zip(values, decoded)):
        if expected != got:
            print(f"got {got} but expected {expected}")
            return 1
        selected = sequence.select(rank)
        if selected != got:
            print(f"got {selected} but expected {got}")
            return 1
    if len(decoded) != len(values):
        print(f"got {len(decoded)} values but expected {len(values)}")
        return 1
    return 0


def _cmd_pairwise(args: argparse.Namespace, name: str, operation) -> int:
    index = Index.open(args.index_filename)
    queries = _read_pair_queries(args.num_queries)
    print(f"performing {len(queries)} pairwise-{name}...")
    total, avg = _timed(
        11, lambda: sum(len(operation(index[i], index[j])) for i, j in queries)
    )
    print(total)
    _report_mean(avg, len(queries))
    return 0


def _cmd_intersect(args: argparse.Namespace) -> int:
    return _cmd_pairwise(args, "intersections", pairwise_intersection)


def _cmd_union(args: argparse.Namespace) -> int:
    return _cmd_pairwise(args, "unions", pairwise_union)


def _per_sequence_queries(
    args: argparse.Namespace, name: str, answer: Callable[[Sequence, int], int]
) -> int:
    index = Index.open(args.index_filename)
    per_sequence = args.num_queries_per_sequence
    total_queries = len(index) * per_sequence
    print("reading queries...")
    queries = _read_values(sys.stdin, total_queries)
    print("DONE")
    print(f"performing {len(queries)} {name} queries...")
    sequences = _sequences(index)

    def work() -> int:
        total = 0
        for k, sequence in enumerate(sequences):
            for q in queries[k * per_sequence : (k + 1) * per_sequence]:
                total += answer(sequence, q)
        return total

    total, avg = _timed(4, work)
    print(total)
    _report_mean(avg, total_queries)
    return 0


def _cmd_next_geq(args: argparse.Namespace) -> int:
    return _per_sequence_queries(args, "next_geq", lambda s, q: s.next_geq(q))


def _cmd_select(args: argparse.Namespace) -> int:
    last = 0

    def answer(sequence: Sequence, rank: int) -> int:
        nonlocal last
        try:
            last = sequence.select(rank)
        except IndexError:
            pass
        return last

    return _per_sequence_queries(args, "select", answer)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slicedset")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("build", help="encode a binary collection into an index")
    p.add_argument("collection_filename")
    p.add_argument("--density", type=float, default=-1.0)
    p.add_argument("--size", type=int, default=0)
    p.add_argument("--out", default=None)
    p.set_defaults(func=_cmd_build)

    for name, func in (
        ("cardinality", _cmd_cardinality),
        ("decode", _cmd_decode),
        ("uncompress", _cmd_uncompress),
    ):
        p = sub.add_parser(name)
        p.add_argument("index_filename")
        p.set_defaults(func=func)

    for name, func in (
        ("contains", _cmd_contains),
        ("intersect", _cmd_intersect),
        ("union", _cmd_union),
    ):
        p = sub.add_parser(name, help="queries are read from standard input")
        p.add_argument("index_filename")
        p.add_argument("num_queries", type=int)
        p.set_defaults(func=func)

    for name, func in (("next-geq", _cmd_next_geq), ("select", _cmd_select)):
        p = sub.add_parser(name, help="queries are read from standard input")
        p.add_argument("index_filename")
        p.add_argument("num_queries_per_sequence", type=int)
        p.set_defaults(func=func)

    p = sub.add_parser("example", help="encode a list read from standard input")
    p.add_argument("-o", "--output", default=None)
    p.set_defaults(func=_cmd_example)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run a command; return the process exit status."""
    args = _parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())