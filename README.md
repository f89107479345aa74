# slicedset

`slicedset` stores sorted sets of distinct unsigned 32-bit integers in a
compact, sliced layout. The universe is cut into chunks of 65,536 values, and
each chunk that holds any value is stored as one of three kinds:

- **full**: every value in the chunk is present, and only a header is stored;
- **dense**: an 8 KiB bitmap;
- **sparse**: split again into blocks of 256 values, each non-empty block kept
  either as a 32-byte bitmap or as a short list of one-byte offsets.

The encoder picks the kind per chunk and per block from the encoded sizes.
After every 32 chunks a skip pointer (cardinality and byte size of the group)
is written, so lookups can jump over runs of chunks.

On top of the encoded sequences the package offers:

- decoding a whole sequence to a list, or expanding it into one integer bitmap;
- membership tests, `select` (the value at a given rank) and `next_geq`
  (the smallest value not below a bound);
- sequential enumeration and a forward-only `next_geq` enumerator;
- pairwise and many-way intersection and union;
- an index holding many sequences in one file;
- generators for test collections and query workloads.

The package is pure Python and has no runtime dependencies.

## Installation

```
pip install slicedset
```

To run the test suite:

```
pip install "slicedset[test]"
pytest
```

## Encoding a single sequence

```python
from slicedset.building import encode_sequence
from slicedset.sequence import Sequence

data, stats = encode_sequence([3, 70000, 70001, 1 << 20])
sequence = Sequence(data)

sequence.decode()          # [3, 70000, 70001, 1048576]
len(sequence)              # 4
sequence.contains(70001)   # True
sequence.select(2)         # 70001
sequence.next_geq(70002)   # 1048576
bitmap, count = sequence.uncompress()
```

Values must be strictly increasing and fit in 32 unsigned bits; otherwise
`ValueError` is raised. `select` raises `IndexError` for a rank outside the
sequence, and `next_geq` returns `slicedset.util.NOT_FOUND` (`0xFFFFFFFF`)
when no element is large enough. `SequenceBuilder` wraps the same encoding:
`build(values)` returns the statistics and `data()` the encoded bytes.

`Statistics.report()` returns a text summary of the sizes: chunk and block
kinds, bits per integer for each part of the layout, and distributions of
sparse block cardinalities.

## Collections

A collection file is a flat run of little-endian unsigned 32-bit integers. It
starts with a singleton list holding the universe size (`1, universe`),
followed by the lists themselves, each written as its length `n` and then its
`n` values in strictly increasing order. `slicedset.building.read_collection`
reads such a file and returns the universe and the lists.

`slicedset.generators` writes such files, either with lists of uniformly
random values (`generate_uniform`) or with values clustered chunk by chunk
(`generate_clustered`, which writes the binary format when `binary=True` and a
plain text listing otherwise). Both accept a `random.Random` for repeatable
output and return the lists they wrote.

## Building and querying an index

```python
from slicedset.util import Parameters
from slicedset.building import IndexBuilder
from slicedset.index import Index

params = Parameters(collection_filename="collection.bin")
builder = IndexBuilder(params)
stats = builder.build()
print(stats.report())
builder.save("collection.idx")

index = Index.open("collection.idx")
print(len(index), "sequences over a universe of", index.universe())

sequence = index[0]
values = sequence.decode()
assert len(values) == len(sequence)
assert sequence.contains(values[0])
assert sequence.select(0) == values[0]
assert sequence.next_geq(values[-1]) == values[-1]
```

`Parameters` decides which lists of a collection go into the index: a list is
kept when `density` is non-negative and its length divided by its last value
exceeds it, or when it has more than `size` elements. With the defaults every
non-empty list is kept. `Index` reads the whole file into memory;
`Index(buffer)` builds one from bytes already loaded.

## Enumerating

```python
from slicedset.enumerators import Enumerator, NextGeqEnumerator

for value in Enumerator(sequence, index.universe()):
    ...

finder = NextGeqEnumerator(sequence)
finder.next_geq(1000)
finder.next_geq(5000)
```

`Enumerator` decodes one chunk at a time; once exhausted, `value()` returns the
past-the-end value given to it. `NextGeqEnumerator` only moves forward, so the
bounds passed to `next_geq` must not decrease.

## Set operations

```python
from slicedset.intersection import pairwise_intersection, intersection
from slicedset.union import pairwise_union, union_many

common = pairwise_intersection(index[0], index[1])
common_to_all = intersection([index[0], index[1], index[2]])
either = pairwise_union(index[0], index[1])
any_of = union_many([index[0], index[1], index[2]])
```

All four return the resulting values as a list in increasing order.
`intersection` and `union_many` raise `ValueError` when given no sequences.

## Query workloads

`slicedset.generators` also produces queries for a built index:
`pairwise_queries` gives random pairs of sequence positions, `select_queries`
random valid ranks and `next_geq_queries` random elements, the last two
`num_queries_per_sequence` for each sequence in turn. These return lists; they
are not written to files and have no command of their own.

## Command line

The package installs a `slicedset` command:

```
slicedset build collection.bin [--density D] [--size S] [--out collection.idx]
slicedset cardinality collection.idx
slicedset decode collection.idx
slicedset uncompress collection.idx
slicedset contains collection.idx NUM_QUERIES < pairs.txt
slicedset intersect collection.idx NUM_QUERIES < pairs.txt
slicedset union collection.idx NUM_QUERIES < pairs.txt
slicedset select collection.idx NUM_QUERIES_PER_SEQUENCE < ranks.txt
slicedset next-geq collection.idx NUM_QUERIES_PER_SEQUENCE < values.txt
slicedset example [-o output.bin] < list.txt
```

- `build` encodes a binary collection, prints the statistics report and, with
  `--out`, saves the index.
- `cardinality`, `decode` and `uncompress` run over every sequence of an index
  and print counts and timings.
- `contains`, `intersect` and `union` read whitespace-separated pairs of
  integers from standard input (for `contains`: a sequence position and a
  value; for the others: two sequence positions), run them and print the total
  result and timings.
- `select` and `next-geq` read `NUM_QUERIES_PER_SEQUENCE` integers per sequence
  from standard input and print the sum of the answers and timings.
- `example` reads a count followed by that many values, encodes them, prints
  the statistics and checks that decoding and `select` give the values back;
  it exits with status 1 on a mismatch. With `-o` the encoded bytes are written
  to a file, prefixed by their length as an 8-byte integer, and read back from
  it.

Run `slicedset --help` or `slicedset COMMAND --help` for the details.

## Limitations

- There is no command to write collections or query files; use the functions
  in `slicedset.generators` from Python.
- The text listing written by `generate_clustered` is not read by any part of
  the package; `build` and `read_collection` accept only the binary format.
- Index and collection files are read fully into memory rather than mapped.