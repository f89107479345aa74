import struct
from functools import reduce
from itertools import product

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from slicedset.building import IndexBuilder, encode_sequence
from slicedset.index import Index
from slicedset.intersection import intersection, pairwise_intersection
from slicedset.sequence import Sequence
from slicedset.util import CHUNK_SIZE, Parameters

MIXED = sorted(
    set(
        [3, 7, 300, 301, 511]
        + list(range(1000, 1100, 2))
        + list(range(CHUNK_SIZE, CHUNK_SIZE + 50000))
        + list(range(2 * CHUNK_SIZE, 3 * CHUNK_SIZE))
        + [4 * CHUNK_SIZE + 5, 4 * CHUNK_SIZE + 260]
    )
)
THIRDS = list(range(0, 3 * CHUNK_SIZE, 3))
SPREAD = [k * CHUNK_SIZE + (k * 37) % CHUNK_SIZE for k in range(70)]
FULL_ONE = list(range(CHUNK_SIZE, 2 * CHUNK_SIZE))
SMALL = [3, 300, 1000, 1024, 1098, CHUNK_SIZE + 5, 2 * CHUNK_SIZE + 37, 4 * CHUNK_SIZE + 260]

ALL = [MIXED, THIRDS, SPREAD, FULL_ONE, SMALL]


def _sequence(values):
    data, _ = encode_sequence(values)
    return Sequence(data)


def _reference(lists):
    return sorted(reduce(lambda a, b: a & b, (set(v) for v in lists)))


@pytest.mark.parametrize("left,right", list(product(ALL, ALL)))
def test_pairwise_matches_set_intersection(left, right):
    got = pairwise_intersection(_sequence(left), _sequence(right))
    assert got == _reference([left, right])


@pytest.mark.parametrize("left,right", list(product(ALL, ALL)))
def test_many_with_two_matches_set_intersection(left, right):
    assert intersection([_sequence(left), _sequence(right)]) == _reference([left, right])


def test_many_three_way():
    lists = [MIXED, THIRDS, SMALL]
    assert intersection([_sequence(v) for v in lists]) == _reference(lists)


def test_disjoint_is_empty():
    a = _sequence([1, 2, 3])
    b = _sequence([CHUNK_SIZE + 1, CHUNK_SIZE + 2])
    assert pairwise_intersection(a, b) == []
    assert intersection([a, b]) == []


def test_same_chunk_disjoint_bits_is_empty():
    a = _sequence(list(range(0, CHUNK_SIZE, 2)))
    b = _sequence(list(range(1, CHUNK_SIZE, 2)))
    assert intersection([a, b]) == []


def test_single_sequence_returns_its_values():
    assert intersection([_sequence(MIXED)]) == MIXED


def test_no_sequences_rejected():
    with pytest.raises(ValueError):
        intersection([])


def test_input_order_unchanged():
    seqs = [_sequence(MIXED), _sequence(SMALL)]
    before = list(seqs)
    intersection(seqs)
    assert seqs == before


def test_queries_over_index(tmp_path):
    lists = [MIXED, THIRDS, SPREAD, SMALL]
    words = [1, 5 * CHUNK_SIZE]
    for values in lists:
        words += [len(values), *values]
    collection = tmp_path / "collection.bin"
    collection.write_bytes(struct.pack(f"<{len(words)}I", *words))
    builder = IndexBuilder(Parameters(collection_filename=str(collection)))
    builder.build()
    index = Index(builder.to_bytes())
    for i, j in [(0, 1), (1, 2), (0, 3), (2, 3), (1, 1)]:
        expected = _reference([index[i].decode(), index[j].decode()])
        assert intersection([index[i], index[j]]) == expected
        assert pairwise_intersection(index[i], index[j]) == expected


@settings(max_examples=40, deadline=None)
@given(st.lists(st.sets(st.integers(0, 200000), min_size=1, max_size=400), min_size=1, max_size=4))
def test_random_many(sets):
    lists = [sorted(s) for s in sets]
    assert intersection([_sequence(v) for v in lists]) == _reference(lists)


@settings(max_examples=40, deadline=None)
@given(
    st.sets(st.integers(0, 140000), min_size=1, max_size=400),
    st.sets(st.integers(0, 140000), min_size=1, max_size=400),
)
def test_random_pairwise(a, b):
    left, right = sorted(a), sorted(b)
    assert pairwise_intersection(_sequence(left), _sequence(right)) == _reference([left, right])