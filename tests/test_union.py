from functools import reduce

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from slicedset.building import encode_sequence
from slicedset.sequence import Sequence
from slicedset.union import pairwise_union, union_many


def make(values):
    data, _ = encode_sequence(values)
    return Sequence(data)


def merge(lists):
    return sorted(reduce(lambda acc, xs: acc | set(xs), lists, set()))


SPARSE = [3, 17, 200, 1000, 70000]
SPARSE_OTHER = [17, 201, 1000, 5000, 140000]
DENSE_BLOCKS = list(range(100, 140)) + [300, 301] + list(range(512, 560))
DENSE_CHUNK = list(range(0, 65536, 2))
FULL_CHUNK = list(range(65536))
MANY_CHUNKS = [i * 65536 + 7 for i in range(40)]
MANY_CHUNKS_OTHER = [i * 65536 + 9 for i in range(0, 45, 3)]
FAR = [5 * 65536 + 1, 9 * 65536 + 2]


PAIRS = [
    (SPARSE, SPARSE_OTHER),
    (SPARSE, DENSE_BLOCKS),
    (DENSE_BLOCKS, list(range(120, 180))),
    (SPARSE, DENSE_CHUNK),
    (DENSE_CHUNK, list(range(1, 65536, 2))),
    (DENSE_CHUNK, FULL_CHUNK),
    (SPARSE, FULL_CHUNK),
    (FULL_CHUNK, FULL_CHUNK),
    (MANY_CHUNKS, MANY_CHUNKS_OTHER),
    (SPARSE, FAR),
    (FAR, SPARSE),
    ([0], [0xFFFFFFFF]),
]


@pytest.mark.parametrize("left,right", PAIRS)
def test_pairwise_union_matches_set_union(left, right):
    expected = merge([left, right])
    assert pairwise_union(make(left), make(right)) == expected
    assert pairwise_union(make(right), make(left)) == expected


def test_pairwise_union_with_itself_is_identity():
    seq = make(DENSE_BLOCKS)
    assert pairwise_union(seq, seq) == DENSE_BLOCKS


def test_pairwise_union_of_decoded_sequences():
    left, right = make(MANY_CHUNKS), make(SPARSE)
    expected = merge([left.decode(), right.decode()])
    assert pairwise_union(left, right) == expected


@pytest.mark.parametrize(
    "lists",
    [
        [SPARSE, SPARSE_OTHER],
        [SPARSE, SPARSE_OTHER, DENSE_BLOCKS],
        [DENSE_CHUNK, SPARSE, FAR],
        [FULL_CHUNK, SPARSE, DENSE_CHUNK],
        [MANY_CHUNKS, MANY_CHUNKS_OTHER, FAR, SPARSE],
        [SPARSE],
    ],
)
def test_union_many_matches_folded_pairwise_union(lists):
    assert union_many([make(xs) for xs in lists]) == merge(lists)


def test_union_many_agrees_with_pairwise_union():
    left, right = make(DENSE_BLOCKS), make(DENSE_CHUNK)
    assert union_many([left, right]) == pairwise_union(left, right)


def test_union_many_requires_a_sequence():
    with pytest.raises(ValueError):
        union_many([])


value_sets = st.sets(st.integers(min_value=0, max_value=300_000), min_size=1, max_size=60)


@settings(max_examples=40, deadline=None)
@given(value_sets, value_sets)
def test_pairwise_union_property(a, b):
    assert pairwise_union(make(sorted(a)), make(sorted(b))) == sorted(a | b)


@settings(max_examples=30, deadline=None)
@given(st.lists(value_sets, min_size=1, max_size=4))
def test_union_many_property(sets):
    expected = sorted(set().union(*sets))
    assert union_many([make(sorted(s)) for s in sets]) == expected