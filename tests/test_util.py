import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from slicedset.util import (
    BLOCKS_PER_CHUNK,
    CHUNK_SIZE,
    MAX_SPARSE_BLOCK_CARDINALITY,
    Parameters,
    Statistics,
    bytes_for,
    elias_fano_bitsize,
    num_chunks,
    passes,
)


@given(st.integers(min_value=0, max_value=2**32 - 1))
def test_num_chunks_covers_universe(universe):
    chunks = num_chunks(universe)
    assert chunks * CHUNK_SIZE > universe
    assert (chunks - 1) * CHUNK_SIZE <= universe


def test_num_chunks_largest_universe_fits_in_chunk_count():
    assert num_chunks(2**32 - 1) == CHUNK_SIZE


@given(st.integers(min_value=0, max_value=10**9))
def test_bytes_for_rounds_up(bits):
    n = bytes_for(bits)
    assert n * 8 >= bits
    assert n * 8 < bits + 8


@pytest.mark.parametrize("n", [1, 5, 100, 4096])
def test_elias_fano_without_low_bits(n):
    assert elias_fano_bitsize(n, n) == 2 * n
    assert elias_fano_bitsize(n, 1) == 2 * n


@given(
    st.integers(min_value=1, max_value=10_000),
    st.integers(min_value=1, max_value=10**7),
)
def test_elias_fano_grows_with_universe(n, u):
    assert elias_fano_bitsize(n, 2 * u) >= elias_fano_bitsize(n, u)
    assert elias_fano_bitsize(n, u) >= 2 * n


def test_elias_fano_of_nothing():
    assert elias_fano_bitsize(0, CHUNK_SIZE) == 0


def test_passes_by_size():
    params = Parameters(size=100)
    assert passes(params, 101, 10**6)
    assert not passes(params, 100, 10**6)


def test_passes_by_density():
    params = Parameters(size=100, density=0.01)
    assert passes(params, 50, 1000)
    assert not passes(params, 50, 10**6)


def test_passes_defaults_reject_empty_list():
    params = Parameters()
    assert not passes(params, 0, 0)
    assert passes(params, 1, 0)


def test_parameters_defaults():
    params = Parameters()
    assert params.density < 0.0
    assert params.size == 0
    assert params.collection_filename == ""


def test_accumulate_adds_block_counters_only():
    mine = Statistics(dense_blocks=1)
    other = Statistics(dense_blocks=2, sequences=7, sparse_blocks_bits=40)
    other.sparse_blocks_cardinalities[5] = 4
    mine.accumulate(other)
    assert mine.dense_blocks == 3
    assert mine.sparse_blocks_bits == 40
    assert mine.sparse_blocks_cardinalities[5] == 4
    assert mine.sequences == 0


def test_statistics_arrays_sized_by_layout():
    stats = Statistics()
    assert len(stats.sparse_blocks_cardinalities) == MAX_SPARSE_BLOCK_CARDINALITY + 1
    assert len(stats.num_blocks_in_chunks) == BLOCKS_PER_CHUNK + 1
    assert len(stats.num_integers) == BLOCKS_PER_CHUNK + 1


def test_report_mentions_totals():
    stats = Statistics(sequences=3, integers=10, bits=800, chunks=4)
    text = stats.report()
    lines = text.splitlines()
    assert lines[0] == "processed 3 sequences, 10 integers"
    assert "total bytes: 100" in lines
    assert "chunks: 4" in lines


def test_report_lists_every_cardinality_and_block_count():
    text = Statistics().report()
    assert f"sparse blocks with card. {MAX_SPARSE_BLOCK_CARDINALITY}: nan" in text
    assert f"sparse chunks with {BLOCKS_PER_CHUNK} blocks:" in text
    assert text.count("expected_value") == 2


def test_report_handles_division_by_zero():
    text = Statistics().report()
    assert "total bpi: nan" in text
    assert not math.isnan(len(text))