import struct

import pytest

from slicedset.building import IndexBuilder
from slicedset.index import Index
from slicedset.util import Parameters


def _write_collection(path, universe, lists):
    words = [1, universe]
    for values in lists:
        words += [len(values), *values]
    path.write_bytes(struct.pack(f"<{len(words)}I", *words))


def _build(tmp_path, universe, lists, **params):
    collection = tmp_path / "collection.bin"
    _write_collection(collection, universe, lists)
    builder = IndexBuilder(Parameters(collection_filename=str(collection), **params))
    builder.build()
    return builder


LISTS = [[1, 2, 3], list(range(0, 150000, 5)), [70000, 70001], list(range(65536, 131072))]


def test_roundtrip_through_file(tmp_path):
    builder = _build(tmp_path, 150000, LISTS)
    out = tmp_path / "index.bin"
    builder.save(out)
    index = Index.open(out)
    assert len(index) == len(LISTS)
    assert index.universe() == 150000
    assert [index[i].decode() for i in range(len(index))] == LISTS


def test_from_bytes_matches_file(tmp_path):
    builder = _build(tmp_path, 150000, LISTS)
    out = tmp_path / "index.bin"
    builder.save(out)
    from_file = Index.open(out)
    from_bytes = Index(builder.to_bytes())
    assert [len(s) for s in from_bytes] == [len(s) for s in from_file]
    assert [len(s) for s in from_bytes] == [len(v) for v in LISTS]


def test_empty_lists_are_skipped(tmp_path):
    builder = _build(tmp_path, 10, [[1], [], [4, 5]])
    index = Index(builder.to_bytes())
    assert len(index) == 2
    assert index[1].decode() == [4, 5]


def test_size_filter(tmp_path):
    builder = _build(tmp_path, 100, [[1], [1, 2, 3], [7, 8]], size=2)
    index = Index(builder.to_bytes())
    assert len(index) == 1
    assert index[0].decode() == [1, 2, 3]


def test_out_of_range(tmp_path):
    index = Index(_build(tmp_path, 10, [[1, 2]]).to_bytes())
    assert len(index) == 1
    assert index[0].decode() == [1, 2]
    with pytest.raises(IndexError):
        index[1]
    with pytest.raises(IndexError):
        index[-1]


def test_truncated_buffer_rejected(tmp_path):
    data = _build(tmp_path, 10, [[1, 2]]).to_bytes()
    with pytest.raises(ValueError):
        Index(data[:-1])
    with pytest.raises(ValueError):
        Index(data[:4])


def test_zero_entries_rejected():
    with pytest.raises(ValueError):
        Index(struct.pack("<QQ", 0, 0))