import numpy as np
import pytest

from iaencode.models import AttributeTuple, IndexedArray
from iaencode.encoding.builder import IndexedArrayBuilder, build_indexed_array

A = (0.0, 0.0, 0.0)
B = (1.0, 0.0, 0.0)
C = (0.0, 1.0, 0.0)


def _random_stream(n=400, arity=8, levels=3, seed=7):
    rng = np.random.default_rng(seed)
    return rng.integers(0, levels, size=(n, arity)).astype(np.float32) * np.float32(0.25)


def test_concrete_dedup_scenario():
    b = IndexedArrayBuilder(3)
    returned = [b.submit(t) for t in (A, B, A, B, C)]
    assert returned == [0, 1, 0, 1, 2]
    assert [tuple(v) for v in b.vertices] == [A, B, C]
    assert b.indices == (0, 1, 0, 1, 2)
    assert len(b) == 5


def test_reconstruction_and_minimality():
    stream = _random_stream()
    arr = build_indexed_array(stream, arity=8)
    np.testing.assert_array_equal(arr.expand(), stream)
    assert arr.index_count == stream.shape[0]
    assert int(arr.indices.max()) < arr.vertex_count
    assert np.unique(arr.vertices, axis=0).shape[0] == arr.vertex_count
    for i in (0, 17, 399):
        assert arr.tuple_at(i) == AttributeTuple(stream[i])


def test_vertices_follow_first_occurrence_order():
    stream = _random_stream(n=200, arity=3, seed=3)
    expected = []
    seen = set()
    for row in stream:
        key = row.tobytes()
        if key not in seen:
            seen.add(key)
            expected.append(row)
    arr = build_indexed_array(stream, arity=3)
    np.testing.assert_array_equal(arr.vertices, np.asarray(expected))


def test_different_first_occurrence_orders_are_permutations():
    first = build_indexed_array([A, B, C, A], arity=3)
    second = build_indexed_array([C, A, B, C], arity=3)
    assert [tuple(v) for v in first.vertices] == [A, B, C]
    assert [tuple(v) for v in second.vertices] == [C, A, B]
    assert sorted(map(tuple, first.vertices.tolist())) == sorted(map(tuple, second.vertices.tolist()))


def test_equality_is_exact_float32_bits():
    b = IndexedArrayBuilder(1)
    b.submit((0.0,))
    b.submit((-0.0,))
    b.submit((1e-7,))
    assert len(b.vertices) == 3

    # Values that collapse to the same float32 are the same vertex.
    b2 = IndexedArrayBuilder(1)
    b2.submit((1.0,))
    b2.submit((1.0 + 1e-12,))
    b2.submit(np.array([1.0], dtype=np.float32))
    assert len(b2.vertices) == 1
    assert b2.indices == (0, 0, 0)


def test_no_tolerance_between_close_values():
    b = IndexedArrayBuilder(3)
    b.submit((0.5, 0.5, 0.5))
    b.submit((0.5, 0.5, float(np.nextafter(np.float32(0.5), np.float32(1.0)))))
    assert len(b.vertices) == 2


def test_arity_mismatch_is_rejected():
    b = IndexedArrayBuilder(8)
    with pytest.raises(ValueError):
        b.submit(A)
    with pytest.raises(ValueError):
        IndexedArrayBuilder(0)


def test_empty_builder_finalizes_to_empty_arrays():
    arr = IndexedArrayBuilder(8).finalize()
    assert isinstance(arr, IndexedArray)
    assert arr.vertices.shape == (0, 8)
    assert arr.indices.shape == (0,)
    assert arr.vertices.dtype == np.float32 and arr.indices.dtype == np.uint32


def test_finalized_builder_is_frozen():
    b = IndexedArrayBuilder(3)
    b.submit(A)
    arr = b.finalize()
    assert b.finalized
    with pytest.raises(RuntimeError):
        b.submit(B)
    assert not arr.vertices.flags.writeable
    assert not arr.indices.flags.writeable


def test_attribute_tuple_is_immutable_and_hashable():
    t = AttributeTuple.from_parts((1.0, 2.0, 3.0), (0.5, 0.25), (0.0, 0.0, 1.0))
    assert t.arity == 8
    assert t[3] == 0.5
    with pytest.raises(ValueError):
        t.values[0] = 9.0
    assert {t: 1}[AttributeTuple(np.array([1, 2, 3, 0.5, 0.25, 0, 0, 1]))] == 1
    assert t != AttributeTuple((1.0, 2.0, 3.0))
