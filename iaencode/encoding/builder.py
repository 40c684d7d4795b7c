"""
Vertex deduplication into an indexed array.

Every submitted attribute tuple appends exactly one index. A tuple seen for
the first time is appended to the unique vertex list; later occurrences reuse
the position recorded at first insertion. Identity is the raw float32 byte
pattern, so lookups are dict hits instead of a scan over the unique set while
the vertex order stays the first-occurrence order of the input stream.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple, Union
import numpy as np

from ..models import AttributeTuple, IndexedArray, FLOAT_DTYPE, INDEX_DTYPE

TupleLike = Union[AttributeTuple, Sequence[float], np.ndarray]

MAX_INDEX = 0xFFFFFFFF


class IndexedArrayBuilder:
    """Accumulate attribute tuples of a fixed arity; not safe for concurrent ``submit``."""

    def __init__(self, arity: int) -> None:
        if int(arity) < 1:
            raise ValueError(f"Arity must be positive (got {arity}).")
        self.arity = int(arity)
        self._lookup: Dict[bytes, int] = {}
        self._vertices: List[AttributeTuple] = []
        self._indices: List[int] = []
        self._finalized = False

    def submit(self, value: TupleLike) -> int:
        """Append one corner and return the vertex position it resolved to."""
        if self._finalized:
            raise RuntimeError("Builder already finalized; no further submissions allowed.")
        tup = value if isinstance(value, AttributeTuple) else AttributeTuple(np.asarray(value))
        if tup.arity != self.arity:
            raise ValueError(f"Expected {self.arity} components, got {tup.arity}.")

        key = tup.key
        pos = self._lookup.get(key)
        if pos is None:
            pos = len(self._vertices)
            if pos > MAX_INDEX:
                raise OverflowError("Vertex count exceeds the uint32 index range.")
            self._lookup[key] = pos
            self._vertices.append(tup)
        self._indices.append(pos)
        return pos

    def extend(self, values: Iterable[TupleLike]) -> None:
        for value in values:
            self.submit(value)

    @property
    def vertices(self) -> Tuple[AttributeTuple, ...]:
        return tuple(self._vertices)

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(self._indices)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __len__(self) -> int:
        """Number of submitted corners."""
        return len(self._indices)

    def snapshot(self) -> IndexedArray:
        """Current state as read-only arrays; the builder stays open."""
        if self._vertices:
            verts = np.vstack([t.values for t in self._vertices]).astype(FLOAT_DTYPE, copy=False)
        else:
            verts = np.zeros((0, self.arity), dtype=FLOAT_DTYPE)
        idx = np.asarray(self._indices, dtype=INDEX_DTYPE)
        verts.setflags(write=False)
        idx.setflags(write=False)
        return IndexedArray(vertices=verts, indices=idx, arity=self.arity)

    def finalize(self) -> IndexedArray:
        """Freeze the builder and hand its state over as read-only arrays."""
        self._finalized = True
        return self.snapshot()


def build_indexed_array(values: Iterable[TupleLike], arity: int) -> IndexedArray:
    """One-shot helper: dedup ``values`` and return the finalized arrays."""
    builder = IndexedArrayBuilder(arity)
    builder.extend(values)
    return builder.finalize()


__all__ = ["IndexedArrayBuilder", "build_indexed_array"]
