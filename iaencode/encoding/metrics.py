"""
Size statistics for indexed arrays.

reuse = indices / vertices, i.e. how many corners each stored vertex serves
on average (0.0 for an empty array).
"""
from __future__ import annotations

from typing import Dict, Iterable

from ..models import IndexedArray, FLOAT_DTYPE, INDEX_DTYPE
from .iaio import HEADER_SIZE


def encoded_size(array: IndexedArray) -> int:
    """Byte length of the encoded artifact, without encoding it."""
    return (
        HEADER_SIZE
        + 4 + array.vertex_count * array.arity * FLOAT_DTYPE.itemsize
        + 4 + array.index_count * INDEX_DTYPE.itemsize
    )


def summarize(array: IndexedArray) -> Dict[str, float]:
    n_v = array.vertex_count
    n_i = array.index_count
    expanded = n_i * array.arity * FLOAT_DTYPE.itemsize
    return {
        "arity": array.arity,
        "vertices": n_v,
        "indices": n_i,
        "triangles": n_i // 3,
        "reuse": float(n_i) / float(n_v) if n_v else 0.0,
        "bytes": encoded_size(array),
        "unindexed_bytes": expanded,
    }


def format_summary(summary: Dict[str, float]) -> str:
    return (
        f"{summary['vertices']} vertices, {summary['indices']} indices "
        f"(each vertex used {summary['reuse']:.1f} times in avg)"
    )


def total(summaries: Iterable[Dict[str, float]]) -> Dict[str, float]:
    out = {"vertices": 0, "indices": 0, "bytes": 0}
    for s in summaries:
        for key in out:
            out[key] += s[key]
    return out
