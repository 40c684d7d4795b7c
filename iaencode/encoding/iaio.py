from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import Union

import numpy as np

from ..errors import ArtifactUnwritable, MalformedArtifact, SourceUnreadable
from ..models import IndexedArray, FLOAT_DTYPE, INDEX_DTYPE
from .builder import IndexedArrayBuilder

logger = logging.getLogger(__name__)

MAGIC_PREFIX = b"IA"
HEADER_SIZE = 16
RESERVED_SIZE = 12
_COUNT = struct.Struct("<I")

ArrayLike = Union[IndexedArray, IndexedArrayBuilder]


def magic_for(arity: int) -> bytes:
    """``b"IA<digit>\\0"`` for a single-digit arity."""
    if not 1 <= int(arity) <= 9:
        raise ValueError(f"IA format stores the arity as one digit; cannot encode arity {arity}.")
    return MAGIC_PREFIX + str(int(arity)).encode("ascii") + b"\x00"


def header_bytes(arity: int) -> bytes:
    return magic_for(arity) + bytes(RESERVED_SIZE)


def encode_ia(array: ArrayLike) -> bytes:
    """Serialize an indexed array; identical state always gives identical bytes."""
    if isinstance(array, IndexedArrayBuilder):
        array = array.snapshot()
    if array.vertex_count > 0xFFFFFFFF or array.index_count > 0xFFFFFFFF:
        raise ValueError("IA counts must fit in uint32.")

    verts = np.ascontiguousarray(array.vertices, dtype=FLOAT_DTYPE)
    idx = np.ascontiguousarray(array.indices, dtype=INDEX_DTYPE)

    out = bytearray(header_bytes(array.arity))
    out += _COUNT.pack(array.vertex_count)
    out += verts.tobytes(order="C")
    out += _COUNT.pack(array.index_count)
    out += idx.tobytes(order="C")
    return bytes(out)


def _read_block(mv: memoryview, dtype: np.dtype, count: int, offset: int) -> np.ndarray:
    if count == 0:
        return np.zeros(0, dtype=dtype)
    return np.frombuffer(mv, dtype=dtype, count=count, offset=offset)


def decode_ia(data: bytes) -> IndexedArray:
    """Parse bytes produced by :func:`encode_ia`. Reserved bytes are not interpreted."""
    mv = memoryview(data)
    if len(mv) < HEADER_SIZE + _COUNT.size:
        raise MalformedArtifact(f"IA data too small ({len(mv)} bytes).")
    magic = bytes(mv[:4])
    if magic[:2] != MAGIC_PREFIX or magic[3:4] != b"\x00" or not magic[2:3].isdigit() or magic[2:3] == b"0":
        raise MalformedArtifact(f"Bad IA magic {magic!r}.")
    arity = int(magic[2:3].decode("ascii"))

    offset = HEADER_SIZE
    (n_vert,) = _COUNT.unpack_from(mv, offset)
    offset += _COUNT.size
    vert_bytes = n_vert * arity * FLOAT_DTYPE.itemsize
    if len(mv) < offset + vert_bytes + _COUNT.size:
        raise MalformedArtifact(f"Truncated vertex block: {n_vert} vertices of arity {arity} declared.")
    verts = _read_block(mv, FLOAT_DTYPE, n_vert * arity, offset).reshape(n_vert, arity)
    offset += vert_bytes

    (n_idx,) = _COUNT.unpack_from(mv, offset)
    offset += _COUNT.size
    idx_bytes = n_idx * INDEX_DTYPE.itemsize
    if len(mv) != offset + idx_bytes:
        raise MalformedArtifact(
            f"Index block size mismatch: {n_idx} indices declared, {len(mv) - offset} bytes present."
        )
    idx = _read_block(mv, INDEX_DTYPE, n_idx, offset)
    if idx.size and int(idx.max()) >= n_vert:
        raise MalformedArtifact(f"Index {int(idx.max())} out of range for {n_vert} vertices.")

    return IndexedArray(vertices=verts.copy(), indices=idx.copy(), arity=arity)


def save_ia(array: ArrayLike, path: str | Path) -> Path:
    """Encode ``array`` and write it to ``path``, creating parent directories."""
    path = Path(path)
    payload = encode_ia(array)
    try:
        if path.parent and path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as handle:
            handle.write(payload)
    except OSError as exc:
        raise ArtifactUnwritable(f"Cannot write artifact ({exc.strerror or exc}).", str(path)) from exc
    logger.info("wrote %s (%d bytes)", path, len(payload))
    return path


def load_ia(resource: str | Path) -> IndexedArray:
    """Load an IA artifact written by :func:`save_ia`."""
    path = Path(resource)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SourceUnreadable(f"Cannot open artifact ({exc.strerror or exc}).", str(path)) from exc
    try:
        return decode_ia(data)
    except MalformedArtifact as exc:
        raise MalformedArtifact(exc.message, str(path)) from exc


__all__ = ["encode_ia", "decode_ia", "save_ia", "load_ia", "magic_for", "header_bytes"]
