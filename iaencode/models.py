from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Sequence
import numpy as np


FLOAT_DTYPE = np.dtype("<f4")
INDEX_DTYPE = np.dtype("<u4")

# Attribute widths used by the converter.
RENDER_ARITY = 8      # position[3] + uv[2] + normal[3]
COLLISION_ARITY = 3   # position only


@dataclass(frozen=True, eq=False)
class AttributeTuple:
    """
    Immutable vector of N float32 components attached to one face corner.

    Two tuples are equal iff every component has the same float32 bit pattern,
    so ``0.0`` and ``-0.0`` are distinct and no tolerance is applied.
    """
    values: np.ndarray

    def __post_init__(self) -> None:
        v = np.array(self.values, dtype=FLOAT_DTYPE).reshape(-1)
        if v.size == 0:
            raise ValueError("AttributeTuple needs at least one component.")
        v.setflags(write=False)
        object.__setattr__(self, "values", v)

    @classmethod
    def from_parts(cls, *parts: Sequence[float]) -> "AttributeTuple":
        """Concatenate attribute groups, e.g. ``from_parts(position, uv, normal)``."""
        flat = [float(x) for part in parts for x in part]
        return cls(np.asarray(flat, dtype=FLOAT_DTYPE))

    @property
    def arity(self) -> int:
        return int(self.values.size)

    @property
    def key(self) -> bytes:
        """Raw little-endian float32 bytes; the identity used for dedup."""
        return self.values.tobytes()

    def __len__(self) -> int:
        return self.arity

    def __getitem__(self, i: int) -> float:
        return float(self.values[i])

    def __iter__(self) -> Iterator[float]:
        return (float(x) for x in self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeTuple):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"AttributeTuple({list(self)!r})"


@dataclass
class IndexedArray:
    """
    Finalized vertex + index buffers of one builder.
    - vertices: (V, arity) float32 array, unique rows in first-occurrence order
    - indices:  (I,) uint32 array, one entry per submitted corner
    """
    vertices: np.ndarray
    indices: np.ndarray
    arity: int

    def __post_init__(self) -> None:
        self.arity = int(self.arity)
        if self.arity < 1:
            raise ValueError(f"Arity must be positive (got {self.arity}).")
        self.vertices = np.asarray(self.vertices, dtype=FLOAT_DTYPE).reshape(-1, self.arity)
        self.indices = np.asarray(self.indices, dtype=INDEX_DTYPE).reshape(-1)

    @classmethod
    def empty(cls, arity: int) -> "IndexedArray":
        return cls(vertices=np.zeros((0, arity), dtype=FLOAT_DTYPE), indices=np.zeros(0, dtype=INDEX_DTYPE), arity=arity)

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def index_count(self) -> int:
        return int(self.indices.shape[0])

    @property
    def positions(self) -> np.ndarray:
        """First three components of every vertex."""
        return self.vertices[:, :3]

    def tuple_at(self, i: int) -> AttributeTuple:
        """Reconstruct the i-th submitted corner."""
        return AttributeTuple(self.vertices[int(self.indices[i])])

    def expand(self) -> np.ndarray:
        """Reconstruct the full per-corner stream, shape (I, arity)."""
        return self.vertices[self.indices.astype(np.int64)]

    def triangles(self) -> np.ndarray:
        """Indices grouped as (T, 3) triangles."""
        if self.index_count % 3 != 0:
            raise ValueError(f"Index count {self.index_count} is not a multiple of 3.")
        return self.indices.reshape(-1, 3)


@dataclass
class MaterialLibrary:
    """
    Materials declared by an MTL file, in declaration order.
    - textures: material name -> diffuse texture reference (None if no map_Kd)
    """
    textures: Dict[str, Optional[str]] = field(default_factory=dict)

    def declare(self, name: str) -> None:
        self.textures.setdefault(name, None)

    def set_texture(self, name: str, texture: str) -> None:
        self.textures[name] = texture

    def texture(self, name: str) -> Optional[str]:
        return self.textures.get(name)

    def merge(self, other: "MaterialLibrary") -> None:
        for name, tex in other.textures.items():
            if tex is None:
                self.declare(name)
            else:
                self.set_texture(name, tex)
