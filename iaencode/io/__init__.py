from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Tuple
import numpy as np
import trimesh
from trimesh import Trimesh

from ..errors import ArtifactUnwritable, MalformedDirective, SourceUnreadable, line_location
from ..models import IndexedArray, MaterialLibrary

logger = logging.getLogger(__name__)


# ---------- Directive stream ----------

@dataclass(frozen=True)
class Directive:
    """One non-blank, non-comment line split into its command and the rest."""
    command: str
    content: str
    line_no: int
    path: Path

    @property
    def location(self) -> str:
        return line_location(self.path, self.line_no)

    def fields(self) -> List[str]:
        return self.content.split()

    def floats(self, count: int) -> Tuple[float, ...]:
        """Parse the first ``count`` fields as floats; extra fields are ignored."""
        parts = self.fields()
        if len(parts) < count:
            raise MalformedDirective(
                f"'{self.command}' expects {count} numeric fields, got {len(parts)}.", self.location
            )
        try:
            return tuple(float(p) for p in parts[:count])
        except ValueError as exc:
            raise MalformedDirective(f"'{self.command}' has a non-numeric field ({exc}).", self.location) from exc

    def require_content(self) -> str:
        if not self.content:
            raise MalformedDirective(f"'{self.command}' expects an argument.", self.location)
        return self.content


def parse_directives(path: str | Path) -> Iterator[Directive]:
    """
    Yield directives of a line-oriented OBJ/MTL file in file order.
    Blank lines and lines starting with '#' are skipped. Lines must be UTF-8.
    """
    path = Path(path)
    try:
        handle = path.open("rb")
    except OSError as exc:
        raise SourceUnreadable(f"Cannot open \"{path}\" ({exc.strerror or exc}).", str(path)) from exc
    with handle:
        for line_no, raw in enumerate(handle, start=1):
            try:
                line = raw.decode("utf-8").strip()
            except UnicodeDecodeError as exc:
                raise MalformedDirective(
                    f"Line is not valid UTF-8 (byte 0x{raw[exc.start]:02x} at offset {exc.start}).",
                    line_location(path, line_no),
                ) from exc
            if not line or line.startswith("#"):
                continue
            parts = line.split(None, 1)
            content = parts[1].strip() if len(parts) > 1 else ""
            yield Directive(command=parts[0], content=content, line_no=line_no, path=path)


def parse_face(directive: Directive) -> List[Tuple[int, int, int]]:
    """
    Split an ``f`` directive into three 1-based (position, uv, normal) triples.
    Only triangles with full ``p/t/n`` corners are accepted.
    """
    corners = directive.fields()
    if len(corners) != 3:
        raise MalformedDirective(
            f"Faces must be triangles with 3 corners, got {len(corners)}.", directive.location
        )
    out: List[Tuple[int, int, int]] = []
    for corner in corners:
        refs = corner.split("/")
        if len(refs) != 3 or not all(refs):
            raise MalformedDirective(
                f"Face corner '{corner}' must reference position/uv/normal as p/t/n.", directive.location
            )
        try:
            p, t, n = (int(r) for r in refs)
        except ValueError as exc:
            raise MalformedDirective(f"Face corner '{corner}' has a non-integer index.", directive.location) from exc
        out.append((p, t, n))
    return out


def normalize_texture_path(texture: str) -> str:
    """Turn escaped Windows separators (``\\\\``) into forward slashes."""
    return texture.replace("\\\\", "/")


def load_mtl(path: str | Path) -> MaterialLibrary:
    """Read material names and their diffuse textures (``map_Kd``) from an MTL file."""
    library = MaterialLibrary()
    current = None
    for d in parse_directives(path):
        if d.command == "newmtl":
            current = d.require_content()
            library.declare(current)
        elif d.command == "map_Kd":
            if current is None:
                raise MalformedDirective("'map_Kd' appears before any 'newmtl'.", d.location)
            library.set_texture(current, normalize_texture_path(d.require_content()))
    logger.info("material library %s: %d material(s)", path, len(library.textures))
    return library


# ---------- trimesh interop ----------

def to_trimesh(array: IndexedArray) -> Trimesh:
    """IndexedArray -> trimesh.Trimesh using the position components and triangle indices."""
    if array.arity < 3:
        raise ValueError(f"Need at least 3 components per vertex for a mesh (got {array.arity}).")
    v = np.asarray(array.positions, dtype=np.float64)
    f = np.asarray(array.triangles(), dtype=np.int64)
    return trimesh.Trimesh(vertices=v, faces=f, process=False)


def save_mesh(array: IndexedArray, path: str | Path) -> Path:
    """Export the triangles of ``array`` in the format implied by the suffix (STL, OBJ, PLY...)."""
    path = Path(path)
    tm = to_trimesh(array)
    try:
        if path.parent and path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)
        tm.export(str(path))
    except OSError as exc:
        raise ArtifactUnwritable(f"Cannot write mesh ({exc.strerror or exc}).", str(path)) from exc
    return path


__all__ = [
    "Directive",
    "parse_directives",
    "parse_face",
    "normalize_texture_path",
    "load_mtl",
    "to_trimesh",
    "save_mesh",
]
