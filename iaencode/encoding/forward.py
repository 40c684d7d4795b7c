"""
Forward conversion:
- Parse the OBJ (and any MTL libraries it references)
- Route every face corner to the active material's 8-wide builder and to the
  shared 3-wide collision builder
- Encode each finalized builder to its own IA artifact and merge the descriptor
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import normalize_params
from ..errors import AttributeIndexOutOfRange, MalformedDirective, MissingActiveMaterial
from ..io import Directive, load_mtl, parse_directives, parse_face
from ..io.descriptor import prepare_descriptor, write_descriptor
from ..models import (
    AttributeTuple,
    IndexedArray,
    MaterialLibrary,
    COLLISION_ARITY,
    RENDER_ARITY,
)
from .builder import IndexedArrayBuilder
from .iaio import save_ia

logger = logging.getLogger(__name__)

Vec = Tuple[float, ...]

_POOL_LABELS = {"positions": "Position", "uvs": "UV", "normals": "Normal"}


@dataclass
class AttributePools:
    """Positions, uvs and normals declared so far, in declaration order."""
    positions: List[Vec] = field(default_factory=list)
    uvs: List[Vec] = field(default_factory=list)
    normals: List[Vec] = field(default_factory=list)

    def resolve(self, kind: str, index: int, location: Optional[str] = None) -> Vec:
        """Map a 1-based OBJ reference to its value; 0, negatives and overruns are rejected."""
        pool: Sequence[Vec] = getattr(self, kind)
        if index < 1 or index > len(pool):
            raise AttributeIndexOutOfRange(
                f"{_POOL_LABELS[kind]} index {index} out of range (1..{len(pool)} declared).", location
            )
        return pool[index - 1]


@dataclass
class MeshAssembly:
    """
    Builder set for one mesh.
    - materials: material name -> 8-wide builder, in first-activation order
    - collision: one 3-wide builder fed by every face corner
    - library:   textures declared by the referenced MTL files
    """
    materials: Dict[str, IndexedArrayBuilder] = field(default_factory=dict)
    collision: IndexedArrayBuilder = field(default_factory=lambda: IndexedArrayBuilder(COLLISION_ARITY))
    library: MaterialLibrary = field(default_factory=MaterialLibrary)

    def activate(self, name: str) -> IndexedArrayBuilder:
        builder = self.materials.get(name)
        if builder is None:
            builder = IndexedArrayBuilder(RENDER_ARITY)
            self.materials[name] = builder
            logger.info("compiling material %r", name)
        return builder

    def submit_corner(
        self,
        material: Optional[IndexedArrayBuilder],
        position: Sequence[float],
        uv: Sequence[float],
        normal: Sequence[float],
        location: Optional[str] = None,
    ) -> None:
        """Feed one corner to ``material`` and to the collision builder."""
        if material is None:
            raise MissingActiveMaterial("Face data before any 'usemtl' directive.", location)
        material.submit(AttributeTuple.from_parts(position, uv, normal))
        self.collision.submit(AttributeTuple.from_parts(position))

    def finalize(self) -> Tuple[Dict[str, IndexedArray], IndexedArray]:
        arrays = {name: builder.finalize() for name, builder in self.materials.items()}
        return arrays, self.collision.finalize()


def _material_name(directive: Directive) -> str:
    """The ``usemtl`` name, rejected when it would not map to one file inside the data directory."""
    name = directive.require_content()
    if "/" in name or "\\" in name or name in (".", ".."):
        raise MalformedDirective(f"Material name {name!r} is not a valid file name.", directive.location)
    return name


def _handle_face(
    assembly: MeshAssembly,
    pools: AttributePools,
    active: Optional[IndexedArrayBuilder],
    directive: Directive,
) -> None:
    if active is None:
        raise MissingActiveMaterial("Face data before any 'usemtl' directive.", directive.location)
    for p, t, n in parse_face(directive):
        loc = directive.location
        assembly.submit_corner(
            active,
            pools.resolve("positions", p, loc),
            pools.resolve("uvs", t, loc),
            pools.resolve("normals", n, loc),
            loc,
        )


def assemble_obj(obj_path: str | Path) -> MeshAssembly:
    """
    Parse an OBJ file into a populated MeshAssembly. ``mtllib`` paths resolve
    against the OBJ's directory. Nothing is written to disk here.
    """
    obj_path = Path(obj_path)
    obj_dir = obj_path.absolute().parent
    assembly = MeshAssembly()
    pools = AttributePools()
    active: Optional[IndexedArrayBuilder] = None

    for d in parse_directives(obj_path):
        cmd = d.command
        if cmd == "v":
            pools.positions.append(d.floats(3))
        elif cmd == "vt":
            pools.uvs.append(d.floats(2))
        elif cmd == "vn":
            pools.normals.append(d.floats(3))
        elif cmd == "f":
            _handle_face(assembly, pools, active, d)
        elif cmd == "usemtl":
            active = assembly.activate(_material_name(d))
        elif cmd == "mtllib":
            mtl_path = obj_dir / d.require_content()
            logger.info("mtllib %s", mtl_path)
            assembly.library.merge(load_mtl(mtl_path))
        else:
            logger.debug("%s: ignoring '%s'", d.location, cmd)

    logger.info(
        "parsed %s: %d positions, %d uvs, %d normals, %d material(s), %d corners",
        obj_path, len(pools.positions), len(pools.uvs), len(pools.normals),
        len(assembly.materials), len(assembly.collision),
    )
    return assembly


@dataclass
class ArtifactRecord:
    kind: str           # "ia8" or "ia3"
    name: str           # material name, or the collision name
    path: Path
    array: IndexedArray


@dataclass
class ConversionResult:
    model_name: str
    out_dir: Path
    data_dir: Path
    artifacts: List[ArtifactRecord]
    descriptor_path: Optional[Path] = None
    descriptor: Optional[Dict[str, Any]] = None


def export_assembly(
    assembly: MeshAssembly,
    model_name: str,
    params: Optional[Dict[str, Any]] = None,
) -> ConversionResult:
    """
    Write one ``.ia8`` per material, the collision ``.ia3`` and the descriptor.
    An existing descriptor is read and merged before any artifact is written.
    """
    params = normalize_params(params)
    out_dir = Path(params["out_dir"] or Path.cwd()).absolute()
    data_name = str(params["data_dir"] or model_name)
    data_dir = out_dir / data_name
    collision_name = str(params["collision_name"])

    draw: Dict[str, Dict[str, Optional[str]]] = {
        name: {"mesh": f"{data_name}/{name}.ia8", "texture": assembly.library.texture(name)}
        for name in assembly.materials
    }
    desc_path: Optional[Path] = None
    descriptor: Optional[Dict[str, Any]] = None
    if params["write_descriptor"]:
        desc_path = out_dir / f"{model_name}{params['descriptor_suffix']}"
        descriptor = prepare_descriptor(
            desc_path,
            model_name,
            draw,
            collision=f"{data_name}/{collision_name}.ia3",
            default_mass=float(params["default_mass"]),
        )

    arrays, collision = assembly.finalize()
    records: List[ArtifactRecord] = []

    for name, array in arrays.items():
        path = save_ia(array, data_dir / f"{name}.ia8")
        records.append(ArtifactRecord(kind="ia8", name=name, path=path, array=array))
        logger.info("material %r: %d vertices, %d indices", name, array.vertex_count, array.index_count)

    col_path = save_ia(collision, data_dir / f"{collision_name}.ia3")
    records.append(ArtifactRecord(kind="ia3", name=collision_name, path=col_path, array=collision))
    logger.info("collision: %d vertices, %d indices", collision.vertex_count, collision.index_count)

    result = ConversionResult(model_name=model_name, out_dir=out_dir, data_dir=data_dir, artifacts=records)
    if desc_path is not None and descriptor is not None:
        write_descriptor(desc_path, descriptor, indent=int(params["json_indent"]))
        logger.info("descriptor %s: %d draw entries", desc_path, len(descriptor["draw"]))
        result.descriptor_path = desc_path
        result.descriptor = descriptor
    return result


def convert_obj(obj_path: str | Path, params: Optional[Dict[str, Any]] = None) -> ConversionResult:
    """
    Orchestrate OBJ -> IA artifacts:
      parse (fails before anything is written) -> finalize builders -> encode -> descriptor.

    params (see :data:`iaencode.config.DEFAULT_PARAMS`):
      out_dir (str|None): export root, default current directory
      data_dir (str|None): artifact subdirectory, default the OBJ stem
      write_descriptor (bool): merge ``<stem>.tmdl``, default True
      default_mass (float): mass written when the descriptor has none, default 0.0
    """
    obj_path = Path(obj_path)
    assembly = assemble_obj(obj_path)
    return export_assembly(assembly, obj_path.stem, params)


__all__ = [
    "AttributePools",
    "MeshAssembly",
    "ArtifactRecord",
    "ConversionResult",
    "assemble_obj",
    "export_assembly",
    "convert_obj",
]
