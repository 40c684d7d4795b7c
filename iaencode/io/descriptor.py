"""
Model descriptor (``<model>.tmdl``) merge.

The descriptor is a JSON object owned jointly by this converter and by hand
edits. Per-material ``draw`` entries always get their ``mesh`` (and, when
known, ``texture``) refreshed; ``name``, ``collision`` and ``mass`` are only
filled in when missing. Everything else is carried over untouched.
"""
from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..errors import ArtifactUnwritable, SourceUnreadable

logger = logging.getLogger(__name__)

DEFAULT_MASS = 0.0


def load_descriptor(path: str | Path) -> Dict[str, Any]:
    """Return the existing descriptor, or an empty one if ``path`` is not a file."""
    path = Path(path)
    if not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise SourceUnreadable(f"Cannot open descriptor ({exc.strerror or exc}).", str(path)) from exc
    except json.JSONDecodeError as exc:
        raise SourceUnreadable(f"Descriptor is not valid JSON ({exc.msg} at line {exc.lineno}).", str(path)) from exc
    if not isinstance(data, dict):
        raise SourceUnreadable("Descriptor must be a JSON object.", str(path))
    return data


def merge_descriptor(
    document: Mapping[str, Any],
    model_name: str,
    draw: Mapping[str, Mapping[str, Optional[str]]],
    collision: str,
    default_mass: float = DEFAULT_MASS,
) -> Dict[str, Any]:
    """
    Merge converter-owned fields into a copy of ``document``.

    ``draw`` maps material name -> {"mesh": ..., "texture": ... or None}.
    """
    merged: Dict[str, Any] = copy.deepcopy(dict(document))

    draw_section = merged.get("draw")
    if draw_section is None:
        draw_section = {}
    elif not isinstance(draw_section, dict):
        raise SourceUnreadable("Descriptor field 'draw' must be an object.")
    merged["draw"] = draw_section

    for material, fields in draw.items():
        entry = draw_section.get(material)
        if entry is None:
            entry = {}
        elif not isinstance(entry, dict):
            raise SourceUnreadable(f"Descriptor entry draw.{material} must be an object.")
        for key, value in fields.items():
            if value is not None:
                entry[key] = value
        draw_section[material] = entry

    merged.setdefault("name", model_name)
    merged.setdefault("collision", collision)
    merged.setdefault("mass", float(default_mass))
    return merged


def write_descriptor(path: str | Path, document: Mapping[str, Any], indent: int = 4) -> Path:
    path = Path(path)
    text = json.dumps(document, indent=indent, sort_keys=True)
    try:
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        raise ArtifactUnwritable(f"Cannot write descriptor ({exc.strerror or exc}).", str(path)) from exc
    return path


def prepare_descriptor(
    path: str | Path,
    model_name: str,
    draw: Mapping[str, Mapping[str, Optional[str]]],
    collision: str,
    default_mass: float = DEFAULT_MASS,
) -> Dict[str, Any]:
    """Load ``path`` (if present) and return the merged document without writing it."""
    path = Path(path)
    existing = load_descriptor(path)
    try:
        return merge_descriptor(existing, model_name, draw, collision, default_mass=default_mass)
    except SourceUnreadable as exc:
        raise SourceUnreadable(exc.message, str(path)) from exc


def update_descriptor(
    path: str | Path,
    model_name: str,
    draw: Mapping[str, Mapping[str, Optional[str]]],
    collision: str,
    default_mass: float = DEFAULT_MASS,
    indent: int = 4,
) -> Dict[str, Any]:
    """Load ``path`` (if present), merge, write back and return the merged document."""
    merged = prepare_descriptor(path, model_name, draw, collision, default_mass=default_mass)
    write_descriptor(path, merged, indent=indent)
    logger.info("descriptor %s: %d draw entries", path, len(merged["draw"]))
    return merged


__all__ = [
    "load_descriptor",
    "merge_descriptor",
    "prepare_descriptor",
    "write_descriptor",
    "update_descriptor",
    "DEFAULT_MASS",
]
