from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import SourceUnreadable


DEFAULT_PARAMS: Dict[str, Any] = {
    "out_dir": None,            # None -> current working directory
    "data_dir": None,           # None -> OBJ file stem
    "write_descriptor": True,
    "descriptor_suffix": ".tmdl",
    "default_mass": 0.0,
    "collision_name": "collision",
    "json_indent": 4,
}


def load_config(path: Path) -> Dict[str, Any]:
    """Read a JSON or TOML config file; an ``[iaencode]`` table is unwrapped if present."""
    data = _load_data(Path(path))
    if not isinstance(data, dict):
        raise SourceUnreadable("Config must be a JSON/TOML object.", str(path))
    if isinstance(data.get("iaencode"), dict):
        data = data["iaencode"]
    unknown = sorted(set(data) - set(DEFAULT_PARAMS))
    if unknown:
        raise SourceUnreadable(f"Unknown config keys: {', '.join(unknown)}.", str(path))
    return data


def normalize_params(params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    merged = json.loads(json.dumps(DEFAULT_PARAMS))
    return _deep_merge(merged, dict(params or {}))


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_data(path: Path) -> Any:
    try:
        if path.suffix == ".toml":
            with path.open("rb") as handle:
                return tomllib.load(handle)
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise SourceUnreadable(f"Cannot open config ({exc.strerror or exc}).", str(path)) from exc
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise SourceUnreadable(f"Config is not parseable ({exc}).", str(path)) from exc
