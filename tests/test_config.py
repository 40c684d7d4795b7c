import pytest

from iaencode.config import DEFAULT_PARAMS, load_config, normalize_params
from iaencode.errors import SourceUnreadable


def test_defaults():
    params = normalize_params()
    assert params == DEFAULT_PARAMS
    assert params is not DEFAULT_PARAMS


def test_overrides_merge_over_defaults():
    params = normalize_params({"default_mass": 4.0, "write_descriptor": False})
    assert params["default_mass"] == 4.0
    assert params["write_descriptor"] is False
    assert params["collision_name"] == "collision"


def test_load_json_config(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text('{"data_dir": "assets", "json_indent": 2}', encoding="utf-8")
    assert load_config(path) == {"data_dir": "assets", "json_indent": 2}


def test_load_toml_config_table(tmp_path):
    path = tmp_path / "cfg.toml"
    path.write_text('[iaencode]\ncollision_name = "phys"\ndefault_mass = 10.0\n', encoding="utf-8")
    assert load_config(path) == {"collision_name": "phys", "default_mass": 10.0}


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text('{"outdir": "x"}', encoding="utf-8")
    with pytest.raises(SourceUnreadable):
        load_config(path)


def test_unparseable_config(tmp_path):
    path = tmp_path / "cfg.toml"
    path.write_text("= broken", encoding="utf-8")
    with pytest.raises(SourceUnreadable):
        load_config(path)
