import json

import numpy as np
import pytest

from iaencode.errors import (
    AttributeIndexOutOfRange,
    MalformedDirective,
    MissingActiveMaterial,
    SourceUnreadable,
)
from iaencode.encoding.forward import MeshAssembly, assemble_obj, convert_obj
from iaencode.encoding.iaio import load_ia

QUAD_OBJ = """\
# two materials sharing one quad's corners
mtllib scene.mtl
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
vt 0 0
vt 1 0
vt 1 1
vt 0 1
vn 0 0 1
o quad
usemtl red
f 1/1/1 2/2/1 3/3/1
f 1/1/1 3/3/1 4/4/1
usemtl blue
f 1/1/1 2/2/1 4/4/1
"""

QUAD_MTL = """\
newmtl red
map_Kd tex/red.png
newmtl blue
newmtl unused
map_Kd tex/unused.png
"""


def _write_scene(tmp_path, obj_text=QUAD_OBJ, mtl_text=QUAD_MTL):
    src = tmp_path / "src"
    src.mkdir(exist_ok=True)
    (src / "scene.mtl").write_text(mtl_text, encoding="utf-8")
    obj = src / "scene.obj"
    obj.write_text(obj_text, encoding="utf-8")
    return obj


def _geometry_header(n_positions=3):
    lines = [f"v {i} 0 0" for i in range(n_positions)]
    lines += ["vt 0 0", "vn 0 0 1"]
    return "\n".join(lines) + "\n"


def test_assembly_routes_corners(tmp_path):
    assembly = assemble_obj(_write_scene(tmp_path))
    assert list(assembly.materials) == ["red", "blue"]

    red = assembly.materials["red"].finalize()
    assert red.vertex_count == 4
    assert red.indices.tolist() == [0, 1, 2, 0, 2, 3]
    np.testing.assert_array_equal(red.vertices[0], [0, 0, 0, 0, 0, 0, 0, 1])
    np.testing.assert_array_equal(red.vertices[2], [1, 1, 0, 1, 1, 0, 0, 1])

    blue = assembly.materials["blue"].finalize()
    assert blue.indices.tolist() == [0, 1, 2]
    np.testing.assert_array_equal(blue.vertices[:, :3], [[0, 0, 0], [1, 0, 0], [0, 1, 0]])

    collision = assembly.collision.finalize()
    assert collision.arity == 3
    assert collision.vertex_count == 4
    assert collision.indices.tolist() == [0, 1, 2, 0, 2, 3, 0, 1, 3]

    assert assembly.library.texture("red") == "tex/red.png"
    assert assembly.library.texture("blue") is None


def test_submit_corner_requires_material():
    assembly = MeshAssembly()
    with pytest.raises(MissingActiveMaterial):
        assembly.submit_corner(None, (0, 0, 0), (0, 0), (0, 0, 1))
    assert len(assembly.collision) == 0


def test_convert_writes_artifacts_and_descriptor(tmp_path):
    out = tmp_path / "out"
    result = convert_obj(_write_scene(tmp_path), params={"out_dir": str(out)})

    assert result.model_name == "scene"
    assert [r.path.name for r in result.artifacts] == ["red.ia8", "blue.ia8", "collision.ia3"]
    for name in ("red.ia8", "blue.ia8", "collision.ia3"):
        assert (out / "scene" / name).is_file()

    red = load_ia(out / "scene" / "red.ia8")
    assert red.arity == 8
    assert red.indices.tolist() == [0, 1, 2, 0, 2, 3]
    col = load_ia(out / "scene" / "collision.ia3")
    assert col.arity == 3 and col.index_count == 9

    tmdl = json.loads((out / "scene.tmdl").read_text(encoding="utf-8"))
    assert tmdl["name"] == "scene"
    assert tmdl["collision"] == "scene/collision.ia3"
    assert tmdl["mass"] == 0.0
    assert tmdl["draw"]["red"] == {"mesh": "scene/red.ia8", "texture": "tex/red.png"}
    assert tmdl["draw"]["blue"] == {"mesh": "scene/blue.ia8"}
    assert "unused" not in tmdl["draw"]


def test_convert_is_deterministic(tmp_path):
    obj = _write_scene(tmp_path)
    convert_obj(obj, params={"out_dir": str(tmp_path / "a"), "write_descriptor": False})
    convert_obj(obj, params={"out_dir": str(tmp_path / "b"), "write_descriptor": False})
    for name in ("red.ia8", "blue.ia8", "collision.ia3"):
        assert (tmp_path / "a" / "scene" / name).read_bytes() == (tmp_path / "b" / "scene" / name).read_bytes()
    assert not (tmp_path / "a" / "scene.tmdl").exists()


def test_convert_merges_existing_descriptor(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    existing = {
        "name": "custom",
        "mass": 5.5,
        "physics": {"friction": 0.4},
        "draw": {"red": {"mesh": "stale.ia8", "shader": "lit"}, "legacy": {"mesh": "old.ia8"}},
    }
    (out / "scene.tmdl").write_text(json.dumps(existing), encoding="utf-8")

    convert_obj(_write_scene(tmp_path), params={"out_dir": str(out), "default_mass": 2.0})
    tmdl = json.loads((out / "scene.tmdl").read_text(encoding="utf-8"))
    assert tmdl["name"] == "custom"
    assert tmdl["mass"] == 5.5
    assert tmdl["physics"] == {"friction": 0.4}
    assert tmdl["collision"] == "scene/collision.ia3"
    assert tmdl["draw"]["red"] == {"mesh": "scene/red.ia8", "shader": "lit", "texture": "tex/red.png"}
    assert tmdl["draw"]["legacy"] == {"mesh": "old.ia8"}


def test_material_without_faces_yields_empty_artifact(tmp_path):
    obj = _write_scene(tmp_path, obj_text=QUAD_OBJ + "usemtl unused\n")
    out = tmp_path / "out"
    convert_obj(obj, params={"out_dir": str(out)})
    empty = load_ia(out / "scene" / "unused.ia8")
    assert empty.vertex_count == 0 and empty.index_count == 0


def test_face_before_usemtl_aborts_without_artifacts(tmp_path):
    obj = _write_scene(tmp_path, obj_text=_geometry_header() + "f 1/1/1 2/1/1 3/1/1\nusemtl red\n")
    out = tmp_path / "out"
    with pytest.raises(MissingActiveMaterial):
        convert_obj(obj, params={"out_dir": str(out)})
    assert not out.exists()


def test_position_index_one_past_end(tmp_path):
    obj = _write_scene(tmp_path, obj_text=_geometry_header(3) + "usemtl red\nf 1/1/1 2/1/1 4/1/1\n")
    with pytest.raises(AttributeIndexOutOfRange) as info:
        assemble_obj(obj)
    assert info.value.location.endswith("scene.obj:7")


@pytest.mark.parametrize("corner", ["0/1/1", "1/2/1", "1/1/2", "-1/1/1"])
def test_other_out_of_range_references(tmp_path, corner):
    obj = _write_scene(tmp_path, obj_text=_geometry_header(3) + f"usemtl red\nf {corner} 2/1/1 3/1/1\n")
    with pytest.raises(AttributeIndexOutOfRange):
        assemble_obj(obj)


def test_reference_to_later_declaration_is_out_of_range(tmp_path):
    text = "vt 0 0\nvn 0 0 1\nv 0 0 0\nusemtl red\nf 1/1/1 1/1/1 2/1/1\nv 1 0 0\n"
    with pytest.raises(AttributeIndexOutOfRange):
        assemble_obj(_write_scene(tmp_path, obj_text=text))


def test_malformed_vertex_line(tmp_path):
    obj = _write_scene(tmp_path, obj_text="v 0 zero 0\n")
    with pytest.raises(MalformedDirective):
        assemble_obj(obj)


def test_missing_material_library(tmp_path):
    obj = tmp_path / "lonely.obj"
    obj.write_text("mtllib missing.mtl\n", encoding="utf-8")
    with pytest.raises(SourceUnreadable):
        assemble_obj(obj)


def test_missing_obj(tmp_path):
    with pytest.raises(SourceUnreadable):
        convert_obj(tmp_path / "none.obj", params={"out_dir": str(tmp_path)})


def test_non_utf8_material_names_are_rejected(tmp_path):
    header = _geometry_header(3).encode("ascii")
    face = b"f 1/1/1 2/1/1 3/1/1\n"
    obj = tmp_path / "latin.obj"
    obj.write_bytes(header + b"usemtl caf\xe9\n" + face + b"usemtl caf\xe8\n" + face)
    with pytest.raises(MalformedDirective) as info:
        assemble_obj(obj)
    assert info.value.location.endswith("latin.obj:6")


def test_malformed_descriptor_leaves_no_artifacts(tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    (out / "scene.tmdl").write_text("{not json", encoding="utf-8")
    with pytest.raises(SourceUnreadable):
        convert_obj(_write_scene(tmp_path), params={"out_dir": str(out)})
    assert not (out / "scene").exists()
    assert (out / "scene.tmdl").read_text(encoding="utf-8") == "{not json"


@pytest.mark.parametrize("name", ["../../escape", "sub/red", "sub\\red", ".."])
def test_material_name_must_be_a_plain_file_name(tmp_path, name):
    obj = _write_scene(tmp_path, obj_text=_geometry_header(3) + f"usemtl {name}\nf 1/1/1 2/1/1 3/1/1\n")
    out = tmp_path / "out"
    with pytest.raises(MalformedDirective):
        convert_obj(obj, params={"out_dir": str(out)})
    assert not out.exists()
