from conftest import quad_grid_data, read_metadata_json, write_obj
from uniscan_slice.cli import build_parser, main


def test_parser_defaults():
    args = build_parser().parse_args(["a.obj", "-o", "out"])
    assert (args.x_size, args.y_size, args.z_size) == (1, 1, 1)
    assert args.texture is None
    assert args.scale_texture == 1.0
    assert not args.debug


def test_slice_obj(tmp_path, quad_obj, texture_path, capsys):
    out = tmp_path / "out"
    rc = main([str(quad_obj), "-o", str(out), "-x", "2", "-y", "2", "-t", str(texture_path), "--debug", "--write-mtl"])
    assert rc == 0
    assert read_metadata_json(out / "metadata.json")["VertexCount"] == 12
    assert (out / "texture" / "0_0.mtl").exists()
    assert "Slicing OBJ" in capsys.readouterr().out


def test_force_cubical_message(tmp_path, quad_obj, capsys):
    rc = main([str(quad_obj), "-o", str(tmp_path / "out"), "-x", "2", "-y", "1", "--force-cubical"])
    assert rc == 0
    assert "grid size is now 2,2,2" in capsys.readouterr().out


def test_multiple_meshes_get_subdirectories(tmp_path, quad_obj):
    vertices, uvs, faces = quad_grid_data()
    second = write_obj(tmp_path / "second.obj", vertices, uvs, faces[:1])
    out = tmp_path / "out"
    assert main([str(quad_obj), str(second), "-o", str(out)]) == 0
    assert (out / "quads" / "metadata.json").exists()
    assert (out / "second" / "metadata.json").exists()


def test_image_input_is_tiled(tmp_path, texture_path):
    out = tmp_path / "tiles"
    assert main([str(texture_path), "-o", str(out), "-x", "2", "-y", "1"]) == 0
    assert sorted(p.name for p in out.glob("*.jpg")) == ["0_0.jpg", "1_0.jpg"]


def test_unknown_input_is_skipped(tmp_path, capsys):
    other = tmp_path / "notes.txt"
    other.write_text("hi", encoding="utf-8")
    assert main([str(other), "-o", str(tmp_path / "out")]) == 0
    assert "only accepts" in capsys.readouterr().out


def test_missing_mesh_is_fatal(tmp_path, capsys):
    assert main([str(tmp_path / "missing.obj"), "-o", str(tmp_path / "out")]) == 1
    assert "error:" in capsys.readouterr().err


def test_markup_uv(tmp_path, quad_obj, texture_path):
    out = tmp_path / "out"
    assert main([str(quad_obj), "-o", str(out), "-t", str(texture_path), "--markup-uv"]) == 0
    assert (out / "texture_debug.jpg").exists()
    assert not (out / "metadata.json").exists()


def test_markup_requires_texture(tmp_path, quad_obj, capsys):
    assert main([str(quad_obj), "-o", str(tmp_path / "out"), "--markup-uv"]) == 1
    assert "require --texture" in capsys.readouterr().err


def test_unreadable_texture_is_fatal(tmp_path, quad_obj, capsys):
    bad = tmp_path / "bad.jpg"
    bad.write_text("not an image", encoding="utf-8")
    assert main([str(quad_obj), "-o", str(tmp_path / "out"), "-t", str(bad)]) == 1
    assert "error:" in capsys.readouterr().err
    assert not (tmp_path / "out" / "metadata.json").exists()


def test_unreadable_image_input_is_fatal(tmp_path, capsys):
    bad = tmp_path / "bad.jpg"
    bad.write_text("not an image", encoding="utf-8")
    assert main([str(bad), "-o", str(tmp_path / "tiles"), "-x", "2"]) == 1
    assert "error:" in capsys.readouterr().err
