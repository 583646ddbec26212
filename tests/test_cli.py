import asyncio
import json

import pytest

from model_viewer.cli import file_resolver, main
from model_viewer.errors import MissingSubresource


def test_cli_obj_json_summary(tmp_path, capsys, obj_text):
    path = tmp_path / "tetra.obj"
    path.write_text(obj_text)
    assert main([str(path), "--json", "--material-color", "#FF8800", "--no-grid"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["nodes"]["mesh"] == 1
    assert summary["faces"] == 4
    assert summary["material"]["color"] == "#ff8800"
    assert summary["grid"] is False
    assert summary["bounds"]["min"] == [0.0, 0.0, 0.0]
    assert summary["bounds"]["max"] == [1.0, 1.0, 1.0]


def test_cli_gltf_with_sidecar_buffer(tmp_path, capsys, gltf_external):
    (tmp_path / "tri.gltf").write_text(gltf_external.text)
    (tmp_path / "tri.bin").write_bytes(gltf_external.buffer)
    assert main([str(tmp_path / "tri.gltf"), "--json"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["nodes"]["mesh"] == 1
    assert summary["nodes"]["light"] == 1


def test_cli_text_summary(tmp_path, capsys, stl_bytes):
    path = tmp_path / "part.stl"
    path.write_bytes(stl_bytes)
    assert main([str(path), "--wireframe", "--scale", "2"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("part.stl |")
    assert "wireframe" in out


def test_cli_unsupported_format(tmp_path, capsys):
    path = tmp_path / "model.xyz"
    path.write_bytes(b"data")
    assert main([str(path)]) == 1
    assert "Unsupported file format" in capsys.readouterr().err


def test_cli_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nowhere.stl")]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_cli_bad_parameter(tmp_path, capsys, stl_bytes):
    path = tmp_path / "part.stl"
    path.write_bytes(stl_bytes)
    assert main([str(path), "--scale", "-1"]) == 2
    assert "scale" in capsys.readouterr().err


def test_cli_scale_reframes_on_scaled_bounds(tmp_path, capsys, stl_bytes):
    path = tmp_path / "part.stl"
    path.write_bytes(stl_bytes)
    assert main([str(path), "--json", "--scale", "2"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["bounds"]["max"] == pytest.approx([4.0, 8.0, 12.0])
    assert summary["camera"]["target"] == pytest.approx([2.0, 4.0, 6.0])


def test_file_resolver_reads_sidecar(tmp_path):
    (tmp_path / "tri.bin").write_bytes(b"\x01\x02")
    resolve = file_resolver(tmp_path)
    assert asyncio.run(resolve("tri.bin")) == b"\x01\x02"


@pytest.mark.parametrize("uri", ["../secret.bin", "sub/../../secret.bin", "http://host/x.bin"])
def test_file_resolver_stays_inside_model_directory(tmp_path, uri):
    (tmp_path / "secret.bin").write_bytes(b"secret")
    models = tmp_path / "models"
    models.mkdir()
    with pytest.raises(MissingSubresource):
        asyncio.run(file_resolver(models)(uri))


def test_cli_gltf_buffer_outside_directory_is_dropped(tmp_path, capsys, gltf_external):
    models = tmp_path / "models"
    models.mkdir()
    (tmp_path / "tri.bin").write_bytes(gltf_external.buffer)
    text = gltf_external.text.replace('"tri.bin"', '"../tri.bin"')
    (models / "tri.gltf").write_text(text)
    assert main([str(models / "tri.gltf"), "--json"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert "mesh" not in summary["nodes"]
