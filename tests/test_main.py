"""
Smoke tests for the command-line entry point
"""

import json

from PIL import Image

from conftest import encode_png
from screenlens.main import main


def test_cli_prints_json_and_writes_files(tmp_path, capsys, two_squares_rgb):
    source = tmp_path / "shot.png"
    source.write_bytes(encode_png(two_squares_rgb))
    thumb = tmp_path / "thumb.bin"
    edges = tmp_path / "edges.png"

    code = main([str(source), "--seed", "3", "--thumbnail", str(thumb), "--edges", str(edges)])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["metadata"]["width"] == 200
    assert len(data["textRegions"]) == 2
    assert "thumbnail" not in data
    assert thumb.stat().st_size > 0
    with Image.open(edges) as img:
        assert img.size == (200, 100)


def test_cli_reports_decode_errors(tmp_path, capsys):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"definitely not a png")

    assert main([str(bad)]) == 2
    assert "screenlens:" in capsys.readouterr().err


def test_cli_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.png")]) == 2


def test_cli_edges_write_failure_exits_cleanly(tmp_path, capsys, two_squares_rgb):
    """Edge map comes from the same analysis; a bad output path is a clean error"""
    source = tmp_path / "shot.png"
    source.write_bytes(encode_png(two_squares_rgb))

    code = main([str(source), "--edges", str(tmp_path / "no_such_dir" / "edges.png")])

    assert code == 2
    assert "screenlens:" in capsys.readouterr().err
