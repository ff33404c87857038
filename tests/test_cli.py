import argparse
import json
import xml.etree.ElementTree as ET

import pytest
from PIL import Image

import gridpattern
from gridpattern import main, parse_size


def test_writes_svg(tmp_path, capsys):
    out = str(tmp_path / "pattern.svg")
    assert main(["--out", out, "--shape", "squares", "--spacing", "50", "--seed", "3"]) == 0
    assert capsys.readouterr().out.strip() == out
    root = ET.parse(out).getroot()
    assert root.find("{http://www.w3.org/2000/svg}rect") is not None


def test_writes_png_with_scale(tmp_path):
    out = str(tmp_path / "pattern.png")
    main(["--out", out, "--size", "200x100", "--scale", "2", "--seed", "1"])
    with Image.open(out) as img:
        assert img.size == (400, 200)


def test_flags_override_config_file(tmp_path, monkeypatch):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps({"shape_type": "lines", "spacing": 40, "seed": 9}))
    seen = {}

    def fake_export(config, path):
        seen["config"] = config
        return path

    monkeypatch.setattr(gridpattern, "export_svg", fake_export)
    main(["--config", str(cfg_path), "--spacing", "25", "--out", str(tmp_path / "x.svg")])
    cfg = seen["config"]
    assert (cfg.shape_type, cfg.spacing, cfg.seed) == ("lines", 25, 9)


def test_seed_defaults_to_random_fraction(tmp_path, monkeypatch):
    seen = {}
    monkeypatch.setattr(gridpattern, "export_svg", lambda config, path: seen.setdefault("config", config))
    monkeypatch.setattr(gridpattern.random, "random", lambda: 0.625)
    main(["--out", str(tmp_path / "x.svg")])
    assert seen["config"].seed == 0.625


@pytest.mark.parametrize("argv", [
    ["--spacing", "0"],
    ["--min-size", "-2"],
    ["--shape-color", "#zzzzzz"],
    ["--out", "pattern.gif"],
    ["--out", "pattern.png", "--scale", "0"],
])
def test_bad_input_exits(argv, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        main(argv)


def test_missing_config_file_exits(tmp_path):
    with pytest.raises(SystemExit, match="Could not read config"):
        main(["--config", str(tmp_path / "missing.json"), "--out", str(tmp_path / "x.svg")])


def test_parse_size():
    assert parse_size("640x480") == (640, 480)
    with pytest.raises(argparse.ArgumentTypeError):
        parse_size("640")
