from pathlib import Path

import matplotlib
import pytest

from plantmap.cli import main

matplotlib.use("Agg")


def _config(root: Path, extra: str = "") -> Path:
    path = root / "config.yaml"
    path.write_text(
        "data:\n"
        "  plants: data/energy.csv\n"
        "  boundaries: data/us.json\n"
        "output:\n"
        "  path: build/energy-map.png\n"
        "  log_file: build/logs/plantmap.log\n" + extra,
        encoding="utf-8",
    )
    return path


def test_render_writes_map_manifest_and_log(input_dir: Path):
    cfg_path = _config(input_dir)
    assert main(["render", "--config", str(cfg_path)]) == 0
    assert (input_dir / "build" / "energy-map.png").exists()
    assert (input_dir / "build" / "energy-map.manifest.json").exists()
    assert "Bubble map written" in (input_dir / "build" / "logs" / "plantmap.log").read_text(encoding="utf-8")


def test_render_output_override(input_dir: Path):
    target = input_dir / "custom" / "chart.svg"
    assert main(["render", "--config", str(_config(input_dir)), "--output", str(target)]) == 0
    assert target.exists()


def test_render_returns_1_when_data_is_missing(input_dir: Path):
    (input_dir / "data" / "us.json").unlink()
    assert main(["render", "--config", str(_config(input_dir))]) == 1
    assert not (input_dir / "build" / "energy-map.png").exists()


def test_invalid_config_returns_2(input_dir: Path):
    cfg_path = _config(input_dir, "radius: {percentile: 3}\n")
    assert main(["render", "--config", str(cfg_path)]) == 2


def test_missing_config_returns_2(tmp_path: Path):
    assert main(["render", "--config", str(tmp_path / "missing.yaml")]) == 2


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        main([])


def test_broken_yaml_returns_2(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("data: [unclosed\n", encoding="utf-8")
    assert main(["render", "--config", str(cfg_path)]) == 2


def test_malformed_boundaries_return_1(input_dir: Path):
    (input_dir / "data" / "us.json").write_text(
        '{"type": "Topology", "objects": {"states": {"type": "Polygon", "arcs": [[3]]}}, "arcs": []}',
        encoding="utf-8",
    )
    assert main(["render", "--config", str(_config(input_dir))]) == 1
    assert not (input_dir / "build" / "energy-map.png").exists()
