import shutil

from odflows.cli import build_parser, main


def test_parser_overrides():
    args = build_parser().parse_args(["--od", "a.csv", "--zones", "z.gpkg", "--curvature", "12"])
    assert args.curvature == 12.0
    assert args.curve_angle is None


def test_main_runs_pipeline(od_csv, zones_file, tmp_path):
    out = tmp_path / "cli_out"
    status = main(["--od", str(od_csv), "--zones", str(zones_file), "--out", str(out),
                   "--curvature", "8", "--exponent", "0.5", "--log-level", "WARNING"])
    assert status == 0
    assert (out / "trajectories.geojson").is_file()
    assert (out / "flow_map.png").is_file()


def test_main_reports_data_errors(zones_file, tmp_path):
    missing = tmp_path / "missing.csv"
    assert main(["--od", str(missing), "--zones", str(zones_file), "--out", str(tmp_path)]) == 1


def test_main_rejects_bad_config(tmp_path):
    assert main(["--curvature", "0", "--out", str(tmp_path)]) == 1


def test_main_rejects_misspelt_config_key(tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("trajectory:\n  curvatur: 12\n")
    assert main(["--config", str(cfg), "--out", str(tmp_path)]) == 1


def test_main_rejects_malformed_yaml(tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("trajectory: [unclosed\n")
    assert main(["--config", str(cfg), "--out", str(tmp_path)]) == 1


def test_main_finds_inputs_in_configured_input_dir(od_csv, zones_file, tmp_path):
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    shutil.copy(od_csv, inputs / "od.csv")
    shutil.copy(zones_file, inputs / "zones.gpkg")
    out = tmp_path / "found_out"
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text(f"paths:\n  input_dir: '{inputs}'\n  output_dir: '{out}'\n"
                   "style:\n  dpi: 40\n  figsize: [4, 4]\n")

    assert main(["--config", str(cfg), "--log-level", "WARNING"]) == 0
    assert (out / "trajectories.geojson").is_file()
