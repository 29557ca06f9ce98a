"""Tests covering config file loading and environment variable overrides."""

from __future__ import annotations

from pathlib import Path

from camrec import config as config_module


def _reset_config_state(monkeypatch) -> None:
    monkeypatch.setattr(config_module, "_cfg_cache", None, raising=False)
    monkeypatch.setattr(config_module, "_search_paths", [], raising=False)
    monkeypatch.setattr(config_module, "_active_config_path", None, raising=False)
    for key in (
        "DEV",
        "CAMREC_URLS_FILE",
        "CAMREC_OUTPUT_DIR",
        "SEGMENT_SECONDS",
        "RETRY_DELAY_SECONDS",
        "RTSP_TRANSPORT",
        "READ_TIMEOUT_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_config_file(monkeypatch, tmp_path: Path) -> None:
    _reset_config_state(monkeypatch)
    monkeypatch.setenv("CAMREC_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.chdir(tmp_path)

    cfg = config_module.get_cfg()

    assert cfg["recorder"]["segment_seconds"] == 300
    assert cfg["recorder"]["retry_delay_seconds"] == 5.0
    assert cfg["paths"]["urls_file"] == "rtsp.txt"
    assert cfg["paths"]["output_dir"] == "video"
    assert cfg["source"]["read_timeout_seconds"] is None


def test_yaml_values_merge_over_defaults(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("recorder:\n  segment_seconds: 60\nsource:\n  rtsp_transport: udp\n")
    _reset_config_state(monkeypatch)
    monkeypatch.setenv("CAMREC_CONFIG", str(config_path))

    cfg = config_module.get_cfg()

    assert cfg["recorder"]["segment_seconds"] == 60
    assert cfg["recorder"]["container_extension"] == "mp4"
    assert cfg["source"]["rtsp_transport"] == "udp"
    assert config_module.active_config_path() == config_path.resolve()


def test_every_config_file_found_is_layered(monkeypatch, tmp_path: Path) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "config.yaml").write_text(
        "recorder:\n  segment_seconds: 60\n  retry_delay_seconds: 2.0\n"
    )
    override = tmp_path / "override.yaml"
    override.write_text("recorder:\n  segment_seconds: 30\n")
    _reset_config_state(monkeypatch)
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("CAMREC_CONFIG", str(override))

    cfg = config_module.get_cfg()

    assert cfg["recorder"]["segment_seconds"] == 30
    assert cfg["recorder"]["retry_delay_seconds"] == 2.0
    assert config_module.active_config_path() == override.resolve()


def test_env_overrides_win_over_file(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("recorder:\n  segment_seconds: 60\n")
    _reset_config_state(monkeypatch)
    monkeypatch.setenv("CAMREC_CONFIG", str(config_path))
    monkeypatch.setenv("SEGMENT_SECONDS", "120")
    monkeypatch.setenv("RETRY_DELAY_SECONDS", "2.5")
    monkeypatch.setenv("CAMREC_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("READ_TIMEOUT_SECONDS", "15")
    monkeypatch.setenv("DEV", "1")

    cfg = config_module.get_cfg()

    assert cfg["recorder"]["segment_seconds"] == 120
    assert cfg["recorder"]["retry_delay_seconds"] == 2.5
    assert cfg["paths"]["output_dir"] == str(tmp_path / "out")
    assert cfg["source"]["read_timeout_seconds"] == 15.0
    assert cfg["logging"]["dev_mode"] is True


def test_malformed_env_values_are_ignored(monkeypatch, tmp_path: Path) -> None:
    _reset_config_state(monkeypatch)
    monkeypatch.setenv("CAMREC_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("SEGMENT_SECONDS", "five minutes")
    monkeypatch.setenv("READ_TIMEOUT_SECONDS", "off")

    cfg = config_module.get_cfg()

    assert cfg["recorder"]["segment_seconds"] == 300
    assert cfg["source"]["read_timeout_seconds"] is None


def test_reload_cfg_picks_up_changes(monkeypatch, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("paths:\n  output_dir: first\n")
    _reset_config_state(monkeypatch)
    monkeypatch.setenv("CAMREC_CONFIG", str(config_path))

    assert config_module.get_cfg()["paths"]["output_dir"] == "first"
    config_path.write_text("paths:\n  output_dir: second\n")
    assert config_module.get_cfg()["paths"]["output_dir"] == "first"
    assert config_module.reload_cfg()["paths"]["output_dir"] == "second"
