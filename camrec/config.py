#!/usr/bin/env python3
"""
Unified configuration loader for camrec.

Config files are layered: every file found below is deep-merged over the
defaults, and a file earlier in the list overrides keys set by later ones:
  1) CAMREC_CONFIG (env, absolute or relative to CWD)
  2) /etc/camrec/config.yaml
  3) <project_root>/config.yaml (derived from this file's location)
  4) ./config.yaml (current working directory)

Environment variables override file values when present.
"""
from __future__ import annotations
import copy
import os
from pathlib import Path
from typing import Any, Dict

import yaml

_DEFAULTS: Dict[str, Any] = {
    "paths": {
        "urls_file": "rtsp.txt",
        "output_dir": "video",
    },
    "recorder": {
        "segment_seconds": 300,
        "retry_delay_seconds": 5.0,
        "container_extension": "mp4",
    },
    "source": {
        "rtsp_transport": "tcp",
        # No timeouts unless configured; a stalled read blocks the recorder.
        "open_timeout_seconds": None,
        "read_timeout_seconds": None,
        "max_packet_errors": 32,
    },
    "control": {
        "stdin_listener": True,
    },
    "logging": {
        "dev_mode": False,  # if True or ENV DEV=1, enable verbose debug
        "level": "INFO",
    },
}

_cfg_cache: Dict[str, Any] | None = None
_search_paths: list[Path] = []
_active_config_path: Path | None = None


def _load_yaml_if_exists(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        print(f"[config] WARNING: ignoring unreadable config {path}: {exc}", flush=True)
        return {}
    if isinstance(data, dict):
        return data
    return {}


def _candidate_search_paths(project_root: Path) -> list[Path]:
    search: list[Path] = []
    env_cfg = os.getenv("CAMREC_CONFIG")
    if env_cfg:
        search.append(Path(env_cfg).expanduser().resolve())
    search.extend(
        [
            Path("/etc/camrec/config.yaml"),
            project_root / "config.yaml",
            Path.cwd() / "config.yaml",
        ]
    )
    seen: set[Path] = set()
    ordered: list[Path] = []
    for candidate in search:
        resolved = candidate.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        ordered.append(resolved)
    return ordered


def _deep_merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _parse_optional_float(value: str) -> float | None:
    value = value.strip().lower()
    if value in {"", "none", "null", "off"}:
        return None
    return float(value)


def _apply_env_overrides(cfg: Dict[str, Any]) -> None:
    # DEV mode
    if os.getenv("DEV") == "1":
        cfg.setdefault("logging", {})["dev_mode"] = True
    # Paths
    if "CAMREC_URLS_FILE" in os.environ:
        cfg.setdefault("paths", {})["urls_file"] = os.environ["CAMREC_URLS_FILE"]
    if "CAMREC_OUTPUT_DIR" in os.environ:
        cfg.setdefault("paths", {})["output_dir"] = os.environ["CAMREC_OUTPUT_DIR"]

    env_map = {
        "SEGMENT_SECONDS": ("recorder", "segment_seconds", int),
        "RETRY_DELAY_SECONDS": ("recorder", "retry_delay_seconds", float),
        "RTSP_TRANSPORT": ("source", "rtsp_transport", lambda s: s.strip().lower()),
        "READ_TIMEOUT_SECONDS": ("source", "read_timeout_seconds", _parse_optional_float),
        "LOG_LEVEL": ("logging", "level", lambda s: s.strip().upper()),
    }
    for env_key, (section, key, cast) in env_map.items():
        if env_key in os.environ:
            try:
                cfg.setdefault(section, {})[key] = cast(os.environ[env_key])
            except ValueError:
                print(
                    f"[config] WARNING: ignoring malformed {env_key}={os.environ[env_key]!r}",
                    flush=True,
                )


def get_cfg() -> Dict[str, Any]:
    global _cfg_cache, _search_paths, _active_config_path
    if _cfg_cache is not None:
        return _cfg_cache

    cfg = copy.deepcopy(_DEFAULTS)

    # Derive project root relative to this file (camrec/ -> project root)
    project_root = Path(__file__).resolve().parent.parent

    search = _candidate_search_paths(project_root)
    _search_paths = list(search)

    active: Path | None = None
    for candidate in search:
        try:
            if candidate.exists():
                active = candidate
                break
        except OSError:
            pass

    for candidate in reversed(search):
        cfg = _deep_merge(cfg, _load_yaml_if_exists(candidate))

    _active_config_path = active

    _apply_env_overrides(cfg)
    _cfg_cache = cfg
    return cfg


def reload_cfg() -> Dict[str, Any]:
    global _cfg_cache
    _cfg_cache = None
    return get_cfg()


def active_config_path() -> Path | None:
    global _active_config_path
    if _active_config_path is None:
        get_cfg()
    return _active_config_path


def search_paths() -> list[Path]:
    global _search_paths
    if not _search_paths:
        get_cfg()
    return list(_search_paths)
