"""CLI config and defaults."""

from __future__ import annotations

import argparse
import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from .mechanisms import MECHANISMS

TRACKING_SOURCES = ("synthetic", "udp", "toy")
CONTEXTS = ("competitive", "casual")
GROUND_MODES = ("none", "flat")
HEAD_NOISE_CATEGORIES = ("eye", "body")
DISPLAYS = ("tui", "log", "none")


@dataclass(frozen=True)
class AppConfig:
    tracking_source: str = "synthetic"
    udp_host: str = "127.0.0.1"
    udp_port: int = 24568
    poll_ms: int = 11
    frame_hz: float = 72.0
    max_frames: int = 0
    dropout: float = 0.0
    ready_timeout_s: float = 5.0
    context: str = "casual"
    strength_percent: float = 50.0
    competitive_mechanism: str = "gaussian"
    casual_mechanism: str = "gaussian"
    seed: Optional[int] = None
    max_displacement: float = 0.1
    ground: str = "flat"
    ground_height: float = 0.0
    ground_buffer: float = 0.1
    gaze_project_distance: float = 1.0
    head_noise: str = "eye"
    eye_scale: float = 0.005
    hand_scale: float = 0.01
    body_scale: float = 0.015
    gaze_jitter_scale: float = 0.002
    competitive_multiplier: float = 1.5
    casual_multiplier: float = 0.5
    rig_x: float = 0.0
    rig_y: float = 0.0
    rig_z: float = 0.0
    rig_yaw_deg: float = 0.0
    privacy_enabled: bool = True
    display: str = "tui"
    display_hz: float = 5.0
    cli_output: str = "live"
    log_level: str = "info"


_APP_CONFIG_FIELDS = {f.name for f in fields(AppConfig)}
_BOOL_FIELDS = {"privacy_enabled"}
_INT_FIELDS = {"udp_port", "poll_ms", "max_frames"}
_OPTIONAL_INT_FIELDS = {"seed"}
_FLOAT_FIELDS = {
    "frame_hz",
    "dropout",
    "ready_timeout_s",
    "strength_percent",
    "max_displacement",
    "ground_height",
    "ground_buffer",
    "gaze_project_distance",
    "eye_scale",
    "hand_scale",
    "body_scale",
    "gaze_jitter_scale",
    "competitive_multiplier",
    "casual_multiplier",
    "rig_x",
    "rig_y",
    "rig_z",
    "rig_yaw_deg",
    "display_hz",
}
_STRING_FIELDS = {
    "tracking_source",
    "udp_host",
    "context",
    "competitive_mechanism",
    "casual_mechanism",
    "ground",
    "head_noise",
    "display",
    "cli_output",
    "log_level",
}
# Negated CLI switches accepted as YAML keys.
_INVERTED_KEYS = {
    "no_privacy": "privacy_enabled",
}


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in {"1", "true", "yes", "on"}:
            return True
        if s in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"config key '{key}' expects a bool, got {value!r}")


def _coerce_config_value(key: str, value: Any) -> Any:
    try:
        if key in _BOOL_FIELDS:
            return _parse_bool(value, key)
        if key in _INT_FIELDS:
            return int(value)
        if key in _OPTIONAL_INT_FIELDS:
            return None if value is None else int(value)
        if key in _FLOAT_FIELDS:
            return float(value)
        if key in _STRING_FIELDS:
            return "" if value is None else str(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid value for config key '{key}': {value!r}") from exc
    raise ValueError(f"unsupported config key '{key}'")


def _normalize_config_key(raw_key: Any) -> str:
    if not isinstance(raw_key, str):
        raise ValueError(f"config key must be string, got {type(raw_key).__name__}")
    key = raw_key.strip().replace("-", "_")
    if not key:
        raise ValueError("config key cannot be empty")
    return key


def _load_yaml_config(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ValueError(f"--config file not found: {p}")
    if not p.is_file():
        raise ValueError(f"--config must point to a file: {p}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"failed to read --config file {p}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse YAML config {p}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"--config root must be a mapping/object, got {type(loaded).__name__}")

    normalized: dict[str, Any] = {}
    for raw_key, raw_value in loaded.items():
        key = _normalize_config_key(raw_key)
        if key in _INVERTED_KEYS:
            normalized[_INVERTED_KEYS[key]] = not _parse_bool(raw_value, key)
            continue
        if key not in _APP_CONFIG_FIELDS:
            raise ValueError(f"unknown config key in {p}: {raw_key!r}")
        normalized[key] = _coerce_config_value(key, raw_value)
    return normalized


def _yaml_defaults_to_argparse_defaults(cfg: dict[str, Any]) -> dict[str, Any]:
    defaults: dict[str, Any] = {}
    for key, value in cfg.items():
        if key == "privacy_enabled":
            defaults["no_privacy"] = not bool(value)
        else:
            defaults[key] = value
    return defaults


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Privatize head/hand/gaze tracking poses before consumers read them."
    )
    ap.add_argument(
        "--config",
        type=str,
        default="",
        help="YAML config file path. CLI args override YAML values.",
    )
    ap.add_argument(
        "--tracking-source",
        choices=list(TRACKING_SOURCES),
        default="synthetic",
        help="Raw pose backend: synthetic motion, UDP device bridge, or Tk sliders.",
    )
    ap.add_argument("--udp-host", type=str, default="127.0.0.1", help="Bridge UDP bind host.")
    ap.add_argument("--udp-port", type=int, default=24568, help="Bridge UDP bind port.")
    ap.add_argument("--poll-ms", type=int, default=11, help="Bridge polling sleep in ms.")
    ap.add_argument(
        "--frame-hz",
        type=float,
        default=72.0,
        help="Frame rate for the synthetic source.",
    )
    ap.add_argument(
        "--max-frames",
        type=int,
        default=0,
        help="Stop the synthetic source after N frames (0=run until interrupted).",
    )
    ap.add_argument(
        "--dropout",
        type=float,
        default=0.0,
        help="Synthetic per-joint probability of an untracked sample in [0,1].",
    )
    ap.add_argument(
        "--ready-timeout-s",
        type=float,
        default=5.0,
        help="How long to wait for the tracking source to report ready.",
    )

    ap.add_argument(
        "--context",
        choices=list(CONTEXTS),
        default="casual",
        help="Application context; selects mechanism and strength multiplier.",
    )
    ap.add_argument(
        "--strength-percent",
        type=float,
        default=50.0,
        help="Privacy strength in percent [0,100].",
    )
    ap.add_argument(
        "--competitive-mechanism",
        choices=list(MECHANISMS),
        default="gaussian",
        help="Mechanism used in the competitive context.",
    )
    ap.add_argument(
        "--casual-mechanism",
        choices=list(MECHANISMS),
        default="gaussian",
        help="Mechanism used in the casual context.",
    )
    ap.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for mechanism random generators (reproducible runs).",
    )
    ap.add_argument(
        "--no-privacy",
        action="store_true",
        help="Start with privatization disabled (passthrough).",
    )

    ap.add_argument(
        "--max-displacement",
        type=float,
        default=0.1,
        help="Maximum distance (m) between privatized and true position.",
    )
    ap.add_argument(
        "--ground",
        choices=list(GROUND_MODES),
        default="flat",
        help="Ground correction: none, or a flat floor at --ground-height.",
    )
    ap.add_argument("--ground-height", type=float, default=0.0, help="Floor height (m).")
    ap.add_argument(
        "--ground-buffer",
        type=float,
        default=0.1,
        help="Minimum height (m) kept above the floor after privatization.",
    )
    ap.add_argument(
        "--gaze-project-distance",
        type=float,
        default=1.0,
        help="Meters forward from head to project gaze before adding noise.",
    )
    ap.add_argument(
        "--head-noise",
        choices=list(HEAD_NOISE_CATEGORIES),
        default="eye",
        help="Noise scale category for the head position.",
    )
    ap.add_argument("--eye-scale", type=float, default=0.005, help="Gaussian eye/head std per unit strength (m).")
    ap.add_argument("--hand-scale", type=float, default=0.01, help="Gaussian hand std per unit strength (m).")
    ap.add_argument("--body-scale", type=float, default=0.015, help="Gaussian body std per unit strength (m).")
    ap.add_argument(
        "--gaze-jitter-scale",
        type=float,
        default=0.002,
        help="Gaze jitter radians per unit strength.",
    )
    ap.add_argument(
        "--competitive-multiplier",
        type=float,
        default=1.5,
        help="Strength multiplier for the competitive context.",
    )
    ap.add_argument(
        "--casual-multiplier",
        type=float,
        default=0.5,
        help="Strength multiplier for the casual context.",
    )
    ap.add_argument("--rig-x", type=float, default=0.0, help="Rig origin x (m).")
    ap.add_argument("--rig-y", type=float, default=0.0, help="Rig origin y (m).")
    ap.add_argument("--rig-z", type=float, default=0.0, help="Rig origin z (m).")
    ap.add_argument("--rig-yaw-deg", type=float, default=0.0, help="Rig origin yaw (deg).")

    ap.add_argument(
        "--display",
        choices=list(DISPLAYS),
        default="tui",
        help="Consumer display: terminal panel, log lines, or nothing.",
    )
    ap.add_argument(
        "--display-hz",
        type=float,
        default=5.0,
        help="Display refresh rate in Hz (0 disables display updates).",
    )
    ap.add_argument(
        "--cli-output",
        choices=["live", "scroll"],
        default="live",
        help="TUI output mode: in-place live panel or scrolling logs.",
    )
    ap.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Global log level.",
    )
    return ap


def validate_config(cfg: AppConfig) -> None:
    if cfg.tracking_source not in TRACKING_SOURCES:
        raise ValueError(
            f"--tracking-source must be one of {'|'.join(TRACKING_SOURCES)}, got {cfg.tracking_source}"
        )
    if not cfg.udp_host.strip():
        raise ValueError("--udp-host must be non-empty")
    if not (1 <= cfg.udp_port <= 65535):
        raise ValueError(f"--udp-port must be in [1,65535], got {cfg.udp_port}")
    if cfg.poll_ms <= 0:
        raise ValueError(f"--poll-ms must be > 0, got {cfg.poll_ms}")
    if not (cfg.frame_hz > 0.0):
        raise ValueError(f"--frame-hz must be > 0, got {cfg.frame_hz}")
    if cfg.max_frames < 0:
        raise ValueError(f"--max-frames must be >= 0, got {cfg.max_frames}")
    if not (0.0 <= cfg.dropout <= 1.0):
        raise ValueError(f"--dropout must be in [0,1], got {cfg.dropout}")
    if cfg.ready_timeout_s < 0.0:
        raise ValueError(f"--ready-timeout-s must be >= 0, got {cfg.ready_timeout_s}")
    if cfg.context not in CONTEXTS:
        raise ValueError(f"--context must be one of {'|'.join(CONTEXTS)}, got {cfg.context}")
    if not (0.0 <= cfg.strength_percent <= 100.0):
        raise ValueError(f"--strength-percent must be in [0,100], got {cfg.strength_percent}")
    for key in ("competitive_mechanism", "casual_mechanism"):
        value = getattr(cfg, key)
        if value not in MECHANISMS:
            flag = "--" + key.replace("_", "-")
            raise ValueError(f"{flag} must be one of {'|'.join(MECHANISMS)}, got {value}")
    if not math.isfinite(cfg.max_displacement) or cfg.max_displacement < 0.0:
        raise ValueError(f"--max-displacement must be >= 0, got {cfg.max_displacement}")
    if cfg.ground not in GROUND_MODES:
        raise ValueError(f"--ground must be one of {'|'.join(GROUND_MODES)}, got {cfg.ground}")
    if not math.isfinite(cfg.ground_height):
        raise ValueError("--ground-height must be a finite number")
    if cfg.ground_buffer < 0.0:
        raise ValueError(f"--ground-buffer must be >= 0, got {cfg.ground_buffer}")
    if cfg.gaze_project_distance <= 0.0:
        raise ValueError(
            f"--gaze-project-distance must be > 0, got {cfg.gaze_project_distance}"
        )
    if cfg.head_noise not in HEAD_NOISE_CATEGORIES:
        raise ValueError(
            f"--head-noise must be one of {'|'.join(HEAD_NOISE_CATEGORIES)}, got {cfg.head_noise}"
        )
    for key in ("eye_scale", "hand_scale", "body_scale", "gaze_jitter_scale"):
        if getattr(cfg, key) < 0.0:
            raise ValueError(f"--{key.replace('_', '-')} must be >= 0, got {getattr(cfg, key)}")
    for key in ("competitive_multiplier", "casual_multiplier"):
        if getattr(cfg, key) < 0.0:
            raise ValueError(f"--{key.replace('_', '-')} must be >= 0, got {getattr(cfg, key)}")
    if not all(math.isfinite(v) for v in (cfg.rig_x, cfg.rig_y, cfg.rig_z, cfg.rig_yaw_deg)):
        raise ValueError("--rig-x/--rig-y/--rig-z/--rig-yaw-deg must be finite numbers")
    if cfg.display not in DISPLAYS:
        raise ValueError(f"--display must be one of {'|'.join(DISPLAYS)}, got {cfg.display}")
    if cfg.display_hz < 0.0:
        raise ValueError(f"--display-hz must be >= 0, got {cfg.display_hz}")
    if cfg.cli_output not in {"live", "scroll"}:
        raise ValueError(f"--cli-output must be live|scroll, got {cfg.cli_output}")


def parse_args(argv=None) -> AppConfig:
    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config", type=str, default="")
    bootstrap_ns, _ = bootstrap.parse_known_args(argv)

    yaml_cfg: dict[str, Any] = {}
    yaml_error: Optional[str] = None
    if bootstrap_ns.config:
        try:
            yaml_cfg = _load_yaml_config(bootstrap_ns.config)
        except ValueError as exc:
            yaml_error = str(exc)

    ap = build_arg_parser()
    if yaml_error is not None:
        ap.error(yaml_error)
    if yaml_cfg:
        ap.set_defaults(**_yaml_defaults_to_argparse_defaults(yaml_cfg))
    args = ap.parse_args(argv)

    values = {
        name: getattr(args, name)
        for name in _APP_CONFIG_FIELDS
        if name != "privacy_enabled"
    }
    cfg = AppConfig(privacy_enabled=not args.no_privacy, **values)
    try:
        validate_config(cfg)
    except ValueError as exc:
        ap.error(str(exc))
    return cfg
