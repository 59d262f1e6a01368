"""Controller configuration models and YAML loading."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pid_core import (
    DEFAULT_KD,
    DEFAULT_KI,
    DEFAULT_KP,
    DEFAULT_OUTPUT_MAX,
    DEFAULT_OUTPUT_MIN,
    DEFAULT_SETPOINT,
    PIDController,
)

logger = logging.getLogger(__name__)


@dataclass
class ControllerConfig:
    kp: float = DEFAULT_KP
    ki: float = DEFAULT_KI
    kd: float = DEFAULT_KD
    setpoint: float = DEFAULT_SETPOINT
    output_min: float = DEFAULT_OUTPUT_MIN
    output_max: float = DEFAULT_OUTPUT_MAX

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def config_from_dict(raw: Dict[str, Any]) -> ControllerConfig:
    known = {f.name for f in fields(ControllerConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown controller config keys: {', '.join(unknown)}")
    values = {}
    for key, value in raw.items():
        try:
            values[key] = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for controller config key {key!r}: {value!r}") from exc
    return ControllerConfig(**values)


def load_controller_config(path: Path) -> ControllerConfig:
    """Read a controller config from YAML.

    The values may sit at the top level or under a ``controller`` key.
    An empty file gives the passive all-zero config.
    """
    path = Path(path)
    raw = yaml.safe_load(path.read_text())
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid controller config: {path}")
    if isinstance(raw.get("controller"), dict):
        raw = raw["controller"]
    config = config_from_dict(raw)
    logger.info("Loaded controller config from %s", path)
    return config


def apply_config(controller: PIDController, config: ControllerConfig) -> PIDController:
    controller.kp = config.kp
    controller.ki = config.ki
    controller.kd = config.kd
    controller.setpoint = config.setpoint
    controller.set_output_limits(config.output_min, config.output_max)
    return controller


def build_controller(config: Optional[ControllerConfig] = None, on_config_error=None) -> PIDController:
    config = config or ControllerConfig()
    return apply_config(PIDController(on_config_error=on_config_error), config)
