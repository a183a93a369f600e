"""Typed configuration for the FrameTiming module."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from framecert.core.config_manager import get_config_manager
from .constants import (
    DEFAULT_COMMAND_TIMEOUT_S,
    DEFAULT_HISTOGRAM_BUCKET_MS,
    DEFAULT_HISTOGRAM_MAX_BAR,
    DEFAULT_INTERVAL_S,
)


@dataclass(slots=True)
class FrameTimingConfig:
    """Typed configuration for one frame timing run."""

    # Target
    layer_name: str = ""
    device_serial: str = ""

    # Polling
    interval_s: float = DEFAULT_INTERVAL_S
    fixed_rate: bool = False
    command_timeout_s: float = DEFAULT_COMMAND_TIMEOUT_S

    # Output settings
    output_dir: Optional[Path] = None
    event_log_remote_path: Optional[str] = None
    log_level: str = "info"

    # Run log histogram
    histogram_bucket_ms: float = DEFAULT_HISTOGRAM_BUCKET_MS
    histogram_max_bar: int = DEFAULT_HISTOGRAM_MAX_BAR

    @classmethod
    def from_config(cls, config: Dict[str, str], args: Any = None) -> "FrameTimingConfig":
        """Build config from ``key = value`` pairs with optional CLI overrides."""
        manager = get_config_manager()
        defaults = cls()

        event_log = manager.get_str(config, "event_log_remote_path", "")
        result = cls(
            layer_name=manager.get_str(config, "layer_name", defaults.layer_name),
            device_serial=manager.get_str(config, "device_serial", defaults.device_serial),
            interval_s=manager.get_float(config, "interval_s", defaults.interval_s),
            fixed_rate=manager.get_bool(config, "fixed_rate", defaults.fixed_rate),
            command_timeout_s=manager.get_float(config, "command_timeout_s", defaults.command_timeout_s),
            output_dir=manager.get_path(config, "output_dir", defaults.output_dir),
            event_log_remote_path=event_log or defaults.event_log_remote_path,
            log_level=manager.get_str(config, "log_level", defaults.log_level),
            histogram_bucket_ms=manager.get_float(config, "histogram_bucket_ms", defaults.histogram_bucket_ms),
            histogram_max_bar=manager.get_int(config, "histogram_max_bar", defaults.histogram_max_bar),
        )

        if args is not None:
            result = result._apply_args_override(args)

        return result

    @classmethod
    def load(cls, path: Path, args: Any = None) -> "FrameTimingConfig":
        return cls.from_config(get_config_manager().read_config(path), args)

    def _apply_args_override(self, args: Any) -> "FrameTimingConfig":
        """Apply CLI argument overrides to config values."""
        values = asdict(self)

        arg_mappings = {
            "layer": "layer_name",
            "serial": "device_serial",
            "interval": "interval_s",
            "output_dir": "output_dir",
            "event_log": "event_log_remote_path",
            "log_level": "log_level",
        }

        for arg_name, config_key in arg_mappings.items():
            val = getattr(args, arg_name, None)
            if val is not None:
                values[config_key] = val

        # store_true flags can only switch the mode on
        if getattr(args, "fixed_rate", False):
            values["fixed_rate"] = True
        if values["output_dir"] is not None:
            values["output_dir"] = Path(values["output_dir"])

        return FrameTimingConfig(**values)

    def to_dict(self) -> dict[str, Any]:
        """Export config values as dictionary."""
        return asdict(self)
