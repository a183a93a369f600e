"""Externally supplied certification thresholds."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from framecert.core.config_manager import get_config_manager


@dataclass(frozen=True, slots=True)
class CertificationRequirements:
    """
    Pass/fail thresholds for one application.

    ``frame_time_ms`` is the target frame time used for jank scoring,
    ``jank_rate`` the maximum allowed jank per second and ``load_time_ms`` the
    maximum launch-to-first-loop time. A negative load time disables that check.
    """

    name: str
    frame_time_ms: float
    jank_rate: float
    load_time_ms: int = -1

    @classmethod
    def from_config(cls, config: Dict[str, str]) -> "CertificationRequirements":
        manager = get_config_manager()
        return cls(
            name=manager.get_str(config, "name", ""),
            frame_time_ms=manager.get_float(config, "frame_time_ms", 16.666),
            jank_rate=manager.get_float(config, "jank_rate", 0.0),
            load_time_ms=manager.get_int(config, "load_time_ms", -1),
        )

    @classmethod
    def load(cls, path: Path) -> "CertificationRequirements":
        config = get_config_manager().read_config(path)
        if not config:
            raise FileNotFoundError(f"No requirements found in {path}")
        return cls.from_config(config)

    @property
    def checks_load_time(self) -> bool:
        return self.load_time_ms >= 0
