"""Plain ``key = value`` configuration files with typed accessors."""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, Optional

import aiofiles

from framecert.core.logging_utils import get_module_logger


logger = get_module_logger("ConfigManager")

_TRUE_VALUES = ('true', '1', 'yes', 'on')


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    # ------------------------------------------------------------------
    # Parsing

    @staticmethod
    def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            # Layer names contain '#', so quoted values keep it
            quote = value[:1]
            if quote in ('"', "'") and quote in value[1:]:
                value = value[1:value.index(quote, 1)]
            elif '#' in value:
                value = value.split('#')[0].strip()

            config[key] = value

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read a config file; a missing file yields an empty mapping."""
        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug("Config file %s not found, using defaults", config_path)
            return {}

        with open(config_path, 'r', encoding='utf-8') as f:
            config = self.parse_config_lines(f)
        logger.debug("Loaded %d keys from %s", len(config), config_path)
        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use inside a running event loop."""
        config_path = Path(config_path)
        if not await asyncio.to_thread(config_path.exists):
            logger.debug("Config file %s not found, using defaults", config_path)
            return {}

        lines: list[str] = []
        async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
            async for line in f:
                lines.append(line)
        return self.parse_config_lines(lines)

    # ------------------------------------------------------------------
    # Typed getters

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default

        value = config[key].lower()
        return value in _TRUE_VALUES

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in config:
            return default

        try:
            return int(config[key])
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in config:
            return default

        try:
            return float(config[key])
        except ValueError:
            logger.warning("Invalid float value for %s: %s, using default %f", key, config[key], default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)

    def get_path(self, config: Dict[str, str], key: str, default: Optional[Path] = None) -> Optional[Path]:
        text = config.get(key, "").strip()
        return Path(text).expanduser() if text else default


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager
