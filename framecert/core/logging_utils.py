"""Shared logging helpers for the framecert project.

Every module asks for ``get_module_logger(__name__)`` and gets a
``StructuredLogger`` that tags each message with a short component name::

    [sampler] Sampling SurfaceView#0 every 1.000s (fixed delay)

Runs on several devices log through the same module loggers, so a logger can
be bound to run context; the fields are added to the tag::

    [sampler device=emulator-5554] Poll 3 of SurfaceView#0: 12 new frames
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Union

MODULE_LOGGER_NAMESPACE = "framecert"
DEFAULT_COMPONENT = "Core"


def _qualified_name(name: Optional[str]) -> str:
    if not name:
        return MODULE_LOGGER_NAMESPACE
    if name == MODULE_LOGGER_NAMESPACE or name.startswith(MODULE_LOGGER_NAMESPACE + "."):
        return name
    return f"{MODULE_LOGGER_NAMESPACE}.{name}"


def _component_for(name: str) -> str:
    # framecert.modules.FrameTiming.frame_core.sampler -> sampler
    if name.startswith(MODULE_LOGGER_NAMESPACE):
        name = name[len(MODULE_LOGGER_NAMESPACE):].lstrip(".")
    return name.rsplit(".", 1)[-1] or DEFAULT_COMPONENT


class StructuredLogger:
    """Logger facade that prefixes messages with ``[component key=value ...]``."""

    __slots__ = ("_logger", "_component", "_context")

    def __init__(
        self,
        logger: logging.Logger,
        component: Optional[str] = None,
        context: Optional[Mapping[str, object]] = None,
    ) -> None:
        self._logger = logger
        self._component = component or _component_for(logger.name)
        self._context: Dict[str, object] = dict(context or {})

    def __getattr__(self, item):
        if item in StructuredLogger.__slots__:
            raise AttributeError(item)
        # isEnabledFor, handlers, setLevel, ...
        return getattr(self._logger, item)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"StructuredLogger({self._logger.name!r}, component={self._component!r}, context={self._context!r})"

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    @property
    def context(self) -> Dict[str, object]:
        return dict(self._context)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def bind(self, **fields: object) -> "StructuredLogger":
        """Logger for the same module with extra run context; empty values are dropped."""
        context = dict(self._context)
        context.update({key: value for key, value in fields.items() if value is not None and value != ""})
        return StructuredLogger(self._logger, self._component, context)

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self._logger.getChild(suffix), f"{self._component}.{suffix}", self._context)

    # ------------------------------------------------------------------

    def _tag(self) -> str:
        if not self._context:
            return f"[{self._component}]"
        fields = " ".join(f"{key}={value}" for key, value in self._context.items())
        return f"[{self._component} {fields}]"

    def _compose(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                # Keep the message when the arguments do not match
                text = f"{text} | args={' '.join(str(arg) for arg in args)}"
        tag = self._tag()
        if text.startswith(tag):
            return text
        return f"{tag} {text}"

    def _emit(self, level: int, message: object, args: tuple, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        # Attribute the record to the caller, not to this wrapper
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, self._compose(message, args), **kwargs)

    def log(self, level: int, message: object, *args, **kwargs) -> None:
        self._emit(level, message, args, kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.DEBUG, message, args, kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.INFO, message, args, kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.WARNING, message, args, kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.ERROR, message, args, kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, message, args, kwargs)

    def critical(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.CRITICAL, message, args, kwargs)


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Wrap ``logger`` (or a fresh module logger when it is None)."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        logger = logger.logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Structured logger under the ``framecert`` namespace."""
    return StructuredLogger(logging.getLogger(_qualified_name(name)))


__all__ = [
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
