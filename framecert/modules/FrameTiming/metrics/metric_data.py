"""Flat metric map entries exchanged between collector and reporter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Union


class MetricKind(Enum):
    INT = "int"
    DOUBLE = "double"


class Direction(Enum):
    UP_BETTER = "up_better"
    DOWN_BETTER = "down_better"
    UNSPECIFIED = "unspecified"


class MissingMetricError(KeyError):
    """A required key is absent from a metric map, or has the wrong kind."""


@dataclass(frozen=True, slots=True)
class Metric:
    value: Union[int, float]
    kind: MetricKind
    unit: str = ""
    direction: Direction = Direction.UNSPECIFIED

    @classmethod
    def integer(cls, value: int, unit: str = "", direction: Direction = Direction.UNSPECIFIED) -> "Metric":
        return cls(int(value), MetricKind.INT, unit, direction)

    @classmethod
    def double(cls, value: float, unit: str = "", direction: Direction = Direction.UNSPECIFIED) -> "Metric":
        return cls(float(value), MetricKind.DOUBLE, unit, direction)

    @classmethod
    def ns(cls, value: Union[int, float]) -> "Metric":
        """Frame time metric; floats stay floats."""
        if isinstance(value, float):
            return cls.double(value, "ns", Direction.DOWN_BETTER)
        return cls.integer(value, "ns", Direction.DOWN_BETTER)


MetricMap = Dict[str, Metric]


def actual_metric_key(key: str, device_name: Optional[str] = None) -> str:
    """Key as stored by a multi-device run, which prefixes ``{device}:``."""
    if device_name:
        return f"{{{device_name}}}:{key}"
    return key


def _lookup(metrics: Mapping[str, Metric], key: str, kind: MetricKind, device_name: Optional[str]) -> Metric:
    actual = actual_metric_key(key, device_name)
    try:
        metric = metrics[actual]
    except KeyError:
        raise MissingMetricError(f"metric {actual!r} missing from run metrics") from None
    if metric.kind is not kind:
        raise MissingMetricError(f"metric {actual!r} is {metric.kind.value}, expected {kind.value}")
    return metric


def get_int_metric(metrics: Mapping[str, Metric], key: str, device_name: Optional[str] = None) -> int:
    return int(_lookup(metrics, key, MetricKind.INT, device_name).value)


def get_double_metric(metrics: Mapping[str, Metric], key: str, device_name: Optional[str] = None) -> float:
    return float(_lookup(metrics, key, MetricKind.DOUBLE, device_name).value)


__all__ = [
    "Direction",
    "Metric",
    "MetricKind",
    "MetricMap",
    "MissingMetricError",
    "actual_metric_key",
    "get_double_metric",
    "get_int_metric",
]
