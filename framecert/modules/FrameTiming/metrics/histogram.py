"""Bucketed frame time counts with an ASCII bar rendering."""

from __future__ import annotations

import io
from typing import Dict, Iterable, Optional, TextIO, Union

import numpy as np

Number = Union[int, float]


class Histogram:
    """
    Counts samples into buckets of ``bucket_size``.

    A sample lands in the bucket nearest to it (``floor(x / size + 0.5) * size``),
    so a sample exactly halfway between two bucket keys goes to the higher one.
    With bounds set, everything below ``min_cutoff`` is counted under
    ``min_cutoff`` and everything above ``max_cutoff`` under ``max_cutoff``;
    the plot marks those keys with ``<`` and ``>``.
    """

    def __init__(
        self,
        data: Iterable[Number],
        bucket_size: Number,
        min_cutoff: Optional[Number] = None,
        max_cutoff: Optional[Number] = None,
    ):
        if bucket_size <= 0:
            raise ValueError(f"bucket_size must be positive, got {bucket_size}")
        if min_cutoff is not None and max_cutoff is not None and min_cutoff > max_cutoff:
            raise ValueError(f"min_cutoff {min_cutoff} exceeds max_cutoff {max_cutoff}")

        self.bucket_size = bucket_size
        self.min_cutoff = min_cutoff
        self.max_cutoff = max_cutoff
        self._counts = self._bucketize(np.asarray(list(data)))

    def _bucketize(self, samples: np.ndarray) -> Dict[Number, int]:
        if samples.size == 0:
            return {}

        keys = np.floor(samples / self.bucket_size + 0.5) * self.bucket_size
        if self.min_cutoff is not None:
            keys = np.where(samples < self.min_cutoff, self.min_cutoff, keys)
        if self.max_cutoff is not None:
            keys = np.where(samples > self.max_cutoff, self.max_cutoff, keys)

        unique, counts = np.unique(keys, return_counts=True)
        return {self._as_key(key): int(count) for key, count in zip(unique, counts)}

    def _as_key(self, value: np.generic) -> Number:
        number = float(value)
        if number.is_integer():
            return int(number)
        return number

    @property
    def counts(self) -> Dict[Number, int]:
        """Bucket key to count, keys ascending."""
        return dict(self._counts)

    def _label(self, key: Number) -> str:
        if self.min_cutoff is not None and key == self.min_cutoff:
            return "<"
        if self.max_cutoff is not None and key == self.max_cutoff:
            return ">"
        return " "

    def plot_ascii(self, stream: TextIO, max_bar_width: int) -> None:
        if not self._counts:
            return
        max_count = max(self._counts.values())
        key_width = max(len(str(key)) for key in self._counts)
        for key, count in self._counts.items():
            bar = "=" * (count * max_bar_width // max_count)
            stream.write(f"{self._label(key)}{str(key):>{key_width}}| {bar}\n")

    def render(self, max_bar_width: int) -> str:
        buffer = io.StringIO()
        self.plot_ascii(buffer, max_bar_width)
        return buffer.getvalue()

    def __repr__(self) -> str:
        return f"Histogram(bucket_size={self.bucket_size}, buckets={len(self._counts)})"
