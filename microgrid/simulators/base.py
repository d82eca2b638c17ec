"""Seeded base class shared by the community and plant simulators."""

import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import numpy as np


class BaseSimulator(ABC):
    """
    Owns one random stream per simulator.

    Simulators built with the same seed replay the same sequence, so a
    seeded community, plant and market are reproducible end to end.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._random = random.Random(seed)

    def _jitter(self, value: float, percent: float) -> float:
        """Scale ``value`` by a uniform factor within +/- ``percent``."""
        return value * self._random.uniform(1 - percent / 100, 1 + percent / 100)

    def _chance(self, probability: float) -> bool:
        return self._random.random() < probability

    def _clamp(self, value: float, min_val: float, max_val: float) -> float:
        return max(min_val, min(max_val, value))

    def _random_in_range(self, min_val: float, max_val: float, digits: int = 2) -> float:
        """Uniform value in [min_val, max_val], rounded like displayed readings."""
        return round(self._random.uniform(min_val, max_val), digits)

    def _numpy_rng(self) -> np.random.Generator:
        """A numpy generator seeded from this simulator's stream."""
        return np.random.default_rng(self._random.randrange(2**32))

    @abstractmethod
    def generate(self, timestamp: datetime) -> Any:
        """Produce this simulator's values for ``timestamp``."""
