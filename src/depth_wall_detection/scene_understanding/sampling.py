"""
Random sampling for RANSAC minimal samples.

The estimator only talks to ``RandomSource`` so tests can inject a seeded or
scripted generator without touching the fitting loop.
"""

import torch
from typing import Optional, Tuple
from abc import ABC, abstractmethod


class RandomSource(ABC):
    """Source of uniformly distributed integers."""

    @abstractmethod
    def randint(self, high: int) -> int:
        """Return an integer drawn uniformly from [0, high)."""
        pass


class TorchRandomSource(RandomSource):
    """Random source backed by a private ``torch.Generator``."""

    def __init__(self, seed: Optional[int] = None):
        """
        Args:
            seed: Fixed seed for reproducible runs, or None for a
                non-deterministic seed
        """
        self.generator = torch.Generator()
        if seed is None:
            self.seed = self.generator.seed()
        else:
            self.seed = seed
            self.generator.manual_seed(seed)

    def randint(self, high: int) -> int:
        return int(torch.randint(0, high, (1,), generator=self.generator).item())


def sample_distinct_triple(source: RandomSource, n: int,
                           max_retries: int = 16) -> Tuple[int, int, int]:
    """
    Draw three distinct indices from [0, n).

    Indices are drawn independently and colliding ones are redrawn. After
    ``max_retries`` redraws the remaining indices are drawn without
    replacement, so the call terminates for any n >= 3.
    """
    if n < 3:
        raise ValueError(f"Need at least 3 points to sample a triple, got {n}")

    i1 = source.randint(n)
    i2 = source.randint(n)
    i3 = source.randint(n)

    retries = 0
    while i2 == i1 and retries < max_retries:
        i2 = source.randint(n)
        retries += 1

    while (i3 == i1 or i3 == i2) and retries < max_retries:
        i3 = source.randint(n)
        retries += 1

    if i2 == i1:
        i2 = _draw_excluding(source, n, [i1])
    if i3 == i1 or i3 == i2:
        i3 = _draw_excluding(source, n, [i1, i2])

    return i1, i2, i3


def _draw_excluding(source: RandomSource, n: int, excluded) -> int:
    """Uniform draw from [0, n) minus ``excluded`` using a single random value."""
    index = source.randint(n - len(excluded))
    for taken in sorted(excluded):
        if index >= taken:
            index += 1
    return index
