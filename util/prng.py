# util/prng.py
from typing import List, Sequence, TypeVar

T = TypeVar("T")

# Numerical Recipes LCG constants, 32-bit state
_A = 1664525
_C = 1013904223
_M = 2**32


class SeededRandom:
    """
    Small linear-congruential generator. Same seed, same sequence, on every
    platform; nothing touches the global `random` state.
    """

    def __init__(self, seed: int) -> None:
        self._state = int(seed) % _M

    def next_int(self) -> int:
        self._state = (_A * self._state + _C) % _M
        return self._state

    def random(self) -> float:
        """Float in [0, 1)."""
        return self.next_int() / _M

    def randrange(self, n: int) -> int:
        if n <= 0:
            raise ValueError("randrange() needs a positive bound")
        return int(self.random() * n)

    def shuffled(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates over a copy; `items` is left untouched."""
        out = list(items)
        for i in range(len(out) - 1, 0, -1):
            j = self.randrange(i + 1)
            out[i], out[j] = out[j], out[i]
        return out
