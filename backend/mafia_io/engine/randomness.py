from __future__ import annotations

import random
from typing import Container, List, Optional, Sequence, TypeVar

T = TypeVar("T")

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MAX_CODE_ATTEMPTS = 1000


class RandomSource:
    """Injectable randomness for role shuffles and lobby codes.

    Pass ``seed`` (or a ready ``random.Random``) to get a reproducible
    sequence in tests.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random(seed)

    def shuffle(self, items: Sequence[T]) -> List[T]:
        # Fisher-Yates over a copy
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = self._rng.randint(0, i)
            result[i], result[j] = result[j], result[i]
        return result

    def new_code(
        self,
        existing: Container[str],
        length: int = 4,
        alphabet: str = CODE_ALPHABET,
    ) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(self._rng.choice(alphabet) for _ in range(length))
            if code not in existing:
                return code
        raise RuntimeError("could not generate a unique lobby code")
