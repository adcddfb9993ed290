"""Random source collaborator used for pre-game obstructions."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

DEFAULT_BLOCK_CHOICES = 2


@runtime_checkable
class RandomSource(Protocol):
    """Uniform integer generator; ``random.Random`` satisfies this protocol."""

    def randrange(self, stop: int) -> int:
        """Return an integer drawn uniformly from ``[0, stop)``."""
        ...
