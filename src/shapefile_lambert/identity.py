"""Identity tokens for geometries.

Geometries are identified by a token assigned when they are created, never
by their coordinates. The reader takes any zero-argument callable returning
a string, so tokens can be made deterministic in tests.
"""

import itertools
import uuid
from collections.abc import Callable

IdSource = Callable[[], str]


class SequentialIds:
    """Tokens built from a prefix and an increasing counter: ``"g1"``, ``"g2"``, ..."""

    def __init__(self, prefix: str = "", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


def uuid_ids() -> str:
    """Random UUID4 token."""
    return str(uuid.uuid4())
