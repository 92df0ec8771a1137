"""Pytest configuration to ensure the `src` package layout is importable.

This adds the `src/` directory to `sys.path` so tests can import the
`tianming` package (e.g., `from tianming.api.app import create_app`) without
requiring an editable install in CI.  It also provides a scripted random
source so probability checks can be forced without hunting for seeds.
"""

import random
import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class ScriptedRandom(random.Random):
    """Random source whose ``random()`` draws come from a script.

    Integer draws (``randint``, ``sample``, ``choice``) still come from the
    seeded generator; only the [0, 1) draws behind percent checks and
    uniform floats are scripted.  An exhausted script falls back to ``default``.
    """

    def __init__(self, draws=(), *, seed: int = 0, default: float = 0.5) -> None:
        super().__init__(seed)
        self.draws = list(draws)
        self.default = default

    def random(self) -> float:
        if self.draws:
            return self.draws.pop(0)
        return self.default

    def getrandbits(self, k: int) -> int:
        return super().getrandbits(k)


@pytest.fixture
def scripted_rng():
    """Factory for :class:`ScriptedRandom` instances."""

    def factory(*draws: float, seed: int = 0, default: float = 0.5) -> ScriptedRandom:
        return ScriptedRandom(draws, seed=seed, default=default)

    return factory


@pytest.fixture(scope="session")
def bundled_catalog():
    from tianming.content import load_catalog

    return load_catalog()
