import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


class ScriptedRandom:
    """Stand-in for RandomProvider that replays queued values.

    random() and roll() pop from their queues and fall back to ``value`` and
    ``die`` once empty; uniform() returns the midpoint, randint() the low end
    and choice() the first element.
    """

    def __init__(self, randoms=(), rolls=(), value=0.5, die=10):
        self.randoms = list(randoms)
        self.rolls = list(rolls)
        self.value = value
        self.die = die

    def random(self):
        return self.randoms.pop(0) if self.randoms else self.value

    def uniform(self, a, b):
        return (a + b) / 2

    def randint(self, a, b):
        return a

    def roll(self, sides):
        return self.rolls.pop(0) if self.rolls else self.die

    def choice(self, seq):
        return seq[0]


@pytest.fixture()
def scripted():
    return ScriptedRandom


@pytest.fixture()
def library():
    from skirmish.content.loader import default_library

    return default_library()
