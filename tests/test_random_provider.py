import pytest

from skirmish.utils.random_provider import RandomProvider


def test_same_seed_same_sequence():
    a, b = RandomProvider(seed=42), RandomProvider(seed=42)
    assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]
    assert [a.roll(20) for _ in range(5)] == [b.roll(20) for _ in range(5)]


def test_roll_stays_on_the_die():
    rng = RandomProvider(seed=3)
    rolls = {rng.roll(6) for _ in range(200)}
    assert rolls <= set(range(1, 7))
    assert rng.roll(1) == 1


def test_bad_inputs():
    rng = RandomProvider(seed=1)
    with pytest.raises(ValueError):
        rng.roll(0)
    with pytest.raises(IndexError):
        rng.choice([])
