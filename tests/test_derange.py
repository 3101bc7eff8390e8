import random

import pytest

from secret_santa import derange, is_derangement


class IdentityShuffle:
    """Always picks j == i, so the shuffle leaves the list untouched."""

    def randint(self, a, b):
        return b


def names(n):
    return [f"guest-{i}" for i in range(n)]


@pytest.mark.parametrize("size", [2, 3, 4, 7, 20, 50])
def test_derange_has_no_fixed_points(size):
    guests = names(size)
    rng = random.Random(size)
    for _ in range(200):
        table = derange(guests, rng=rng)
        assert sorted(table.keys()) == sorted(guests)
        assert sorted(table.values()) == sorted(guests)
        assert all(table[g] != g for g in guests)


def test_two_guests_swap():
    assert derange(["A", "B"], rng=random.Random(1)) == {"A": "B", "B": "A"}


def test_repair_looks_backward_at_last_position():
    # identity shuffle: A and B swap, then C is fixed at the end and swaps back
    table = derange(["A", "B", "C"], rng=IdentityShuffle())
    assert table == {"A": "B", "B": "C", "C": "A"}
    assert is_derangement(["A", "B", "C"], table)


def test_identity_shuffle_repaired_for_every_size():
    for size in range(2, 51):
        guests = names(size)
        assert is_derangement(guests, derange(guests, rng=IdentityShuffle()))


def test_default_rng_is_used_when_none_given():
    guests = ["Ann", "Bo", "Cy"]
    assert is_derangement(guests, derange(guests))


def test_derange_rejects_single_guest():
    with pytest.raises(ValueError):
        derange(["lonely"])


def test_is_derangement_spots_bad_tables():
    guests = ["A", "B", "C"]
    assert not is_derangement(guests, {"A": "A", "B": "C", "C": "B"})
    assert not is_derangement(guests, {"A": "B", "B": "A", "C": "A"})
    assert not is_derangement(guests, {"A": "B", "B": "A"})
