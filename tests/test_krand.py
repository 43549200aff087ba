import pytest

from kanekfs.krand import KRand64


def test_same_seed_gives_same_sequence():
    first = KRand64(42)
    second = KRand64(42)
    assert [first.next() for _ in range(20)] == [second.next() for _ in range(20)]


def test_default_seed_matches_explicit_one():
    assert KRand64().next() == KRand64(1).next()


def test_draw_depends_only_on_counter():
    rng = KRand64(5)
    rng.next()
    second_draw = rng.next()
    assert KRand64(6).next() == second_draw


def test_counter_advances_by_one():
    rng = KRand64(10)
    rng.next()
    rng.next()
    assert rng.state == 12


def test_reseed_repeats_sequence():
    rng = KRand64(3)
    values = [rng.next(1000) for _ in range(10)]
    rng.seed(3)
    assert [rng.next(1000) for _ in range(10)] == values


def test_values_fit_in_64_bits():
    rng = KRand64(1)
    for _ in range(200):
        value = rng.next()
        assert 0 <= value < 2**64


def test_bounded_values_stay_below_maximum():
    rng = KRand64(1)
    values = [rng.next(100) for _ in range(5000)]
    assert min(values) >= 0
    assert max(values) < 100


def test_bounded_value_is_full_value_modulo_maximum():
    full = KRand64(77).next()
    assert KRand64(77).next(97) == full % 97


def test_all_faces_of_a_die_show_up():
    rng = KRand64(1)
    seen = {rng.next(100) for _ in range(20000)}
    assert seen == set(range(100))


def test_maximum_one_always_zero():
    rng = KRand64(9)
    assert {rng.next(1) for _ in range(50)} == {0}


def test_counter_wraps_at_64_bits():
    rng = KRand64(2**64 - 1)
    rng.next()
    assert rng.state == 0


def test_negative_maximum_rejected():
    with pytest.raises(ValueError):
        KRand64().next(-1)


def test_negative_seed_rejected():
    with pytest.raises(ValueError):
        KRand64(-5)