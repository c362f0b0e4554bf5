import numpy as np
import pytest

from gyrolinear import InvalidConfiguration, MeanFilter


@pytest.mark.parametrize("window", [1, 2, 3, 5, 10, 32])
def test_identical_samples_give_exact_value(window):
    mf = MeanFilter(window_size=window)
    sample = (1.5, -2.25, 9.75)

    out = None
    for _ in range(window):
        out = mf.filter(sample)

    assert out == sample


def test_identical_non_dyadic_samples_are_exact():
    mf = MeanFilter(window_size=3)
    sample = (0.1, 9.81, -0.7)
    for _ in range(3):
        out = mf.filter(sample)
    assert out == sample


def test_warm_up_averages_samples_seen_so_far():
    mf = MeanFilter(window_size=4)
    assert mf.filter((0.0, 0.0, 0.0)) == (0.0, 0.0, 0.0)
    assert mf.filter((2.0, 4.0, 6.0)) == (1.0, 2.0, 3.0)
    assert len(mf) == 2


def test_oldest_sample_is_evicted():
    mf = MeanFilter(window_size=2)
    mf.filter((1.0, 1.0, 1.0))
    mf.filter((2.0, 2.0, 2.0))
    out = mf.filter((3.0, 3.0, 3.0))

    assert out == (2.5, 2.5, 2.5)
    assert len(mf) == 2
    np.testing.assert_array_equal(mf.get_history(), [[2.0, 2.0, 2.0], [3.0, 3.0, 3.0]])


def test_output_is_convex_combination_of_history():
    rng = np.random.default_rng(7)
    mf = MeanFilter(window_size=7)

    for _ in range(2000):
        out = np.array(mf.filter(rng.normal(0.0, 50.0, size=3)))
        held = mf.get_history()
        assert len(held) <= 7
        assert np.all(out >= held.min(axis=0))
        assert np.all(out <= held.max(axis=0))


def test_long_run_tracks_true_mean():
    rng = np.random.default_rng(3)
    mf = MeanFilter(window_size=10)
    for _ in range(10_000):
        out = mf.filter(rng.uniform(-1e3, 1e3, size=3))
    np.testing.assert_allclose(out, mf.get_history().mean(axis=0), atol=1e-9)


@pytest.mark.parametrize("window", [0, -1, -10])
def test_non_positive_window_is_rejected(window):
    with pytest.raises(InvalidConfiguration):
        MeanFilter(window_size=window)


def test_configure_rejects_bad_window_and_is_value_error():
    mf = MeanFilter(window_size=3)
    with pytest.raises(ValueError):
        mf.configure(0)


def test_wrong_width_is_rejected():
    mf = MeanFilter(window_size=3)
    with pytest.raises(ValueError):
        mf.filter((1.0, 2.0))


def test_reset_clears_history():
    mf = MeanFilter(window_size=3)
    mf.filter((3.0, 3.0, 3.0))
    mf.reset()

    assert len(mf) == 0
    assert mf.filter((1.0, 2.0, 3.0)) == (1.0, 2.0, 3.0)


def test_constant_axis_is_exact_while_others_vary():
    mf = MeanFilter(window_size=4)
    for i in range(11):
        out = mf.filter((0.1, float(i), -0.7))
        assert out[0] == 0.1
        assert out[2] == -0.7


def test_axis_is_exact_again_once_window_is_constant():
    mf = MeanFilter(window_size=3)
    mf.filter((5.0, 0.3, 0.0))
    for _ in range(2):
        out = mf.filter((5.0, 0.1, 0.0))
    assert out[1] != 0.1

    out = mf.filter((5.0, 0.1, 0.0))
    assert out == (5.0, 0.1, 0.0)
