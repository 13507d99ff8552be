import numpy as np
import pytest

from bodysync.core.interpolation import InterpolationMethod, neville


def test_window_size_is_order_plus_three():
    assert InterpolationMethod.NONE.window_size == 3
    assert InterpolationMethod.LINEAR.window_size == 4
    assert InterpolationMethod.CUBIC.window_size == 6
    assert InterpolationMethod.QUADRATIC.order == 2


def test_from_name_accepts_aliases():
    assert InterpolationMethod.from_name('Linear') is InterpolationMethod.LINEAR
    assert InterpolationMethod.from_name('square') is InterpolationMethod.QUADRATIC

    with pytest.raises(ValueError):
        InterpolationMethod.from_name('spline')


def test_neville_reproduces_polynomials_exactly():
    times = [0.0, 1.0, 3.0, 4.0]
    values = [t ** 3 - 2 * t for t in times]

    assert neville(times, values, 2.0) == pytest.approx(4.0)


def test_neville_interpolates_each_column_independently():
    times = [0.0, 10.0, 20.0]
    values = np.array([[0.0, 1.0], [1.0, 1.0], [4.0, 1.0]])  # 第一列 (t/10)^2，第二列常数

    result = neville(times, values, 15.0)

    np.testing.assert_allclose(result, [2.25, 1.0])


def test_neville_with_two_points_is_linear():
    assert neville([2.0, 6.0], [1.0, 9.0], 3.0) == pytest.approx(3.0)
    assert neville([2.0, 6.0], [1.0, 9.0], 8.0) == pytest.approx(13.0)


def test_neville_rejects_invalid_input():
    with pytest.raises(ValueError):
        neville([], [], 0.0)
    with pytest.raises(ValueError):
        neville([0.0, 1.0], [1.0], 0.5)
    with pytest.raises(ValueError):
        neville([1.0, 1.0], [1.0, 2.0], 0.5)
