import warnings

import numpy as np
import pytest
from affine import Affine
from ecospatial import geometry


def test_pixel_to_geo_and_back_scalar():
    a = Affine(2.0, 0.0, 10.0, 0.0, -2.0, 20.0)
    r, c = 5, 7
    x, y = geometry.pixel_to_geo(a, r, c)
    assert x == pytest.approx(10.0 + 7.5 * 2.0)
    assert y == pytest.approx(20.0 - 5.5 * 2.0)
    rr, cc = geometry.geo_to_pixel(a, x, y)
    assert rr == r
    assert cc == c


def test_pixel_to_geo_and_back_array():
    a = Affine(1.0, 0.0, 0.0, 0.0, -1.0, 100.0)
    rows = np.array([0, 10, 50])
    cols = np.array([0, 5, 20])
    xs, ys = geometry.pixel_to_geo(a, rows, cols)
    r2, c2 = geometry.geo_to_pixel(a, xs, ys)
    assert np.all(r2 == rows)
    assert np.all(c2 == cols)


def test_upper_left_offset():
    a = Affine(0.5, 0.0, -100.0, 0.0, -0.5, 200.0)
    x, y = geometry.pixel_to_geo(a, 0, 0, offset='ul')
    assert (x, y) == (-100.0, 200.0)
    with pytest.raises(ValueError):
        geometry.pixel_to_geo(a, 0, 0, offset='lr')


def test_geo_to_pixel_is_containing_cell():
    a = Affine(1.0, 0.0, 0.0, 0.0, -1.0, 10.0)
    # anywhere inside cell (row 2, col 3) maps to it, including its UL corner
    for x, y in [(3.0, 8.0), (3.99, 7.01), (3.5, 7.5)]:
        assert geometry.geo_to_pixel(a, x, y) == (2, 3)
    # outside the grid gives out-of-range indices, not clipping
    assert geometry.geo_to_pixel(a, -0.5, 10.5) == (-1, -1)


def test_transform_from_bounds_and_back():
    t = geometry.transform_from_bounds((0.0, 100.0, 50.0, 90.0), nrows=4, ncols=10)
    assert t.a == pytest.approx(10.0)
    assert t.e == pytest.approx(-10.0)
    assert geometry.bounds_from_transform(t, 4, 10) == pytest.approx((0.0, 100.0, 50.0, 90.0))


@pytest.mark.parametrize('bounds', [(0, 1, 2), (1.0, 0.0, 0.0, 1.0), (0.0, 1.0, 1.0, 1.0), (0, np.nan, 0, 1)])
def test_check_bounds_rejects(bounds):
    with pytest.raises(ValueError):
        geometry.check_bounds(bounds)


def test_transform_from_bounds_rejects_empty_grid():
    with pytest.raises(ValueError):
        geometry.transform_from_bounds((0, 1, 0, 1), nrows=0, ncols=3)


def test_conversions_raise_no_affine_warnings():
    a = Affine(30.0, 0.0, 500000.0, 0.0, -30.0, 4000000.0)
    rows, cols = np.indices((3, 4))
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        xs, ys = geometry.pixel_to_geo(a, rows, cols)
        r2, c2 = geometry.geo_to_pixel(a, xs, ys)
        geometry.bounds_from_transform(a, 3, 4)
    assert np.array_equal(r2, rows)
    assert np.array_equal(c2, cols)
