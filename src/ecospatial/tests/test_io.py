import logging

import numpy as np
import pytest
import rasterio
from rasterio.errors import RasterioIOError
from rasterio.transform import from_origin

from ecospatial.grid import Grid
from ecospatial.io import read_raster, read_stack, write_raster
from ecospatial.tests.fixtures.raster_fixture import create_band_raster


def test_read_raster_nodata_to_nan(tmp_path):
    vals = np.array([[1.0, np.nan], [3.0, 4.0]])
    path = create_band_raster(tmp_path / 'band.tif', vals)
    g = read_raster(path)
    assert g.shape == (2, 2)
    assert np.isnan(g.values[0, 1])
    assert g.values[1, 0] == 3.0
    assert g.crs.to_epsg() == 32613
    assert g.res == (30.0, 30.0)


def test_read_raster_bad_band(tmp_path):
    path = create_band_raster(tmp_path / 'band.tif', np.ones((2, 2)))
    with pytest.raises(KeyError):
        read_raster(path, band=2)


def test_read_raster_missing_file(tmp_path, caplog):
    missing = tmp_path / 'nope.tif'
    with caplog.at_level(logging.ERROR, logger='ecospatial.io'):
        with pytest.raises(RasterioIOError):
            read_raster(missing)
    record = caplog.records[-1]
    assert record.name == 'ecospatial.io'
    assert record.getMessage().startswith('failed to read raster')
    assert f'path={str(missing)!r}, band=1' in record.getMessage()


def test_write_then_read(tmp_path):
    g = Grid.from_bounds((0.0, 30.0, 0.0, 20.0), nrows=2, ncols=3, fill=2.5, crs='EPSG:4326')
    g.values[1, 2] = np.nan
    out = write_raster(g, tmp_path / 'out.tif')
    with rasterio.open(out) as src:
        assert src.nodata == -9999.0
        raw = src.read(1)
    assert raw[1, 2] == -9999.0
    back = read_raster(out)
    assert np.isnan(back.values[1, 2])
    assert back.values[0, 0] == 2.5
    assert back.bounds == pytest.approx(g.bounds)


def test_read_stack_from_files(tmp_path):
    a = create_band_raster(tmp_path / 'elev.tif', np.ones((2, 2)))
    b = create_band_raster(tmp_path / 'slope.tif', np.zeros((2, 2)))
    stack = read_stack([a, b])
    assert list(stack) == ['elev', 'slope']
    assert stack['elev'].values.sum() == 4.0


def test_read_stack_multiband(tmp_path):
    path = tmp_path / 'multi.tif'
    with rasterio.open(path, 'w', driver='GTiff', width=2, height=2, count=2, dtype='float64',
                       crs='EPSG:32613', transform=from_origin(0, 2, 1, 1)) as dst:
        dst.write(np.ones((2, 2)), 1)
        dst.write(np.full((2, 2), 2.0), 2)
        dst.set_band_description(1, 'nir')
    stack = read_stack(path)
    assert list(stack) == ['nir', 'band_2']
    assert stack['band_2'].values[0, 0] == 2.0
