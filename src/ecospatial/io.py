"""Raster IO helpers for ecospatial.

Thin wrappers over rasterio that move single bands between GeoTIFF files
and `Grid` objects. Nodata cells become NaN on read and are written back as
``RASTER_IO['nodata']`` unless the caller names another value.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence, Union
import logging

import numpy as np
import rasterio
from rasterio.errors import RasterioIOError

from ecospatial.config import RASTER_IO
from ecospatial.grid import Grid
from ecospatial.utils import safe_log_exception as _safe_log_exception

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_raster(path: PathLike, band: int = 1) -> Grid:
    """Read one band of a raster file into a `Grid`."""
    path = str(path)
    try:
        with rasterio.open(path) as src:
            if band < 1 or band > src.count:
                raise KeyError(f'band {band} not in {path} (bands 1..{src.count})')
            arr = src.read(band, masked=True)
            values = np.ma.filled(arr.astype(float), np.nan)
            grid = Grid(values, src.transform, src.crs)
    except RasterioIOError as e:
        _safe_log_exception('failed to read raster', e, log=logger, path=str(path), band=band)
        raise
    logger.debug('read %s band %d: shape=%s', path, band, grid.shape)
    return grid


def read_stack(paths: Union[PathLike, Sequence[PathLike]]) -> Dict[str, Grid]:
    """Read rasters into a ``name -> Grid`` mapping.

    A single multi-band file yields one entry per band, named by the band
    description when present (``band_<i>`` otherwise). A sequence of files
    yields one entry per file, named by the file stem, from band 1.
    """
    if isinstance(paths, (str, Path)):
        path = str(paths)
        with rasterio.open(path) as src:
            descriptions = src.descriptions
            count = src.count
        stack = {}
        for i in range(1, count + 1):
            name = descriptions[i - 1] or f'band_{i}'
            stack[name] = read_raster(path, band=i)
        return stack

    stack = {}
    for p in paths:
        name = Path(p).stem
        if name in stack:
            raise ValueError(f'duplicate raster name {name!r} in stack')
        stack[name] = read_raster(p)
    return stack


def write_raster(grid: Grid, path: PathLike, driver: Optional[str] = None, nodata: Optional[float] = None) -> Path:
    """Write ``grid`` as a single-band raster and return the output path."""
    path = Path(path)
    driver = driver or RASTER_IO['driver']
    nodata = RASTER_IO['nodata'] if nodata is None else float(nodata)
    values = np.where(np.isnan(grid.values), nodata, grid.values).astype(RASTER_IO['dtype'])
    profile = {
        'driver': driver,
        'width': grid.ncols,
        'height': grid.nrows,
        'count': 1,
        'dtype': RASTER_IO['dtype'],
        'crs': grid.crs.to_wkt() if grid.crs is not None else None,
        'transform': grid.transform,
        'nodata': nodata,
    }
    if driver == 'GTiff':
        profile['compress'] = RASTER_IO['compress']
    try:
        with rasterio.open(path, mode='w', **profile) as dst:
            dst.write(values, 1)
    except RasterioIOError as e:
        _safe_log_exception('failed to write raster', e, log=logger, path=str(path), driver=driver)
        raise
    logger.info('wrote %s (%d x %d)', path, grid.nrows, grid.ncols)
    return path
