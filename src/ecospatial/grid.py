"""Grid value type.

A `Grid` is a 2-D float array together with the affine transform and CRS
that georeference it. It is the common currency of the analysis functions:
they take grids in and hand grids back. Missing cells are NaN in memory;
``nodata`` only matters when reading or writing files.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple
import logging

import numpy as np
from affine import Affine
from pyproj import CRS
from rasterio.enums import Resampling
from rasterio.warp import reproject

from ecospatial.geometry import (
    bounds_from_transform,
    geo_to_pixel,
    pixel_to_geo,
    transform_from_bounds,
)

logger = logging.getLogger(__name__)


def _to_crs(crs: Any) -> Optional[CRS]:
    if crs is None:
        return None
    if isinstance(crs, CRS):
        return crs
    # rasterio CRS objects expose to_wkt()
    if hasattr(crs, 'to_wkt'):
        return CRS.from_wkt(crs.to_wkt())
    return CRS.from_user_input(crs)


@dataclass(eq=False)
class Grid:
    """Georeferenced 2-D raster band.

    ``transform`` maps (col, row) to (x, y) of the cell's upper-left corner.
    """
    values: np.ndarray
    transform: Affine = field(default_factory=Affine.identity)
    crs: Any = None
    nodata: Optional[float] = None

    def __post_init__(self):
        arr = np.array(self.values, dtype=float)
        if arr.ndim != 2:
            raise ValueError(f'Grid values must be 2-D, got {arr.ndim}-D')
        if self.nodata is not None and not np.isnan(self.nodata):
            arr[arr == self.nodata] = np.nan
        self.values = arr
        if not isinstance(self.transform, Affine):
            self.transform = Affine(*tuple(self.transform)[:6])
        self.crs = _to_crs(self.crs)

    @classmethod
    def from_bounds(cls, bounds, nrows: int, ncols: int, fill: float = np.nan, crs: Any = None) -> 'Grid':
        """Build a north-up grid over ``(xmin, xmax, ymin, ymax)`` filled with ``fill``."""
        transform = transform_from_bounds(bounds, nrows, ncols)
        values = np.full((int(nrows), int(ncols)), fill, dtype=float)
        return cls(values, transform, crs)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def nrows(self) -> int:
        return self.values.shape[0]

    @property
    def ncols(self) -> int:
        return self.values.shape[1]

    @property
    def res(self) -> Tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return bounds_from_transform(self.transform, self.nrows, self.ncols)

    def cell_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """Center x of each column and center y of each row (north-up grids)."""
        xs, _ = pixel_to_geo(self.transform, np.zeros(self.ncols), np.arange(self.ncols))
        _, ys = pixel_to_geo(self.transform, np.arange(self.nrows), np.zeros(self.nrows))
        return np.asarray(xs), np.asarray(ys)

    def coords(self) -> Tuple[np.ndarray, np.ndarray]:
        """2-D arrays of cell-center x and y, shaped like ``values``."""
        rows, cols = np.indices(self.shape)
        return pixel_to_geo(self.transform, rows, cols)

    def contains(self, rows, cols) -> np.ndarray:
        rows = np.asarray(rows)
        cols = np.asarray(cols)
        return (rows >= 0) & (rows < self.nrows) & (cols >= 0) & (cols < self.ncols)

    def sample(self, x, y) -> np.ndarray:
        """Value of the cell containing each (x, y); NaN outside the grid."""
        rows, cols = geo_to_pixel(self.transform, np.atleast_1d(x), np.atleast_1d(y))
        inside = self.contains(rows, cols)
        out = np.full(rows.shape, np.nan, dtype=float)
        out[inside] = self.values[rows[inside], cols[inside]]
        return out

    def copy(self, values: Optional[np.ndarray] = None) -> 'Grid':
        """Copy sharing georeferencing, optionally with new ``values``."""
        vals = self.values.copy() if values is None else np.asarray(values, dtype=float)
        if vals.shape != self.shape:
            raise ValueError(f'values shape {vals.shape} does not match grid shape {self.shape}')
        return Grid(vals, self.transform, self.crs)

    def same_grid(self, other: 'Grid') -> bool:
        return self.shape == other.shape and np.allclose(tuple(self.transform)[:6], tuple(other.transform)[:6])

    def mask(self, other: 'Grid') -> 'Grid':
        """Copy with NaN wherever ``other`` is NaN."""
        other_vals = getattr(other, 'values', other)
        other_vals = np.asarray(other_vals, dtype=float)
        if other_vals.shape != self.shape:
            raise ValueError(f'mask shape {other_vals.shape} does not match grid shape {self.shape}')
        vals = self.values.copy()
        vals[np.isnan(other_vals)] = np.nan
        return self.copy(vals)

    def resample_to(self, other: 'Grid', method: str = 'bilinear') -> 'Grid':
        """Resample (and reproject when CRSs differ) onto ``other``'s grid."""
        try:
            resampling = Resampling[method]
        except KeyError as e:
            raise ValueError(f'unknown resampling method {method!r}') from e
        src_crs = self.crs if self.crs is not None else other.crs
        dst_crs = other.crs if other.crs is not None else src_crs
        out_crs = dst_crs
        if src_crs is None:
            # neither grid is referenced; any projected CRS gives an identity warp
            src_crs = dst_crs = CRS.from_epsg(3857)
        dest = np.full(other.shape, np.nan, dtype=float)
        logger.debug('resampling %s grid onto %s grid with %s', self.shape, other.shape, method)
        reproject(
            source=self.values,
            destination=dest,
            src_transform=self.transform,
            src_crs=src_crs.to_wkt(),
            src_nodata=np.nan,
            dst_transform=other.transform,
            dst_crs=dst_crs.to_wkt(),
            dst_nodata=np.nan,
            resampling=resampling,
        )
        return Grid(dest, other.transform, out_crs)
