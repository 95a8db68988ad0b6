"""
geometry.py

Small geometry helpers: conversions between pixel (row,col) indices and
geographic coordinates using affine transforms, plus the bounds/transform
arithmetic the grid container needs.

Public functions:
- `pixel_to_geo(transform, rows, cols, offset='center')` -> (xs, ys)
- `geo_to_pixel(transform, X, Y)` -> (rows, cols)
- `transform_from_bounds(bounds, nrows, ncols)` -> Affine
- `bounds_from_transform(transform, nrows, ncols)` -> (xmin, xmax, ymin, ymax)
- `check_bounds(bounds)` -> validated (xmin, xmax, ymin, ymax)

Bounds are always ordered ``(xmin, xmax, ymin, ymax)``.
"""
from typing import Tuple
import numpy as np
from affine import Affine

_OFFSETS = {'center': 0.5, 'ul': 0.0}


def _apply(transform, u, v) -> Tuple[np.ndarray, np.ndarray]:
    """Apply the affine coefficients to (u, v) arrays elementwise."""
    a, b, c, d, e, f = tuple(transform)[:6]
    return a * u + b * v + c, d * u + e * v + f


def pixel_to_geo(transform, rows, cols, offset: str = 'center') -> Tuple[np.ndarray, np.ndarray]:
    """Convert raster pixel indices to geographic coordinates.

    Parameters:
    - transform: affine.Affine mapping (col, row) -> (x, y).
    - rows, cols: scalars or array-like of same shape representing row,col
    - offset: 'center' for cell centers, 'ul' for upper-left corners.

    Returns: (xs, ys) numpy arrays of the same shape as input.
    """
    if offset not in _OFFSETS:
        raise ValueError(f"offset must be one of {sorted(_OFFSETS)}, got {offset!r}")
    shift = _OFFSETS[offset]
    rows_a = np.asarray(rows, dtype=float) + shift
    cols_a = np.asarray(cols, dtype=float) + shift
    if rows_a.shape != cols_a.shape:
        raise ValueError('rows and cols must have the same shape')

    # x=col, y=row
    xs, ys = _apply(transform, cols_a, rows_a)
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if xs.shape == ():
        return float(xs), float(ys)
    return xs, ys


def geo_to_pixel(transform, X, Y) -> Tuple[np.ndarray, np.ndarray]:
    """Convert geographic coordinates to the (row, col) of the containing cell.

    Points on a shared edge fall in the cell to the right / below. Indices
    are not clipped; callers check them against the grid shape.
    """
    inv = ~transform
    X_a = np.asarray(X, dtype=float)
    Y_a = np.asarray(Y, dtype=float)
    if X_a.shape != Y_a.shape:
        raise ValueError('X and Y must have the same shape')

    c, r = _apply(inv, X_a, Y_a)
    rows = np.floor(np.asarray(r, dtype=float)).astype(int)
    cols = np.floor(np.asarray(c, dtype=float)).astype(int)
    if rows.shape == ():
        return int(rows), int(cols)
    return rows, cols


def check_bounds(bounds) -> Tuple[float, float, float, float]:
    """Validate a ``(xmin, xmax, ymin, ymax)`` bounding box."""
    b = np.asarray(bounds, dtype=float).ravel()
    if b.size != 4:
        raise ValueError('Need xmin, xmax, ymin, ymax bounding coordinates')
    xmin, xmax, ymin, ymax = (float(v) for v in b)
    if not np.all(np.isfinite(b)):
        raise ValueError(f'bounds must be finite, got {tuple(b)}')
    if xmin >= xmax or ymin >= ymax:
        raise ValueError(f'bounds must satisfy xmin < xmax and ymin < ymax, got {tuple(b)}')
    return xmin, xmax, ymin, ymax


def transform_from_bounds(bounds, nrows: int, ncols: int) -> Affine:
    """North-up Affine for a grid of ``nrows`` x ``ncols`` covering ``bounds``."""
    xmin, xmax, ymin, ymax = check_bounds(bounds)
    nrows = int(nrows)
    ncols = int(ncols)
    if nrows < 1 or ncols < 1:
        raise ValueError(f'grid dimensions must be positive, got nrows={nrows}, ncols={ncols}')
    xres = (xmax - xmin) / ncols
    yres = (ymax - ymin) / nrows
    return Affine(xres, 0.0, xmin, 0.0, -yres, ymax)


def bounds_from_transform(transform, nrows: int, ncols: int) -> Tuple[float, float, float, float]:
    """Return ``(xmin, xmax, ymin, ymax)`` of a grid, any axis orientation."""
    corners_x, corners_y = _apply(transform, np.array([0.0, ncols, 0.0, ncols]),
                                  np.array([0.0, 0.0, nrows, nrows]))
    return (float(np.min(corners_x)), float(np.max(corners_x)),
            float(np.min(corners_y)), float(np.max(corners_y)))
