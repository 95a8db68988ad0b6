import numpy as np
import rasterio
from affine import Affine

from ecospatial.grid import Grid


def create_band_raster(path, values, transform=None, crs='EPSG:32613', nodata=-9999.0):
    """Write a single-band float GeoTIFF at `path` and return the path.

    NaN cells in `values` are written as `nodata`.
    """
    values = np.asarray(values, dtype='f8')
    transform = transform or Affine(30.0, 0.0, 500000.0, 0.0, -30.0, 4000000.0)
    out = np.where(np.isnan(values), nodata, values)
    with rasterio.open(str(path), 'w', driver='GTiff', width=values.shape[1], height=values.shape[0],
                       count=1, dtype='float64', crs=crs, transform=transform, nodata=nodata) as dst:
        dst.write(out, 1)
    return path


def make_reflectance_grids(shape=(4, 5)):
    """Synthetic Landsat-like reflectance bands over a 30 m grid.

    The left half is green vegetation (high NIR, SWIR below NIR), the right
    half senescent (SWIR above NIR).
    """
    transform = Affine(30.0, 0.0, 500000.0, 0.0, -30.0, 4000000.0)
    cols = shape[1]
    half = cols // 2
    green = np.full(shape, 0.08)
    red = np.full(shape, 0.05)
    nir = np.full(shape, 0.40)
    swir = np.full(shape, 0.20)
    red[:, half:] = 0.15
    nir[:, half:] = 0.25
    swir[:, half:] = 0.35
    crs = 'EPSG:32613'
    return {
        'green': Grid(green, transform, crs),
        'red': Grid(red, transform, crs),
        'nir': Grid(nir, transform, crs),
        'swir': Grid(swir, transform, crs),
    }


def make_downscale_pair(coarse_factor=4, coarse_shape=(8, 8), slope=2.0, intercept=5.0, noise=0.05, seed=7):
    """Fine covariates and a coarse response built from a known linear model.

    Returns (elev, aspect, coarse) where the coarse response at each
    coarse cell center equals `intercept + slope * elev + 0.5 * aspect` of
    the fine cell containing that center, plus small Gaussian noise.
    """
    rng = np.random.default_rng(seed)
    cr, cc = coarse_shape
    fr, fc = cr * coarse_factor, cc * coarse_factor
    fine_t = Affine(10.0, 0.0, 0.0, 0.0, -10.0, fr * 10.0)
    coarse_t = Affine(10.0 * coarse_factor, 0.0, 0.0, 0.0, -10.0 * coarse_factor, fr * 10.0)

    rows, cols = np.indices((fr, fc))
    elev = 100.0 + 3.0 * rows + np.sin(cols / 3.0) * 10.0
    aspect = np.cos(rows / 4.0) * 20.0 + cols
    elev_g = Grid(elev, fine_t, 'EPSG:32613')
    aspect_g = Grid(aspect, fine_t, 'EPSG:32613')

    truth = intercept + slope * elev + 0.5 * aspect
    truth_g = Grid(truth, fine_t, 'EPSG:32613')
    coarse_vals = np.zeros(coarse_shape)
    coarse = Grid(coarse_vals, coarse_t, 'EPSG:32613')
    cx, cy = coarse.coords()
    sampled = truth_g.sample(cx.ravel(), cy.ravel()).reshape(coarse_shape)
    coarse = coarse.copy(sampled + rng.normal(0.0, noise, size=coarse_shape))
    return elev_g, aspect_g, coarse
