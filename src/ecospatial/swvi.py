"""Senescence weighted vegetation index.

MSAVI (the inductive MSAVI2 of Qi et al. 1994) or MTVI2 (Haboudane et al.
2004), weighted by the normalized difference senescent vegetation index
(NDSVI, Qi et al. 2000) to correct for bias from senescent vegetation:

1. derive NDSVI from NIR and SWIR;
2. keep only NDSVI values at or above the senescence cut-off;
3. turn the remaining values into inverted weights, -(NDSVI / sum(NDSVI));
4. multiply MSAVI or MTVI2 by those weights where they exist.

Bands are reflectances, passed as `Grid`s or 2-D arrays.
"""
from typing import Optional, Union
import logging

import numpy as np

from ecospatial.config import SWVI_DEFAULTS
from ecospatial.grid import Grid
from ecospatial.utils import as_float_array, check_same_shape

logger = logging.getLogger(__name__)

Band = Union[Grid, np.ndarray]


def msavi(nir, red):
    """Modified soil-adjusted vegetation index (MSAVI2)."""
    nir = np.asarray(nir, dtype=float)
    red = np.asarray(red, dtype=float)
    return (2 * nir + 1 - np.sqrt((2 * nir + 1) ** 2 - 8 * (nir - red))) / 2


def mtvi2(nir, red, green):
    """Modified triangular vegetation index 2."""
    nir = np.asarray(nir, dtype=float)
    red = np.asarray(red, dtype=float)
    green = np.asarray(green, dtype=float)
    num = 1.5 * (1.2 * (nir - green) - 2.5 * (red - green))
    den = np.sqrt((2 * nir + 1) ** 2 - (6 * nir - 5 * np.sqrt(red)) - 0.5)
    return num / den


def ndsvi(nir, swir):
    """Normalized difference senescent vegetation index."""
    nir = np.asarray(nir, dtype=float)
    swir = np.asarray(swir, dtype=float)
    return (swir - nir) / (swir + nir)


def senescence_weights(nir, swir, senescence: float = 0.0) -> np.ndarray:
    """Inverted NDSVI weights; NaN where NDSVI is below ``senescence``."""
    w = ndsvi(nir, swir)
    w = np.where(w < senescence, np.nan, w)
    total = np.nansum(w)
    if total == 0:
        logger.warning('no senescent pixels at senescence=%s; index left unweighted', senescence)
        return np.full(w.shape, np.nan)
    return (w / total) * -1


def _check_bands(red, nir, swir, green, mtvi):
    if red is None or nir is None or swir is None:
        raise ValueError('Must specify red, nir and swir bands')
    if mtvi and green is None:
        raise ValueError('Must specify green band')
    bands = {'red': red, 'nir': nir, 'swir': swir}
    if mtvi:
        bands['green'] = green

    kinds = {isinstance(b, Grid) for b in bands.values()}
    for name, b in bands.items():
        if not isinstance(b, (Grid, np.ndarray)):
            raise TypeError(f'Data must be Grid or numpy array objects, {name} is {type(b).__name__}')
    if len(kinds) > 1:
        raise TypeError('bands must all be Grids or all be arrays')

    arrays = {name: as_float_array(b, name) for name, b in bands.items()}
    check_same_shape(arrays)
    if isinstance(red, Grid):
        for name, b in bands.items():
            if not b.same_grid(red):
                raise ValueError(f'{name} band transform {tuple(b.transform)[:6]} does not match red '
                                 f'{tuple(red.transform)[:6]}')
            if b.crs != red.crs:
                raise ValueError(f'{name} band CRS {b.crs} does not match red CRS {red.crs}')
    return arrays


def swvi(red: Band, nir: Band, swir: Band, green: Optional[Band] = None, mtvi: bool = False,
         senescence: Optional[float] = None, threshold: Optional[float] = None,
         weight_factor: Optional[float] = None) -> Band:
    """Senescence weighted MSAVI or MTVI2.

    Parameters:
    - red, nir, swir: red, near-infrared and short-wave infrared 1 bands
      (Landsat 5/7 bands 3, 4, 5; OLI bands 4, 5, 6).
    - green: green band, required when ``mtvi`` is True.
    - mtvi: weight MTVI2 instead of MSAVI.
    - senescence: NDSVI cut-off for senescent vegetation; lower values get
      no weight.
    - threshold: index values at or below this become NaN.
    - weight_factor: weights are divided by this before being applied.

    Returns: weighted index, a `Grid` when the bands are Grids (carrying the
    red band's georeferencing), otherwise an array.
    """
    arrays = _check_bands(red, nir, swir, green, mtvi)
    senescence = SWVI_DEFAULTS['senescence'] if senescence is None else senescence
    threshold = SWVI_DEFAULTS['threshold'] if threshold is None else threshold
    weight_factor = SWVI_DEFAULTS['weight_factor'] if weight_factor is None else weight_factor
    if weight_factor == 0:
        raise ValueError('weight_factor must be non-zero')

    with np.errstate(invalid='ignore', divide='ignore'):
        w = senescence_weights(arrays['nir'], arrays['swir'], senescence)
        if mtvi:
            logger.debug('weighting MTVI2')
            index = mtvi2(arrays['nir'], arrays['red'], arrays['green'])
        else:
            logger.debug('weighting MSAVI')
            index = msavi(arrays['nir'], arrays['red'])

    if threshold is not None:
        index = np.where(index <= threshold, np.nan, index)
    if weight_factor is not None:
        w = w / weight_factor

    out = np.where(np.isnan(w), index, index * w)
    out = np.where(np.isnan(index), np.nan, out)

    if isinstance(red, Grid):
        return red.copy(out)
    return out
