# -*- coding: utf-8 -*-

"""
ecospatial/config.py

Central defaults for the analysis functions in ecospatial. Every function
that leaves an argument at ``None`` falls back to the values held here, so
changing a default in one place changes it for the whole package.

Contents:
---------
1. KDE_DEFAULTS:
   - Grid dimensions used when only a bounding box is supplied.
   - Scale factor and the kernel sd divisor (MASS convention: sd = h / 4).

2. SWVI_DEFAULTS:
   - NDSVI senescence cut-off and optional MSAVI/MTVI2 threshold.

3. DOWNSCALE_DEFAULTS:
   - Robust regression tuning (Hampel psi breakpoints, Huber scale), the
     interval level and the IRLS iteration cap.

4. RASTER_IO:
   - GeoTIFF creation options and the nodata value written for NaN cells.

Usage:
------
    from ecospatial.config import KDE_DEFAULTS

    nrows = KDE_DEFAULTS['nrows']

"""

# ───────────────────────────────────────────────────────────────────────────────
# 1) KERNEL DENSITY ESTIMATE
# ───────────────────────────────────────────────────────────────────────────────
KDE_DEFAULTS = {
    'nrows': 10,                # rows when only bounds are supplied
    'ncols': 10,                # columns when only bounds are supplied
    'lattice_n': 25,            # points per axis for bare kde2d calls
    'scale_factor': 1.0,        # multiplier applied to the density surface
    'sd_divisor': 4.0,          # bandwidth h -> kernel sd (h / 4)
    'nrd_constant': 1.06,       # Silverman's normal reference constant
    'iqr_divisor': 1.34,        # IQR -> sd for a normal distribution
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) SENESCENCE WEIGHTED VEGETATION INDEX
# ───────────────────────────────────────────────────────────────────────────────
SWVI_DEFAULTS = {
    'senescence': 0.0,          # NDSVI values below this are not senescent
    'threshold': None,          # index values <= threshold become NaN
    'weight_factor': None,      # divide weights by this when set
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) ROBUST REGRESSION DOWNSCALING
# ───────────────────────────────────────────────────────────────────────────────
DOWNSCALE_DEFAULTS = {
    # Hampel psi breakpoints (same as MASS::psi.hampel)
    'hampel_a': 2.0,
    'hampel_b': 4.0,
    'hampel_c': 8.0,
    'maxiter': 50,              # IRLS iterations
    'tol': 1e-8,                # IRLS convergence tolerance
    'alpha': 0.05,              # 1 - alpha intervals
    'uncertainty': 'none',      # one of UNCERTAINTY_TYPES
}

UNCERTAINTY_TYPES = ('none', 'prediction', 'confidence')

# ───────────────────────────────────────────────────────────────────────────────
# 4) RASTER IO
# ───────────────────────────────────────────────────────────────────────────────
RASTER_IO = {
    'driver': 'GTiff',
    'dtype': 'float64',
    'nodata': -9999.0,
    'compress': 'lzw',
}
