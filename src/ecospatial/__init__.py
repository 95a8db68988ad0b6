"""Geospatial analysis utilities: robust-regression raster downscaling,
senescence weighted vegetation indices and spatial kernel density estimates."""

import logging

from .grid import Grid
from .io import read_raster, read_stack, write_raster
from .kde import bandwidth_nrd, kde2d, sp_kde
from .swvi import msavi, mtvi2, ndsvi, swvi
from .downscale import DownscaleResult, raster_downscale

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Grid",
    "read_raster",
    "read_stack",
    "write_raster",
    "bandwidth_nrd",
    "kde2d",
    "sp_kde",
    "msavi",
    "mtvi2",
    "ndsvi",
    "swvi",
    "DownscaleResult",
    "raster_downscale",
]
