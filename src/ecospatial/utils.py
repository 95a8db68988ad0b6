"""
utils.py

Small helpers shared by the analysis modules: a logging helper that never
raises, and the argument checks the public functions run before doing any
numeric work.

The public helpers:
- `safe_log_exception(msg, exc, log=None, **ctx)` : log a raster IO failure with its context
- `as_float_array(values, name)` : 2-D float view of an array or Grid values
- `check_same_shape(arrays)` : raise ValueError on mismatched band shapes
- `as_pair(value, name)` : scalar or length-2 input -> 2-tuple of floats

"""

from typing import Any, Dict, Optional, Tuple
import sys
import logging
import numpy as np

logger = logging.getLogger(__name__)


def _format_context(ctx: Dict[str, Any]) -> str:
    return ', '.join(f'{k}={v!r}' for k, v in ctx.items())


def safe_log_exception(msg: str, exc: Exception, log: Optional[logging.Logger] = None, **ctx: Any) -> None:
    """Record a failed raster read or write before the caller re-raises it.

    ``ctx`` carries what identifies the raster (``path``, ``band``,
    ``driver``) and is appended to the message. ``log`` is the calling
    module's logger; it defaults to this module's. A broken handler must not
    mask the raster error, so if logging itself raises, the same line is
    written to stderr and the caller's ``raise`` proceeds.
    """
    line = f'{msg}: {exc}'
    if ctx:
        line = f'{line} ({_format_context(ctx)})'
    try:
        (log or logger).exception(line)
    except Exception:
        try:
            sys.stderr.write(f'ecospatial: {line}\n')
        except OSError:
            pass


def as_float_array(values: Any, name: str = 'array') -> np.ndarray:
    """Return ``values`` as a 2-D float array.

    Accepts numpy arrays, nested sequences and anything with a ``values``
    attribute holding an array (a `Grid`).
    """
    if values is None:
        raise ValueError(f'{name} is required')
    arr = getattr(values, 'values', values)
    try:
        arr = np.asarray(arr, dtype=float)
    except (TypeError, ValueError) as e:
        raise TypeError(f'{name} must be numeric raster data') from e
    if arr.ndim != 2:
        raise ValueError(f'{name} must be 2-D, got {arr.ndim}-D')
    return arr


def check_same_shape(arrays: Dict[str, np.ndarray]) -> Tuple[int, int]:
    """Raise ValueError unless every array in ``arrays`` has the same shape."""
    shapes = {name: np.shape(a) for name, a in arrays.items()}
    distinct = set(shapes.values())
    if len(distinct) > 1:
        desc = ', '.join(f'{k}={v}' for k, v in shapes.items())
        raise ValueError(f'bands must share one shape: {desc}')
    return distinct.pop()


def as_pair(value: Any, name: str = 'value') -> Tuple[float, float]:
    """Recycle a scalar or length-2 input to a 2-tuple of floats."""
    arr = np.atleast_1d(np.asarray(value, dtype=float)).ravel()
    if arr.size == 1:
        return float(arr[0]), float(arr[0])
    if arr.size == 2:
        return float(arr[0]), float(arr[1])
    raise ValueError(f'{name} must be a scalar or a pair, got {arr.size} values')
