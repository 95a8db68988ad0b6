"""
downscale.py

Downscale a coarse-resolution raster with fine-resolution covariates using
robust regression.

The coarse response is sampled at coarse cell centers, the covariates are
read from the fine cells containing those centers, and a robust linear
model (`statsmodels` RLM, Hampel psi with Huber's proposal 2 scale) is fit
to the pairs. With ``full_res`` the response is instead resampled
bilinearly onto the covariate grid and the model is fit on every fine cell
with a response and covariates. The model is then evaluated on every fine
cell. Optional outputs: coarse residuals, the standard error of the fitted
surface, and confidence or prediction bounds.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats

from ecospatial.config import DOWNSCALE_DEFAULTS, UNCERTAINTY_TYPES
from ecospatial.grid import Grid

logger = logging.getLogger(__name__)

Covariates = Union[Grid, Sequence[Grid], Mapping[str, Grid]]


@dataclass(eq=False)
class DownscaleResult:
    """Outputs of `raster_downscale`.

    ``downscale`` is on the covariates' fine grid, ``residuals`` on the
    response's coarse grid. ``uncertainty`` holds ``lower``/``upper`` grids
    when an interval type was requested.
    """
    downscale: Grid
    model: Any
    mse: float
    aic: float
    parm_ci: pd.DataFrame
    residuals: Optional[Grid] = None
    uncertainty: Optional[Dict[str, Grid]] = None
    std_error: Optional[Grid] = None


def _covariate_stack(x: Covariates) -> Dict[str, Grid]:
    if isinstance(x, Grid):
        stack = {'x': x}
    elif isinstance(x, Mapping):
        stack = dict(x)
    elif isinstance(x, (list, tuple)):
        stack = {f'x{i + 1}': g for i, g in enumerate(x)}
    else:
        raise TypeError('x must be a Grid, a sequence of Grids, or a mapping of name -> Grid')
    if not stack:
        raise ValueError('x must hold at least one covariate')
    for name, g in stack.items():
        if not isinstance(g, Grid):
            raise TypeError(f'covariate {name!r} is {type(g).__name__}, expected Grid')
        if str(name) == 'const':
            raise ValueError("covariate name 'const' is reserved for the intercept")

    first = next(iter(stack.values()))
    for name, g in stack.items():
        if not g.same_grid(first):
            raise ValueError(f'covariate {name!r} does not share the grid of the other covariates')
    return stack


def _sample_size(p, n, available: int, ncells: int) -> int:
    if p is not None:
        if not 0 < p <= 1:
            raise ValueError(f'p must be in (0, 1], got {p}')
        size = int(round(p * ncells))
    elif n is not None:
        if int(n) < 1:
            raise ValueError(f'n must be positive, got {n}')
        size = int(n)
    else:
        logger.info('no p or n given; using all %d coarse cells', available)
        return available
    if size > available:
        logger.warning('requested %d samples but only %d valid coarse cells; using all', size, available)
        return available
    return size


def _design(stack: Dict[str, Grid], xs, ys) -> pd.DataFrame:
    cols = {name: g.sample(xs, ys) for name, g in stack.items()}
    return sm.add_constant(pd.DataFrame(cols), has_constant='add')


def _gaussian_aic(resid: np.ndarray, k: int) -> float:
    n = resid.size
    loglik = 0.5 * (-n * (np.log(2 * np.pi) + 1 - np.log(n) + np.log(np.sum(resid ** 2))))
    return float(-2 * loglik + 2 * (k + 1))


def raster_downscale(x: Covariates, y: Grid, p: Optional[float] = None, n: Optional[int] = None,
                     full_res: bool = False, residuals: bool = False, se: bool = False,
                     uncertainty: Optional[str] = None, alpha: Optional[float] = None,
                     random_state=None) -> DownscaleResult:
    """Downscale ``y`` to the resolution of the covariates ``x``.

    Parameters:
    - x: fine-resolution covariate Grid(s), sharing one grid.
    - y: coarse-resolution response Grid.
    - p: fraction of coarse cells to sample for training.
    - n: number of coarse cells to sample (ignored when ``p`` is given).
    - full_res: train on the response resampled bilinearly to the covariate
      grid, every valid fine cell. ``p`` and ``n`` are ignored.
    - residuals: return observed minus fitted on the coarse grid.
    - se: return the standard error of the fitted surface.
    - uncertainty: 'none', 'prediction' or 'confidence' bounds.
    - alpha: interval level is ``1 - alpha``.
    - random_state: seed or numpy Generator for the training sample.
    """
    if not isinstance(y, Grid):
        raise TypeError(f'y must be a Grid, got {type(y).__name__}')
    uncertainty = DOWNSCALE_DEFAULTS['uncertainty'] if uncertainty is None else uncertainty
    if uncertainty not in UNCERTAINTY_TYPES:
        raise ValueError(f'uncertainty must be one of {UNCERTAINTY_TYPES}, got {uncertainty!r}')
    alpha = DOWNSCALE_DEFAULTS['alpha'] if alpha is None else float(alpha)
    if not 0 < alpha < 1:
        raise ValueError(f'alpha must be in (0, 1), got {alpha}')

    stack = _covariate_stack(x)
    fine = next(iter(stack.values()))

    # coarse design at coarse cell centers, used for sampling and residuals
    cx, cy = y.coords()
    X_coarse = _design(stack, cx.ravel(), cy.ravel())
    y_all = y.values.ravel()
    valid = np.isfinite(y_all) & np.all(np.isfinite(X_coarse.to_numpy()), axis=1)

    X_fine = np.column_stack([np.ones(fine.values.size)] + [g.values.ravel() for g in stack.values()])
    ok = np.all(np.isfinite(X_fine), axis=1)

    if full_res:
        # response resampled onto the covariate grid, every valid fine cell
        if p is not None or n is not None:
            logger.info('full_res set; ignoring p=%s and n=%s', p, n)
        y_train = y.resample_to(fine, method='bilinear').values.ravel()
        idx = np.flatnonzero(ok & np.isfinite(y_train))
        exog = pd.DataFrame(X_fine[idx], columns=X_coarse.columns)
        unit = 'fine'
    else:
        y_train = y_all
        idx = np.flatnonzero(valid)
        if idx.size:
            size = _sample_size(p, n, idx.size, y_all.size)
            if size < idx.size:
                rng = np.random.default_rng(random_state)
                idx = np.sort(rng.choice(idx, size=size, replace=False))
        exog = X_coarse.iloc[idx].reset_index(drop=True)
        unit = 'coarse'
    if idx.size == 0:
        raise ValueError(f'no {unit} cells with both a response and covariate values')

    k = X_coarse.shape[1]
    if idx.size <= k:
        raise ValueError(f'need more than {k} training cells for {k} parameters, got {idx.size}')
    logger.info('fitting robust regression on %d %s cells with %d covariates', idx.size, unit, k - 1)

    norm = sm.robust.norms.Hampel(a=DOWNSCALE_DEFAULTS['hampel_a'],
                                  b=DOWNSCALE_DEFAULTS['hampel_b'],
                                  c=DOWNSCALE_DEFAULTS['hampel_c'])
    endog = pd.Series(y_train[idx], name='y')
    model = sm.RLM(endog, exog, M=norm).fit(scale_est=sm.robust.scale.HuberScale(),
                                             maxiter=DOWNSCALE_DEFAULTS['maxiter'],
                                             tol=DOWNSCALE_DEFAULTS['tol'])

    resid = np.asarray(model.resid, dtype=float)
    mse = float(np.mean(resid ** 2))
    aic = _gaussian_aic(resid, k)
    parm_ci = model.conf_int(alpha=alpha)
    parm_ci.columns = ['lower', 'upper']
    logger.debug('coefficients: %s', dict(model.params))

    # prediction on the fine grid
    params = np.asarray(model.params, dtype=float)
    pred = np.full(fine.values.size, np.nan)
    pred[ok] = X_fine[ok] @ params
    downscaled = fine.copy(pred.reshape(fine.shape))

    result = DownscaleResult(downscale=downscaled, model=model, mse=mse, aic=aic, parm_ci=parm_ci)

    if residuals:
        res_all = np.full(y_all.size, np.nan)
        res_all[valid] = y_all[valid] - X_coarse.to_numpy()[valid] @ params
        result.residuals = y.copy(res_all.reshape(y.shape))

    if se or uncertainty != 'none':
        cov = np.asarray(model.cov_params(), dtype=float)
        se_fit = np.full(fine.values.size, np.nan)
        Xo = X_fine[ok]
        se_fit[ok] = np.sqrt(np.einsum('ij,jk,ik->i', Xo, cov, Xo))
        if se:
            result.std_error = fine.copy(se_fit.reshape(fine.shape))
        if uncertainty != 'none':
            tq = stats.t.ppf(1 - alpha / 2, model.df_resid)
            spread = se_fit
            if uncertainty == 'prediction':
                spread = np.sqrt(se_fit ** 2 + model.scale ** 2)
            result.uncertainty = {
                'lower': fine.copy((pred - tq * spread).reshape(fine.shape)),
                'upper': fine.copy((pred + tq * spread).reshape(fine.shape)),
            }
    return result
