# -*- coding: utf-8 -*-
"""various math utilities, notably `normal_ppf` and `simplex_gradient`
"""
import numpy as np

def normal_ppf(p):
    """return an approximation of the inverse cdf value of a standard normal distribution,

    assuming 0 < p <= 1/2. This is the "sigma" for which the tail
    distribution has probability `p` (AKA quantile or percentile point
    function).

    For ``p=1/2`` we have ``sigma = 0``. The approximation ``0.79 + 1.49 x
    sqrt(-log(p)) + alpha x sqrt(p)``, where alpha=0.637... is such that
    p=1/2 maps to sigma=0, has a sigma error within [-0.02, 0.029] for ``p
    >= 1e-12``. The error is less than 0.0121 for all p <= 0.1.

    The input `p` may be an `np.array`.

    >>> from mads.utilities.math import normal_ppf
    >>> assert normal_ppf(0.5) == 0
    >>> assert -1.67 < normal_ppf(0.05) < -1.62  # true value is -1.645

    """
    if np.any(np.asarray(p) > 1/2) or np.any(np.asarray(p) <= 0):
        raise ValueError("0 < p <= 1/2 is required but p was {0}".format(p))
    def val(p):
        """a sigma approximation with an error in ]-0.013, 0.008[ for 1e-12 <= p <= 1e-4 where sigma < -3.5
        """
        return 0.79 - 1.49 * np.sqrt(-np.log(p))

    # correction for p > 1e-4 which is by construction exact for p = 1/2:
    fac = - val(1/2) / (1/2)**0.5  # == 0.6371122192733119
    return val(p * np.maximum(1, -np.log(p) / 29)  # increase for small p while staying below the true sigma
              ) + fac * p**0.5  # add correction for 1e-5 < p <= 1/2

def normal_quantile(q):
    """return the `q`-quantile of the standard normal distribution,

    for any ``0 < q < 1``, based on `normal_ppf` and symmetry.

    >>> import numpy as np
    >>> from mads.utilities.math import normal_quantile
    >>> assert np.isclose(normal_quantile(0.5), 0, atol=1e-12)
    >>> assert np.isclose(normal_quantile(0.95), -normal_quantile(0.05))
    >>> assert normal_quantile(0.95) > 1.6 and normal_quantile(0.05) < -1.6

    """
    if not 0 < q < 1:
        raise ValueError("0 < q < 1 is required but q was {0}".format(q))
    if q <= 1/2:
        return float(normal_ppf(q))
    return -float(normal_ppf(1 - q))

def simplex_gradient(X, F, x0=None, f0=None):
    """return the simplex gradient of the data ``(X, F)`` or `None`.

    The simplex gradient is the least squares solution ``g`` of
    ``(X - x0) g = F - f0``, where ``x0, f0`` default to the first data
    row. At least ``len(x0)`` linearly independent difference vectors
    are needed, otherwise `None` is returned.

    >>> import numpy as np
    >>> from mads.utilities.math import simplex_gradient
    >>> X = [[0, 0], [1, 0], [0, 1]]
    >>> F = [3 * x[0] - 2 * x[1] for x in X]
    >>> assert np.allclose(simplex_gradient(X, F), [3, -2])
    >>> assert simplex_gradient(X[:2], F[:2]) is None

    """
    X = np.asarray(X, dtype=float)
    F = np.asarray(F, dtype=float)
    if x0 is None:
        x0, f0, X, F = X[0], F[0], X[1:], F[1:]
    x0 = np.asarray(x0, dtype=float)
    if len(X) < len(x0):
        return None
    dX = X - x0
    dF = F - f0
    if np.linalg.matrix_rank(dX) < len(x0) or not np.all(np.isfinite(dF)):
        return None
    return np.linalg.lstsq(dX, dF, rcond=None)[0]
