# -*- coding: utf-8 -*-
"""Bound and linear constraints handling.

The closed constraints set ``Omega = {x: lb <= x <= ub, l <= A x <= u}``
is known in advance. Points outside of `Omega` are never evaluated. Near
the boundary of `Omega`, generators of the tangent cone of the
epsilon-active constraints are added to the poll directions.

>>> import numpy as np
>>> from mads.constraints_handler import Omega
>>> omega = Omega(2, bounds=[0, 1], A=[[1, 1]], l=[-np.inf], u=[1.5])
>>> assert omega.contains([0.5, 0.5]) and not omega.contains([1, 1])
>>> assert not omega.contains([-0.1, 0])
>>> D = omega.tangent_cone_generators([0, 0.5], tol_bind=0.05)
>>> assert all(omega.contains([0, 0.5] + 0.1 * d) for d in D)

"""
import itertools
import numpy as np
from .utilities.utils import rglen, is_

degeneracy_schemes = ('sequential', 'random', 'closest', 'full')

def bounds_to_arrays(bounds, dimension):
    """return lower and upper bounds as two arrays of length `dimension`.

    `bounds` can be `None` or ``[lb, ub]`` where ``lb`` and ``ub`` are
    either `None` or a scalar or a vector (which can have `None` entries).
    The last entry of a vector is recycled to fill up the dimension.

    >>> from mads.constraints_handler import bounds_to_arrays
    >>> lb, ub = bounds_to_arrays([0, [1, None]], 3)
    >>> assert list(lb) == [0, 0, 0] and list(ub) == [1, float('inf'), float('inf')]

    """
    res = [np.array(dimension * [-np.inf]), np.array(dimension * [np.inf])]
    if bounds in [None, (), []]:
        return res
    if not isinstance(bounds, (tuple, list)) or len(bounds) != 2:
        raise ValueError(
            "bounds must be None, empty, or a list of length 2"
            " where each element may be a scalar, list, array,"
            " or None; type(bounds) was: %s" % str(type(bounds)))
    for ib in [0, 1]:
        b = bounds[ib]
        if b is None:
            continue
        if np.isscalar(b):
            b = [b]
        if len(b) > dimension:
            raise ValueError("bounds have length %d > dimension %d"
                             % (len(b), dimension))
        sign_ = 2 * ib - 1
        for i in range(dimension):
            bi = b[min([i, len(b) - 1])]
            res[ib][i] = sign_ * np.inf if bi is None else bi
        if np.any(res[ib] == -sign_ * np.inf):
            raise ValueError('lower/upper is +inf/-inf and ' +
                             'therefore no finite feasible solution is available')
    if np.any(res[0] > res[1]):
        raise ValueError("inconsistent bounds: lower bound > upper bound in"
                         " coordinates %s" % str(list(np.nonzero(res[0] > res[1])[0])))
    return res

def remove_redundant_rows(A, l, u):
    """return ``A, l, u`` without zero rows and with parallel rows merged.

    Rows are normalized to unit length. A row which is a positive or
    negative multiple of a previous row merges its bounds into the
    previous row. An infeasible zero row raises `ValueError`.

    >>> from mads.constraints_handler import remove_redundant_rows
    >>> A, l, u = remove_redundant_rows([[1, 0], [0, 0], [-2, 0], [0, 1]],
    ...                                 [0, -1, -4, 1], [3, 1, 2, 2])
    >>> assert A.shape == (2, 2) and list(l) == [0, 1] and list(u) == [2, 2]

    """
    A = np.array(A, dtype=float)
    A = A.reshape(len(l), -1) if len(l) else A.reshape(0, A.shape[-1] if A.ndim == 2 else 0)
    l, u = np.array(l, dtype=float), np.array(u, dtype=float)
    rows, lows, ups = [], [], []
    for i in rglen(A):
        norm = np.sqrt(np.sum(A[i]**2))
        if norm == 0:
            if l[i] > 0 or u[i] < 0:
                raise ValueError("linear constraint %d, %s <= 0 <= %s, is"
                                 " infeasible" % (i, str(l[i]), str(u[i])))
            continue
        a, li, ui = A[i] / norm, l[i] / norm, u[i] / norm
        for k, r in enumerate(rows):
            if np.allclose(a, r, rtol=0, atol=1e-12):
                lows[k], ups[k] = max(lows[k], li), min(ups[k], ui)
                break
            if np.allclose(a, -r, rtol=0, atol=1e-12):
                lows[k], ups[k] = max(lows[k], -ui), min(ups[k], -li)
                break
        else:
            rows.append(a)
            lows.append(li)
            ups.append(ui)
    if not rows:
        return np.zeros((0, A.shape[1])), np.zeros(0), np.zeros(0)
    return np.array(rows), np.array(lows), np.array(ups)

def null_space(M, rcond=1e-10):
    """return an orthonormal basis of the null space of `M` as columns"""
    M = np.atleast_2d(M)
    if M.size == 0:
        return np.eye(M.shape[1])
    _, s, Vt = np.linalg.svd(M)
    rank = int(np.sum(s > rcond * max(M.shape) * (s[0] if len(s) else 0)))
    return Vt[rank:].T

class Omega(object):
    """the closed constraints set ``{x: lb <= x <= ub, l <= A x <= u}``.

    Bounds are kept as vectors `lb` and `ub` and also as identity rows of
    the combined matrix `A` used to compute tangent cones.
    """
    def __init__(self, dimension, bounds=None, A=None, l=None, u=None,
                 remove_redundancy=True):
        self.dimension = dimension
        self.lb, self.ub = bounds_to_arrays(bounds, dimension)
        if A is None or not is_(A):
            A, l, u = np.zeros((0, dimension)), np.zeros(0), np.zeros(0)
        A = np.atleast_2d(np.array(A, dtype=float))
        if A.shape[1] != dimension:
            raise ValueError("linear constraints matrix must have %d columns"
                             " but has shape %s" % (dimension, str(A.shape)))
        m = len(A)
        l = -np.inf * np.ones(m) if l is None else np.array(l, dtype=float).ravel()
        u = np.inf * np.ones(m) if u is None else np.array(u, dtype=float).ravel()
        if len(l) != m or len(u) != m:
            raise ValueError("linear constraint bounds must have length %d"
                             " but have lengths %d and %d" % (m, len(l), len(u)))
        if np.any(l > u):
            raise ValueError("inconsistent linear constraints: l > u in rows %s"
                             % str(list(np.nonzero(l > u)[0])))
        self.A_linear, self.l_linear, self.u_linear = A, l, u
        bounded = np.nonzero(np.isfinite(self.lb) | np.isfinite(self.ub))[0]
        A = np.vstack([np.eye(dimension)[bounded], A])
        l = np.hstack([self.lb[bounded], l])
        u = np.hstack([self.ub[bounded], u])
        if remove_redundancy:
            A, l, u = remove_redundant_rows(A, l, u)
        elif len(A):
            norms = np.sqrt(np.sum(A**2, axis=1))
            if np.any(norms == 0):
                raise ValueError("linear constraints matrix has zero rows %s,"
                                 " use remove_redundancy"
                                 % str(list(np.nonzero(norms == 0)[0])))
            A, l, u = A / norms[:, None], l / norms, u / norms
        self.A, self.l, self.u = A, l, u

    @property
    def has_constraints(self):
        return len(self.A) > 0

    def has_finite_bounds(self):
        """return `True` if all variables have finite lower and upper bounds"""
        return bool(np.all(np.isfinite(self.lb)) and np.all(np.isfinite(self.ub)))

    def contains(self, x, tol=1e-12):
        """return `True` if `x` is in `Omega` (with tolerance `tol`)"""
        x = np.asarray(x, dtype=float)
        if not self.has_constraints:
            return True
        Ax = self.A.dot(x)
        scale = tol * np.maximum(1, np.abs(Ax))
        return bool(np.all(Ax >= self.l - scale) and np.all(Ax <= self.u + scale))

    def active(self, x, tol_bind):
        """return outward normals (rows) and distances of the constraints
        within distance `tol_bind` of `x`.
        """
        if not self.has_constraints:
            return np.zeros((0, self.dimension)), np.zeros(0)
        Ax = self.A.dot(np.asarray(x, dtype=float))
        dl, du = Ax - self.l, self.u - Ax  # rows are normalized, so these are distances
        normals, dist = [], []
        for i in rglen(self.A):
            if dl[i] <= tol_bind:
                normals.append(-self.A[i])
                dist.append(dl[i])
            if du[i] <= tol_bind:
                normals.append(self.A[i])
                dist.append(du[i])
        if not normals:
            return np.zeros((0, self.dimension)), np.zeros(0)
        return np.array(normals), np.array(dist)

    def tangent_cone_generators(self, x, tol_bind, scheme='sequential',
                                rng=None):
        """return directions (rows) generating the tangent cone of the
        `tol_bind`-active constraints at `x`, each scaled to inf-norm one.

        The generators of the cone ``{d: W d <= 0}`` for active outward
        normals `W` (rows) with full row rank are the columns of ``+-N``
        and ``-W^T (W W^T)^-1``, where `N` is a null space basis of `W`.
        A rank deficient active set is reduced to a full rank subset with
        `scheme`, which is one of `degeneracy_schemes`, ``'full'`` unites
        the generators of all maximal full rank subsets.

        Three active constraints in 2-D, ``x[0] + x[1] >= 0.04`` is the
        closest one:

        >>> import numpy as np
        >>> from mads.constraints_handler import Omega
        >>> omega = Omega(2, bounds=[0, None], A=[[1, 1]], l=[0.04], u=[np.inf])
        >>> def generators(scheme):
        ...     D = omega.tangent_cone_generators([0.02, 0.025], 0.05, scheme,
        ...                                       np.random.default_rng(1))
        ...     return sorted(tuple(d) for d in np.round(D, 9))
        >>> assert generators('sequential') == [(0, 1), (1, 0)]
        >>> assert generators('closest') == [(0, 1), (1, -1)]
        >>> assert generators('full') == [(-1, 1), (0, 1), (1, -1), (1, 0)]
        >>> assert len(generators('random')) == 2
        >>> assert set(generators('random')) <= set(generators('full'))

        """
        W, dist = self.active(x, tol_bind)
        if not len(W):
            return np.zeros((0, self.dimension))
        if scheme not in degeneracy_schemes:
            raise ValueError("degeneracy_scheme must be in %s, was %s"
                             % (str(degeneracy_schemes), str(scheme)))
        rank = np.linalg.matrix_rank(W)
        if rank == len(W):
            subsets = [list(range(len(W)))]
        elif scheme == 'full':
            subsets = [list(c) for c in itertools.combinations(range(len(W)), rank)
                       if np.linalg.matrix_rank(W[list(c)]) == rank]
        else:
            if scheme == 'sequential':
                order = list(range(len(W)))
            elif scheme == 'random':
                rng = np.random.default_rng() if rng is None else rng
                order = list(rng.permutation(len(W)))
            else:  # 'closest'
                order = list(np.argsort(dist, kind='stable'))
            subset = []
            for i in order:
                if np.linalg.matrix_rank(W[subset + [i]]) == len(subset) + 1:
                    subset.append(i)
            subsets = [subset]
        D = []
        for subset in subsets:
            Ws = W[subset]
            N = null_space(Ws)
            B = Ws.T.dot(np.linalg.inv(Ws.dot(Ws.T)))
            for d in list(N.T) + list(-N.T) + list(-B.T):
                d = d / np.max(np.abs(d))
                if not any(np.allclose(d, e, atol=1e-12) for e in D):
                    D.append(d)
        return np.array(D).reshape(-1, self.dimension)
