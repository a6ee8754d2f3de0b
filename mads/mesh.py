# -*- coding: utf-8 -*-
"""Mesh size management and poll direction generation.

The mesh size `Mesh.size` changes only with `Mesh.refine` (after an
unsuccessful iteration) and `Mesh.coarsen` (after a successful
iteration):

>>> from mads.mesh import Mesh
>>> mesh = Mesh(delta0=1, refine=0.5, coarsen=2, delta_max=2, delta_min=0.1)
>>> assert mesh.coarsen().size == 2 and mesh.coarsen().size == 2
>>> assert [mesh.refine().size for i in range(6)] == [1, 0.5, 0.25, 0.125, 0.1, 0.1]

Poll directions are rows of the returned array:

>>> D = Mesh(strategy='Standard_n+1').directions(3)
>>> assert D.shape == (4, 3) and list(D[-1]) == [-1, -1, -1]

Randomized ``MADS_*`` directions are integer vectors with inf-norm
``2**l``, where ``l`` is the mesh index, and reproducible with the seed
of the random number generator:

>>> import numpy as np
>>> m1 = Mesh(strategy='MADS_2n', rng=np.random.default_rng(3)).refine().refine()
>>> m2 = Mesh(strategy='MADS_2n', rng=np.random.default_rng(3)).refine().refine()
>>> D1, D2 = m1.directions(4), m2.directions(4)
>>> assert np.all(D1 == D2) and m1.index == 2
>>> assert np.all(np.max(np.abs(D1), axis=1) == 4)
>>> assert np.linalg.matrix_rank(D1) == 4

"""
import numpy as np
from .utilities.utils import rglen

poll_strategies = ('Standard_2n', 'Standard_n+1',
                   'Custom_2n', 'Custom_n+1',
                   'MADS_2n', 'MADS_n+1',
                   'Gradient_2n', 'Gradient_n+1',
                   'Gradient_3n_L1', 'Gradient_3n_L2',
                   'Gradient_3n_LInf', 'Gradient_3n2n')

def scaling_from_bounds(lb, ub, base):
    """return coordinate-wise direction multipliers from the bounds.

    With finite bounds and ``base > 1`` the multiplier for coordinate
    ``i`` is ``base**round(log_base(ub[i] - lb[i]))``, otherwise one.

    >>> from mads.mesh import scaling_from_bounds
    >>> s = scaling_from_bounds([0, 0, 0], [8, 1, float('inf')], 2)
    >>> assert list(s) == [8, 1, 1]

    """
    lb, ub = np.asarray(lb, dtype=float), np.asarray(ub, dtype=float)
    scaling = np.ones(len(lb))
    if not base or base <= 1:
        return scaling
    idx = np.isfinite(lb) & np.isfinite(ub) & (ub > lb)
    scaling[idx] = base**np.round(np.log(ub[idx] - lb[idx]) / np.log(base))
    return scaling

def positive_basis(B, strategy):
    """return ``[B, -B]`` for ``'*_2n'`` or ``[B, -sum(B)]`` for ``'*_n+1'``,
    where `B` has the basis vectors as rows.
    """
    B = np.asarray(B)
    if strategy.endswith('_2n'):
        return np.vstack([B, -B])
    if strategy.endswith('_n+1'):
        return np.vstack([B, -np.sum(B, axis=0)])
    raise ValueError("%s is not a positive basis type" % str(strategy))

def descent_directions(g, strategy):
    """return gradient based directions from ``{-1, 0, 1}^n`` as rows.

    >>> from mads.mesh import descent_directions
    >>> g = [2, -0.5, 0]
    >>> assert descent_directions(g, 'Gradient_3n_L1').tolist() == [[-1, 0, 0]]
    >>> assert descent_directions(g, 'Gradient_3n_LInf').tolist() == [[-1, 1, 0]]
    >>> assert descent_directions(g, 'Gradient_3n_L2').tolist() == [[-1, 0, 0]]
    >>> assert len(descent_directions(g, 'Gradient_3n2n')) == 3

    """
    g = np.asarray(g, dtype=float)
    n = len(g)
    if strategy == 'Gradient_3n_L1':
        d = np.zeros(n)
        i = np.argmax(np.abs(g))
        d[i] = -np.sign(g[i])
        return d[None, :]
    if strategy == 'Gradient_3n_L2':
        return -np.round(g / np.max(np.abs(g)))[None, :]
    if strategy == 'Gradient_3n_LInf':
        return -np.sign(g)[None, :]
    if strategy == 'Gradient_3n2n':
        I = np.eye(n)
        D = [-np.sign(g[i]) * I[i] for i in rglen(g) if g[i] != 0]
        return np.vstack(D + [-np.sign(g)])
    raise ValueError("%s is not a descent direction type" % str(strategy))

class Mesh(object):
    """mesh size and poll direction generator.

    ``delta_min`` is the floor for `refine`, ``delta_max`` the cap for
    `coarsen`. With ``accelerate``, the mesh is refined with
    ``refine**2`` from the second consecutive failure on.

    For the ``Custom_*`` strategies, ``basis`` is a matrix with the
    directions as columns; a square basis is checked to be nonsingular
    and completed to a positive basis, other matrices are used as given.

    `rng` is a `numpy.random.Generator` used for ``MADS_*`` directions.
    """
    def __init__(self, delta0=1.0, refine=0.5, coarsen=1.0, delta_max=np.inf,
                 delta_min=0, strategy='Standard_2n', basis=None,
                 scaling=None, accelerate=False, rng=None):
        if not delta0 > 0:
            raise ValueError("delta0 must be > 0, was %s" % str(delta0))
        if not 0 < refine < 1:
            raise ValueError("mesh_refine must be in (0, 1), was %s" % str(refine))
        if not coarsen >= 1:
            raise ValueError("mesh_coarsen must be >= 1, was %s" % str(coarsen))
        if not delta_max >= delta0:
            raise ValueError("delta_max=%s must be >= delta0=%s"
                             % (str(delta_max), str(delta0)))
        if strategy not in poll_strategies:
            raise ValueError("poll_strategy must be in %s, was %s"
                             % (str(poll_strategies), str(strategy)))
        if strategy.startswith('Custom') and basis is None:
            raise ValueError("poll_strategy %s needs a poll_basis" % strategy)
        self.delta0 = delta0
        self.size = delta0
        self.r_refine = refine
        self.r_coarsen = coarsen
        self.delta_max = delta_max
        self.delta_min = delta_min
        self.strategy = strategy
        self.basis = None if basis is None else np.array(basis, dtype=float)
        self.scaling = scaling
        self.accelerate = accelerate
        self.rng = np.random.default_rng() if rng is None else rng
        self.consecutive_failures = 0
        self._b = {}  # mesh index -> b(l) vector and its leading index

    @property
    def index(self):
        """mesh index ``l >= 0`` with ``size ~ delta0 / 2**l``"""
        return max(0, int(np.round(-np.log2(self.size / self.delta0))))

    @property
    def step_factor(self):
        """multiplier of the (scaled) directions to get the trial steps"""
        if self.strategy.startswith('MADS'):
            return self.size / 2**self.index
        return self.size

    def refine(self):
        """decrease the mesh size after an unsuccessful iteration"""
        self.consecutive_failures += 1
        factor = self.r_refine
        if self.accelerate and self.consecutive_failures >= 2:
            factor = self.r_refine**2
        self.size = max((self.size * factor, self.delta_min))
        return self

    def coarsen(self):
        """increase the mesh size after a successful iteration"""
        self.consecutive_failures = 0
        self.size = min((self.size * self.r_coarsen, self.delta_max))
        return self

    def displacements(self, D):
        """return the trial steps for directions `D` (rows)"""
        D = np.asarray(D, dtype=float)
        if self.scaling is None:
            return self.step_factor * D
        return self.step_factor * D * self.scaling

    def directions(self, n, gradient=None):
        """return poll directions in dimension `n` as rows of an array.

        Gradient based strategies use `gradient` and fall back to the
        standard positive basis when `gradient` is `None` or zero.
        """
        s = self.strategy
        if s.startswith('Standard'):
            return positive_basis(np.eye(n), s)
        if s.startswith('Custom'):
            return self._custom_directions(n)
        if s.startswith('MADS'):
            return positive_basis(self.lt_basis(n), s)
        # gradient strategies
        if gradient is None or not np.any(gradient):
            return positive_basis(np.eye(n), 'Standard_n+1' if s.endswith('n+1')
                                  else 'Standard_2n')
        gradient = np.asarray(gradient, dtype=float)
        if s in ('Gradient_2n', 'Gradient_n+1'):
            D = positive_basis(np.eye(n), s)
            return D[D.dot(gradient) < 0]
        return descent_directions(gradient, s)

    def _custom_directions(self, n):
        B = self.basis.T  # columns to rows
        if B.shape[1] != n:
            raise ValueError("poll_basis must have %d rows, has shape %s"
                             % (n, str(self.basis.shape)))
        if len(B) == n:
            if np.linalg.matrix_rank(B) < n:
                raise ValueError("square poll_basis must be nonsingular")
            return positive_basis(B, self.strategy)
        if np.linalg.matrix_rank(B) < n:
            raise ValueError("poll_basis of shape %s does not span the space"
                             % str(self.basis.shape))
        return B

    def _b_vector(self, l, n):
        """return ``(b(l), i)``, generated only once per mesh index `l`"""
        if l in self._b and len(self._b[l][0]) == n:
            return self._b[l]
        if l in self._b or any(len(b) != n for b, _ in self._b.values()):
            self._b = {}  # dimension changed
        r = 2**l
        i = int(self.rng.integers(n))
        b = self.rng.integers(-r + 1, r, size=n, endpoint=False)
        b[i] = r * (1 if self.rng.random() < 0.5 else -1)
        self._b[l] = (b, i)
        return self._b[l]

    def lt_basis(self, n):
        """return a random LT-MADS basis as rows, inf-norm of each row is ``2**l``.

        The last column of the column basis is ``b(l)``, the other
        columns come from a lower triangular matrix with diagonal entries
        ``+-2**l`` with rows permuted to avoid the leading index of
        ``b(l)``, and finally the columns are permuted.
        """
        l = self.index
        r = 2**l
        b, i = self._b_vector(l, n)
        L = np.zeros((n - 1, n - 1), dtype=int)
        for k in range(n - 1):
            L[k, :k] = self.rng.integers(-r + 1, r, size=k)
            L[k, k] = r * (1 if self.rng.random() < 0.5 else -1)
        rows = [j for j in range(n) if j != i]
        rows = [rows[j] for j in self.rng.permutation(n - 1)]
        B = np.zeros((n, n), dtype=int)
        for k, j in enumerate(rows):
            B[j, :n - 1] = L[k]
        B[:, n - 1] = b
        B = B[:, self.rng.permutation(n)]
        return B.T
