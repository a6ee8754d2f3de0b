# -*- coding: utf-8 -*-
"""Quadratic surrogate model used as built-in predictor.

A predictor factory is a callable ``model(X, F)`` which returns a
callable ``predict(x)``. `quadratic_model` is the predictor factory of the
``'LQ'`` and ``'SPS-LQ'`` search strategies and of poll order
``'Surrogate'`` when no other predictor is given.
"""
import warnings
from collections import defaultdict
import numpy as np
from .utilities.utils import DefaultSettings

class QuadraticModelSettings(DefaultSettings):
    min_relative_size = 1.1  # earliest when to switch to next model complexity
    max_weight = 20  # min weight is one
    truncation_ratio = 1  # use only truncation_ratio best data for model building
    disallowed_types = ()

    def _checking(self):
        if not 0 < self.truncation_ratio <= 1:
            raise ValueError(
                'need: 0 < truncation_ratio <= 1, was: truncation_ratio=%f' %
                self.truncation_ratio)
        if not self.max_weight >= 1:
            raise ValueError('need: max_weight >= 1, was: max_weight=%f'
                             % self.max_weight)
        return self

class QuadraticModel(object):
    """Up to a full quadratic model using the pseudo inverse to compute
    the model coefficients.

    The model is linear with few data, then coordinate-wise quadratic
    (``2n + 1`` parameters) and finally full quadratic (``n(n+3)/2 + 1``
    parameters). Model building "works" with any number of data. Better
    data get a larger regression weight.

    >>> import numpy as np
    >>> import mads.fitness_models as fm
    >>> rng = np.random.default_rng(1)
    >>> m = fm.QuadraticModel()
    >>> for i in range(30):
    ...     x = rng.standard_normal(3)
    ...     _ = m.add_data_row(x, sum((x - 1.2)**2) + x[0] * x[1])
    >>> print(m.types)
    ['quadratic', 'full']
    >>> H = [[1, 0.5, 0], [0.5, 1, 0], [0, 0, 1]]
    >>> assert np.allclose(m.hessian, H)
    >>> assert np.allclose(m.xopt, np.linalg.solve(2 * np.asarray(H), [2.4, 2.4, 2.4]))

    A linear model before the quadratic model is build:

    >>> m = fm.QuadraticModel()
    >>> _ = m.add_data_row([1, 1, 1], 220 + 10)
    >>> _ = m.add_data_row([2, 1, 1], 220)
    >>> print(m.types)
    []
    >>> assert np.allclose(m.eval([3, 1, 1]), 210)

    """
    _complexities = [  # must be ordered by complexity here
        ['quadratic', lambda d: 2 * d + 1],
        ['full', lambda d: d * (d + 3) / 2 + 1]]
    known_types = [c[0] for c in _complexities]
    complexity = dict(_complexities)

    def __init__(self, max_weight=None, min_relative_size=None):
        """`max_weight` is the regression weight of the best data, the
        worst has weight one. The model type is increased when the number
        of data exceed ``min_relative_size`` times its number of
        parameters.
        """
        self.settings = QuadraticModelSettings(locals(), 2, self)._checking()
        self._fieldnames = ['X', 'F', 'Z', 'hashes']
        self.reset()

    def reset(self):
        for name in self._fieldnames:
            setattr(self, name, [])
        self.types = []  # ['full', 'quadratic']
        self.type_updates = defaultdict(list)  # for the record only
        self.count = 0  # number of overall data seen
        self._coefficients_count = -1
        self._xopt_count = -1

    @property
    def current_complexity(self):
        """degrees of freedom (nb of parameters) of the current model"""
        if self.types:
            return max(self.complexity[t](self.dim) for t in self.types)
        return self.dim + 1

    @property
    def size(self):
        """number of data available to build the model"""
        return len(self.X)

    @property
    def dim(self):
        return len(self.X[0]) if len(self.X) else None

    def sorted_weights(self, number=None):
        """regression weights in decreasing order"""
        return np.linspace(self.settings.max_weight, 1,
                           self.size if number is None or number > self.size
                           else number)

    def update_type(self):
        """model type/size depends on the number of observed data"""
        if not len(self.X):
            return
        n, d = len(self.X), len(self.X[0])
        for type in self.known_types[::-1]:  # most complex type first
            if (n * self.settings.truncation_ratio >= self.complexity[type](d) * self.settings.min_relative_size
                and type not in self.types
                and type not in self.settings.disallowed_types):
                self.types.append(type)
                self.reset_Z()
                self.type_updates[self.count] += [type]

    def _hash(self, x):
        return np.asarray(x, dtype=float).tobytes()

    def add_data_row(self, x, f):
        """add `x` and its value `f` to `self` if `x` is not yet in `self`"""
        hash = self._hash(x)
        if hash in self.hashes:
            warnings.warn("x value already in model, nothing added")
            return self
        if self.count and len(x) != self.dim:
            raise ValueError("x = %s must be of len %d != %d"
                             % (str(x), self.dim, len(x)))
        self.X = np.vstack([x] + ([self.X] if self.count > 0 else []))  # stack x on top
        self.Z = np.vstack([self.expand_x(x)] + ([self.Z] if self.count > 0 else []))
        self.F = np.hstack([f] + ([self.F] if self.count > 0 else []))
        self.count += 1
        self.hashes.insert(0, hash)
        self.update_type()
        return self

    def add_data(self, X, F):
        """add a sequence of x- and f-data, non-finite f-values are skipped"""
        if len(X) != len(F):
            raise ValueError("input X and F have different lengths %d!=%d" % (len(X), len(F)))
        idx = np.argsort(F)[::-1]
        for i in idx:  # insert smallest/best last
            if np.isfinite(F[i]) and self._hash(X[i]) not in self.hashes:
                self.add_data_row(X[i], F[i])
        return self

    def reset_Z(self):
        """set x-values Z attribute"""
        self.Z = np.asarray([self.expand_x(x) for x in self.X])
        self._coefficients_count = -1
        self._xopt_count = -1

    def expand_x(self, x):
        x = np.asarray(x, dtype=float)
        z = np.hstack([1, x])
        if 'quadratic' in self.types:
            z = np.hstack([z, np.square(x)])
            if 'full' in self.types:
                z = np.hstack([z, [x[i] * x[j] for i in range(len(x)) for j in range(len(x)) if i < j]])
        return z

    def weighted_array(self, Z):
        """return weighted Z, worst entries are clipped if possible.

        Z can be a vector or a matrix.
        """
        size = int(min((self.size, max((self.current_complexity + 2,
                                        self.settings.truncation_ratio * self.size)))))
        idx = np.argsort(self.F)[:size]
        return self.sorted_weights(size) * np.asarray(Z)[idx].T

    @property
    def coefficients(self):
        """model coefficients that are linear in self.expand_x(.)"""
        if self._coefficients_count < self.count:
            self._coefficients_count = self.count
            try:
                pinv = np.linalg.pinv(self.weighted_array(self.Z)).T
            except np.linalg.LinAlgError as laerror:
                warnings.warn('QuadraticModel.coefficients(d=%d,n=%d): np.linalg.pinv'
                              ' raised an exception %s' % (self.dim or -1, self.size,
                                                           str(laerror)))
                pinv = np.zeros((len(self.Z[0]), min((len(self.Z), len(self.F)))))
            self._coefficients = np.dot(pinv, self.weighted_array(self.F))
        return self._coefficients

    @property
    def hessian(self):
        """(one half of) the Hessian matrix of a quadratic model"""
        d = self.dim
        m = len(self.coefficients)
        if not self.types:
            raise ValueError("a linear model has no Hessian")
        H = np.zeros((d, d))
        k = 2 * d + 1
        for i in range(d):
            H[i, i] = self.coefficients[d + i + 1]
            if m > 2 * d + 1:
                for j in range(i + 1, d):
                    H[i, j] = H[j, i] = self.coefficients[k] / 2
                    k += 1
        return H

    @property
    def b(self):
        return self.coefficients[1:self.dim + 1]

    @property
    def xopt(self):
        """minimizer of the model, a step of length ``2 * |b|`` in the
        linear case"""
        if self._xopt_count < self.count:
            self._xopt_count = self.count
            if not self.types:  # linear case
                self._xopt = self.X[0] - 2 * self.b
            else:
                self._xopt = np.dot(np.linalg.pinv(self.hessian), self.b / -2.)
        return self._xopt

    def eval(self, x):
        """return model value of `x`"""
        if self.count <= 0:
            return 0
        if len(x) != self.dim:
            raise ValueError("x = %s must be of len %d != %d"
                             % (str(x), self.dim, len(x)))
        return float(np.dot(self.coefficients, self.expand_x(x)))

    __call__ = eval

def quadratic_model(X, F):
    """predictor factory, return `QuadraticModel` fitted to ``(X, F)``.

    >>> from mads.fitness_models import quadratic_model
    >>> predict = quadratic_model([[0, 0], [1, 0], [0, 1]], [1, 2, 3])
    >>> assert abs(predict([1, 1]) - 4) < 1e-9

    """
    return QuadraticModel().add_data(X, F)

def fit_predictor(model, points):
    """return ``model(X, F)`` of the non-failed `points` or `None` if
    there are no such points or the predictor factory raised.

    The infeasibility of a point is added to its `f`-value.

    >>> from mads.fitness_models import fit_predictor, quadratic_model
    >>> from mads.points import Point
    >>> points = [Point([0, 0], f=1), Point([1, 0], f=2), Point([0, 1], f=3),
    ...           Point([5, 5])]  # the last point failed
    >>> predict = fit_predictor(quadratic_model, points)
    >>> assert predict is not None and predict.count == 3
    >>> assert abs(predict([1, 1]) - 4) < 1e-9
    >>> assert fit_predictor(quadratic_model, points[-1:]) is None

    """
    points = [pt for pt in points if not pt.failed and np.isfinite(pt.h)]
    if not points:
        return None
    X = np.array([pt.x for pt in points])
    F = np.array([pt.f + pt.h for pt in points])
    try:
        return model(X, F)
    except Exception as e:  # user code
        warnings.warn('fitting the surrogate model failed with %s: %s'
                      % (type(e).__name__, str(e)))
        return None
