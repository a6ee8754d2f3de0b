# -*- coding: utf-8 -*-
"""The evaluated `Point` and the aggregation of constraint values into a
single infeasibility measure ``h``.

A `Point` is created only by an evaluation and is immutable afterwards:

>>> import numpy as np
>>> from mads.points import Point
>>> pt = Point([1, 2], f=3.5, c=[-1, 0.5], origin='poll', iteration=2)
>>> assert pt.h == 0.25 and not pt.is_feasible()
>>> assert pt.is_feasible(hmin=0.3)
>>> try:
...     pt.f = 0
... except AttributeError:
...     pass
... else:
...     raise AssertionError('Point attribute assignment must fail')
>>> try:
...     pt.x[0] = 0
... except ValueError:
...     pass
... else:
...     raise AssertionError('Point.x must be read-only')

"""
import numpy as np

origins = ('seed', 'search', 'poll', 'extended poll', 'neighbor')
"""provenance tags of a `Point`"""

def _g_pos_squared_sum(gvals):
    return sum(gi**2 for gi in gvals if gi > 0)

def infeasibility(c):
    """return the aggregate infeasibility ``h`` of the constraints values `c`.

    ``h`` is the sum of squared positive constraint values, `c` is
    feasible iff ``c <= 0`` component-wise and then ``h == 0``. Any
    non-finite value gives ``h == inf``.

    >>> from mads.points import infeasibility
    >>> assert infeasibility([]) == 0 == infeasibility([-1, 0])
    >>> assert infeasibility([2, -3, 1]) == 5
    >>> assert infeasibility([float('nan')]) == float('inf')

    """
    c = np.asarray(c, dtype=float).ravel()
    if not np.all(np.isfinite(c)):
        return np.inf
    return float(_g_pos_squared_sum(c))

def as_discrete(p):
    """return `p` as hashable `tuple`, ``()`` for `None`"""
    if p is None:
        return ()
    if np.isscalar(p) or isinstance(p, str):
        return (p,)
    return tuple(p)

class Point(object):
    """an evaluated candidate solution, immutable after creation.

    Attributes: continuous variables `x` (read-only `np.ndarray`),
    discrete variables `p` (a `tuple`), objective value `f` (`np.nan`
    when the evaluation failed), constraints values `c`, infeasibility
    `h` (``inf`` on failure), provenance tag `origin`, `iteration` and
    `evaluation` counters at birth and the number of `samples` that went
    into `f`.
    """
    __slots__ = ('x', 'p', 'f', 'c', 'h', 'origin', 'iteration',
                 'evaluation', 'samples')

    def __init__(self, x, p=(), f=np.nan, c=(), h=None, origin='seed',
                 iteration=0, evaluation=0, samples=1):
        if origin not in origins:
            raise ValueError("origin must be in %s, was %s"
                             % (str(origins), str(origin)))
        x = np.array(x, dtype=float)
        x.flags.writeable = False
        c = np.array(c, dtype=float).ravel()
        c.flags.writeable = False
        f = float(f) if f is not None else np.nan
        if h is None:
            h = infeasibility(c)
        if not np.isfinite(f):
            f, h = np.nan, np.inf
        for name, value in zip(self.__slots__,
                               (x, as_discrete(p), f, c, float(h), origin,
                                iteration, evaluation, samples)):
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError("Point is immutable, cannot set %s" % name)

    def __delattr__(self, name):
        raise AttributeError("Point is immutable, cannot delete %s" % name)

    def __getstate__(self):
        return dict((k, getattr(self, k)) for k in self.__slots__)

    def __setstate__(self, state):
        for k in self.__slots__:
            v = state[k]
            if isinstance(v, np.ndarray):
                v = np.array(v)
                v.flags.writeable = False
            object.__setattr__(self, k, v)

    def __repr__(self):
        return ('Point(x=%s, p=%s, f=%s, h=%s, origin=%r)'
                % (np.array2string(self.x, precision=6), str(self.p),
                   repr(self.f), repr(self.h), self.origin))

    @property
    def failed(self):
        """`True` if the evaluation failed"""
        return not np.isfinite(self.f)

    def is_feasible(self, hmin=0):
        """return `True` if ``h <= hmin``"""
        return self.h <= hmin

    def replace(self, **kwargs):
        """return a new `Point` with attributes in `kwargs` replaced.

        `h` is recomputed from `c` unless either of them is given.
        """
        state = self.__getstate__()
        if 'c' in kwargs and 'h' not in kwargs:
            state['h'] = None
        state.update(kwargs)
        return Point(**state)

    def improves(self, other, hmin=0):
        """return `True` if `self` strictly improves the criterion of `other`,
        that is, `f` when both are feasible and `h` otherwise.

        A feasible point always improves an infeasible point.

        >>> from mads.points import Point
        >>> a, b = Point([0], f=1), Point([1], f=2)
        >>> assert a.improves(b) and not b.improves(a) and not a.improves(a)
        >>> c = Point([2], f=0, c=[1])
        >>> assert a.improves(c) and not c.improves(a)

        """
        if other is None:
            return not self.failed
        if self.failed:
            return False
        if other.is_feasible(hmin):
            return self.is_feasible(hmin) and self.f < other.f
        if self.is_feasible(hmin):
            return True
        return self.h < other.h
