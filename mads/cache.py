# -*- coding: utf-8 -*-
"""Cache of evaluated points.

Two requests whose continuous parts differ by less than `tol` in each
coordinate and whose discrete parts are equal resolve to the same, the
first stored, `Point`:

>>> from mads.cache import Cache
>>> from mads.points import Point
>>> cache = Cache(tol=1e-6)
>>> pt = cache.insert(Point([0, 0], f=1))
>>> assert cache.lookup([1e-7, -1e-7]) is pt
>>> assert cache.lookup([1e-5, 0]) is None
>>> assert cache.lookup([0, 0], p=('a',)) is None
>>> assert cache.insert(Point([0, 1e-7], f=2)) is pt and len(cache) == 1

`Cache.evaluate` evaluates misses only:

>>> calls = []
>>> def eval_all(X, P):
...     calls.extend(X)
...     return [(sum(x), ()) for x in X]
>>> pts = cache.evaluate([[0, 0], [1, 0], [1, 1e-8]], eval_all)
>>> assert pts[0] is pt and pts[2] is pts[1] and len(calls) == 1
>>> assert cache.evaluations == 1 and cache.hits == 2

"""
import pickle
import warnings
import numpy as np
from .points import Point, as_discrete
from .utilities import utils

class _Partition(object):
    """points with the same discrete part, `X` is a growing buffer"""
    def __init__(self, dimension):
        self.X = np.zeros((8, dimension))
        self.indices = []
    def append(self, x, index):
        if len(self.indices) >= len(self.X):
            self.X = np.vstack([self.X, np.zeros_like(self.X)])
        self.X[len(self.indices)] = x
        self.indices.append(index)
    def find(self, x, tol):
        """return first position of a stored `x` within `tol` or `None`"""
        m = len(self.indices)
        if not m or len(x) != self.X.shape[1]:
            return None
        d = np.max(np.abs(self.X[:m] - x), axis=1)
        idx = np.nonzero((d < tol) | (d == 0))[0]
        return self.indices[idx[0]] if len(idx) else None

class Cache(object):
    """store of all evaluated points, deduplicated with tolerance `tol`.

    Attributes `evaluations` and `hits` count the real evaluations done by
    `evaluate` and the requests which were resolved from the cache.
    ``count_cache=True`` signals that hits are charged to the evaluation
    budget, see `charged_evaluations`.
    """
    def __init__(self, tol=1e-4, count_cache=True):
        if tol < 0:
            raise ValueError("cache tolerance must be >= 0, was %s" % str(tol))
        self.tol = tol
        self.count_cache = count_cache
        self.points = []
        """all stored points in insertion order"""
        self._partitions = {}
        self._exact = {}
        self.evaluations = 0
        self.hits = 0

    def __len__(self):
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def charged_evaluations(self):
        """number of evaluations charged to the budget"""
        return self.evaluations + (self.hits if self.count_cache else 0)

    def lookup(self, x, p=()):
        """return the stored `Point` within tolerance of ``(x, p)`` or `None`"""
        p = as_discrete(p)
        x = np.asarray(x, dtype=float)
        idx = self._exact.get((x.tobytes(), p))
        if idx is not None:
            return self.points[idx]
        if p not in self._partitions:
            return None
        idx = self._partitions[p].find(x, self.tol)
        return None if idx is None else self.points[idx]

    def insert(self, point):
        """insert `point` unless an entry within tolerance exists.

        Return the stored entry, that is, `point` or the previously stored
        point.
        """
        existing = self.lookup(point.x, point.p)
        if existing is not None:
            return existing
        index = len(self.points)
        self.points.append(point)
        self._exact[(point.x.tobytes(), point.p)] = index
        if point.p not in self._partitions:
            self._partitions[point.p] = _Partition(len(point.x))
        self._partitions[point.p].append(point.x, index)
        return point

    def evaluate(self, X, eval_all, P=None, **point_kwargs):
        """return a `list` of `Point` for all `x` in `X`, in this order.

        Cache misses are evaluated in a single batch call ``eval_all(X_miss,
        P_miss)`` which returns a list of ``(f, c)``. Requests within
        tolerance of an earlier request of the same batch are hits.
        `point_kwargs` are passed to `Point`, e.g. `origin` and `iteration`.
        """
        if P is None:
            P = len(X) * [()]
        P = [as_discrete(p) for p in P]
        X = [np.asarray(x, dtype=float) for x in X]
        found = [self.lookup(x, p) for x, p in zip(X, P)]
        batch = []  # indices to be evaluated
        refs = {}  # index -> index in batch of an equivalent request
        for i, pt in enumerate(found):
            if pt is not None:
                continue
            for j in batch:
                if P[j] == P[i] and len(X[j]) == len(X[i]) and (
                        np.max(np.abs(X[j] - X[i])) < self.tol or
                        np.all(X[j] == X[i])):
                    refs[i] = j
                    break
            else:
                batch.append(i)
        self.hits += len(X) - len(batch)
        if batch:
            results = eval_all([X[i] for i in batch], [P[i] for i in batch])
            for i, (f, c) in zip(batch, results):
                self.evaluations += 1
                found[i] = self.insert(Point(X[i], P[i], f, c,
                                             evaluation=self.evaluations,
                                             **point_kwargs))
        for i, j in refs.items():
            found[i] = found[j]
        return found

    def near(self, x, radius, p=()):
        """return stored points of partition `p` within `radius` (inf-norm)"""
        p = as_discrete(p)
        if p not in self._partitions:
            return []
        part = self._partitions[p]
        m = len(part.indices)
        if not m:
            return []
        d = np.max(np.abs(part.X[:m] - np.asarray(x, dtype=float)), axis=1)
        return [self.points[part.indices[i]] for i in np.nonzero(d <= radius)[0]]

    def save(self, filename):
        """pickle the stored points and the tolerance into `filename`"""
        with open(filename, 'wb') as f:
            pickle.dump({'tol': self.tol, 'points': self.points}, f)
        return filename

    @classmethod
    def load(cls, filename, tol=None, count_cache=True, dimension=None):
        """return a `Cache` loaded from `filename`.

        If loading fails, a warning is issued and an empty `Cache` is
        returned. Points of another `dimension` are discarded.
        """
        try:
            with open(filename, 'rb') as f:
                data = pickle.load(f)
            points = list(data['points'])
            if tol is None:
                tol = data['tol']
        except (OSError, EOFError, KeyError, TypeError, ValueError,
                AttributeError, pickle.UnpicklingError) as e:
            warnings.warn('loading cache from "%s" failed (%s: %s),'
                          ' continuing with an empty cache'
                          % (filename, type(e).__name__, str(e)))
            return cls(tol if tol is not None else 1e-4, count_cache)
        cache = cls(tol, count_cache)
        discarded = 0
        for pt in points:
            if not isinstance(pt, Point) or (
                    dimension is not None and len(pt.x) != dimension):
                discarded += 1
                continue
            cache.insert(pt)
        if discarded:
            utils.print_warning('%d cached points from "%s" discarded'
                                % (discarded, filename), 'load', 'Cache')
        return cache
