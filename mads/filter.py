# -*- coding: utf-8 -*-
"""Filter of nondominated ``(f, h)`` pairs for nonlinear constraints.

Point ``a`` dominates point ``b`` iff ``a.f <= b.f`` and ``a.h <= b.h``
with at least one strict inequality, where ``h <= hmin`` counts as
``h == 0``. Filter members never dominate each other:

>>> from mads.filter import Filter
>>> from mads.points import Point
>>> filter_ = Filter(hmax=10)
>>> res = [filter_.offer(Point([i], f=f, h=h)) for i, (f, h) in
...        enumerate([(2, 0), (1, 1), (3, 0.5)])]
>>> assert res == [True, True, False]
>>> assert [(pt.f, pt.h) for pt in filter_] == [(2, 0), (1, 1)]
>>> assert filter_.best_feasible.f == 2 and filter_.least_infeasible.h == 1

"""
import numpy as np

filter_modes = (0, 1, 2)
"""0: extreme barrier, only feasible points are accepted,
1: multipoint filter, 2: two-point filter with only the best feasible and
the least infeasible point"""

class Filter(object):
    """nondominated front of evaluated points.

    Members are kept sorted by increasing infeasibility, hence decreasing
    `f`. Points with ``h > hmax`` or with a failed evaluation are never
    accepted.
    """
    def __init__(self, hmin=0, hmax=1, mode=1):
        if mode not in filter_modes:
            raise ValueError("use_filter must be in %s, was %s"
                             % (str(filter_modes), str(mode)))
        if not 0 <= hmin < hmax:
            raise ValueError("0 <= hmin < hmax is required, but hmin=%s and"
                             " hmax=%s" % (str(hmin), str(hmax)))
        self.hmin = hmin
        self.hmax = hmax
        self.mode = mode
        self.points = []

    def __len__(self):
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def h(self, point):
        """infeasibility of `point` as used for dominance"""
        return 0.0 if point.h <= self.hmin else point.h

    def dominates(self, a, b):
        """return `True` if `a` dominates `b`"""
        fa, fb, ha, hb = a.f, b.f, self.h(a), self.h(b)
        return fa <= fb and ha <= hb and (fa < fb or ha < hb)

    def is_admissible(self, point):
        if point.failed or point.h > self.hmax:
            return False
        return self.mode != 0 or point.h <= self.hmin

    def offer(self, point):
        """insert `point` and remove dominated members, or reject `point`.

        Return `True` if `point` was accepted. A point equal in ``(f, h)``
        to a member is rejected.
        """
        if not self.is_admissible(point):
            return False
        h = self.h(point)
        for member in self.points:
            if self.dominates(member, point) or (
                    member.f == point.f and self.h(member) == h):
                return False
        if self.mode == 2 and h > 0:
            least = self.least_infeasible
            if least is not None and not h < self.h(least):
                return False
        self.points = [m for m in self.points if not self.dominates(point, m)]
        self.points.append(point)
        self.points.sort(key=lambda m: (self.h(m), m.f))
        if self.mode == 2:
            self.points = [m for m in (self.best_feasible, self.least_infeasible)
                           if m is not None]
        return True

    @property
    def best_feasible(self):
        """feasible member with the smallest `f` or `None`"""
        if self.points and self.h(self.points[0]) == 0:
            return self.points[0]
        return None

    @property
    def infeasible(self):
        """infeasible members sorted by increasing `h`"""
        return [m for m in self.points if self.h(m) > 0]

    @property
    def least_infeasible(self):
        """infeasible member with the smallest `h` or `None`"""
        infeasible = self.infeasible
        return infeasible[0] if infeasible else None

    def select_poll_center(self, rank=0):
        """return the poll center of the filter.

        ``rank=0`` selects the best feasible point, ``rank=k >= 1`` the
        `k`-th least infeasible point. If the requested point does not
        exist, the best feasible, the least infeasible or the most
        infeasible point is chosen, in this order. Return `None` if the
        filter is empty.

        >>> from mads.filter import Filter
        >>> from mads.points import Point
        >>> filter_ = Filter()
        >>> assert filter_.select_poll_center() is None
        >>> for f, h in [(3, 0), (2, 0.2), (1, 0.5)]:
        ...     assert filter_.offer(Point([f], f=f, h=h))
        >>> assert filter_.select_poll_center(0).f == 3
        >>> assert filter_.select_poll_center(2).f == 1
        >>> assert filter_.select_poll_center(5).f == 3

        """
        if rank < 0:
            raise ValueError("poll center rank must be >= 0, was %s" % str(rank))
        infeasible = self.infeasible
        if rank and rank <= len(infeasible):
            return infeasible[rank - 1]
        if self.best_feasible is not None:
            return self.best_feasible
        if infeasible:
            return infeasible[0] if not rank else infeasible[-1]
        return None

    def is_antichain(self):
        """return `True` if no member dominates another member"""
        return not any(self.dominates(a, b) for a in self.points
                       for b in self.points if a is not b)

    @property
    def data(self):
        """``(f, h)`` of all members as `np.ndarray` of shape ``(m, 2)``"""
        return np.array([[m.f, m.h] for m in self.points]).reshape(-1, 2)
