# -*- coding: utf-8 -*-
"""Extended poll for mixed variable problems.

A neighbors function ``neighbors(x, p)`` returns an iterable of ``(x,
p)`` pairs, the discrete neighbors of the point ``(x, p)``. If no
neighbor of the poll center improves, neighbors which are nearly as
good as the best feasible point trigger an extended poll, a sequence of
continuous poll steps around the neighbor.
"""
import numpy as np
from .points import as_discrete
from .utilities import utils

class ExtendedPollEngine(object):
    """poll the discrete neighbors of a poll center and, if none improves,
    run extended polls around the promising ones.

    :param neighbors: ``neighbors(x, p) -> iterable of (x, p)``
    :param n_complete: evaluate all neighbors even after a success
    :param complete: evaluate the whole frame in an extended poll step
    :param max_steps: maximal number of poll steps around a neighbor
    :param trigger_f: neighbors with ``f <= f_best + trigger_f`` trigger an
        extended poll
    :param trigger_h: neighbors with ``h <= hmin + trigger_h`` trigger an
        extended poll
    """
    def __init__(self, neighbors, n_complete=False, complete=False,
                 max_steps=1, trigger_f=0.01, trigger_h=0.05):
        if not callable(neighbors):
            raise ValueError("neighbors must be callable, was %s" % str(neighbors))
        self.neighbors = neighbors
        self.n_complete = n_complete
        self.complete = complete
        self.max_steps = int(max_steps)
        self.trigger_f = trigger_f
        self.trigger_h = trigger_h
        self.count_triggered = 0

    def neighbors_of(self, point, dimension):
        """return the neighbors of `point` as two lists, `X` and `P`"""
        X, P = [], []
        for item in self.neighbors(np.array(point.x), point.p):
            try:
                x, p = item
            except (TypeError, ValueError):
                raise ValueError("neighbors must return (x, p) pairs, returned %s"
                                 % str(item))
            x = np.asarray(x, dtype=float)
            if len(x) != dimension:
                raise ValueError("neighbor %s has not dimension %d"
                                 % (str(x), dimension))
            X.append(x)
            P.append(as_discrete(p))
        return X, P

    def triggers(self, point, f_best, hmin):
        """return `True` if `point` is promising enough for an extended poll.

        The `f`-distance to `f_best` is absolute, hence a best value of
        zero does not prevent any trigger.

        >>> from mads.extended_poll import ExtendedPollEngine
        >>> from mads.fitness_functions import ff
        >>> from mads.points import Point
        >>> epoll = ExtendedPollEngine(ff.mixed_neighbors, trigger_f=0.01)
        >>> assert epoll.triggers(Point([0], f=0.005), 0.0, 0)
        >>> assert not epoll.triggers(Point([0], f=0.02), 0.0, 0)
        >>> assert epoll.triggers(Point([0], f=100.005), 100.0, 0)
        >>> assert not epoll.triggers(Point([0], f=100.5), 100.0, 0)
        >>> assert not epoll.triggers(Point([0], f=0, c=[1]), 0.0, 0)

        """
        if point.failed:
            return False
        return (point.f - f_best <= self.trigger_f and
                point.h <= hmin + self.trigger_h)

    def __call__(self, es, center):
        """return an improving point or `None`"""
        X, P = self.neighbors_of(center, es.dimension)
        if not X:
            return None
        neighbors, success = es.evaluate(X, P, origin='neighbor', center=center,
                                         complete=self.n_complete)
        if success is not None:
            return success
        best = es.filter.best_feasible
        f_best = best.f if best is not None else center.f
        hmin = es.settings.hmin
        for neighbor in neighbors:
            if neighbor is None or not self.triggers(neighbor, f_best, hmin):
                continue
            self.count_triggered += 1
            success = self.extended_poll(es, center, neighbor)
            if success is not None or es.interrupted:
                return success
        return None

    def extended_poll(self, es, center, neighbor):
        """poll around `neighbor` while it improves, return a point which
        improves `center` or `None`"""
        y = neighbor
        hmin = es.settings.hmin
        for _ in range(self.max_steps):
            X = [x for x in y.x + es.mesh.displacements(es.mesh.directions(es.dimension))]
            points, success = es.evaluate(X, len(X) * [y.p], origin='extended poll',
                                          center=center, complete=self.complete)
            if success is not None:
                return success
            better = [pt for pt in points if pt is not None and pt.improves(y, hmin)]
            if not better:
                break
            y = better[0]
            for pt in better[1:]:
                if pt.improves(y, hmin):
                    y = pt
            utils.print_message('extended poll moved to %s' % str(list(y.x)),
                                'extended_poll', 'ExtendedPollEngine',
                                es.countiter, verbose=es.settings.verbose - 2)
        return None
