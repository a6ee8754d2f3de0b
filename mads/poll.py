# -*- coding: utf-8 -*-
"""Poll step: frame construction, ordering and evaluation.

The frame around a poll center consists of the mesh points
``x + step_factor * scaling * d`` for the directions ``d`` of the mesh,
augmented by the generators of the tangent cone of nearby linear
constraints. Trial points outside of the closed constraints set are
discarded before ordering.

>>> import numpy as np
>>> from mads.poll import alternating_order
>>> D = np.vstack([np.eye(2), -np.eye(2)])
>>> assert alternating_order(D) == [0, 2, 1, 3]

"""
import numpy as np
from .utilities import utils
from .fitness_models import quadratic_model, fit_predictor

def direction_key(d):
    """return a hashable key of the normalized direction `d`"""
    d = np.asarray(d, dtype=float)
    m = np.max(np.abs(d))
    return tuple(np.round(d / m, 12)) if m else tuple(d)

def alternating_order(D):
    """return indices of `D` with each direction followed by its negative,
    if present"""
    D = np.asarray(D, dtype=float)
    used = set()
    order = []
    for i in utils.rglen(D):
        if i in used:
            continue
        order.append(i)
        used.add(i)
        for j in range(i + 1, len(D)):
            if j not in used and np.allclose(D[j], -D[i]):
                order.append(j)
                used.add(j)
                break
    return order

class PollEngine(object):
    """generate, order and evaluate the frame around a poll center.

    `order` is one of `mads.options_parameters.poll_orders`. With
    `complete`, the whole frame is evaluated, otherwise the poll stops
    at the first evaluation batch with an improving point accepted by the
    filter.

    Attributes `last_direction` and `direction_successes` keep the
    success history of directions, used by the orders ``'Dynamic'`` and
    ``'DynamicRanked'``.
    """
    def __init__(self, order='Consecutive', complete=False, custom_order=None,
                 surrogate=None):
        self.order = order
        self.complete = complete
        self.custom_order = custom_order
        self.surrogate = surrogate or quadratic_model
        self.last_direction = None
        self.direction_successes = {}
        self.successes = 0

    def directions(self, es, center):
        """return the mesh directions and the tangent cone generators at
        `center` and their trial steps, both as rows"""
        n = es.dimension
        gradient = None
        if es.mesh.strategy.startswith('Gradient'):
            gradient = es.gradient_estimate(center)
        D = np.asarray(es.mesh.directions(n, gradient=gradient), dtype=float)
        steps = es.mesh.displacements(D)
        if es.omega.has_constraints:
            T = es.omega.tangent_cone_generators(
                center.x, es.settings.tol_bind, es.settings.degeneracy_scheme,
                es.rng)
            keys = set(direction_key(d) for d in D)
            T = np.array([t for t in T if direction_key(t) not in keys]).reshape(-1, n)
            if len(T):
                D = np.vstack([D, T])
                steps = np.vstack([steps, es.mesh.size * T])
        return D, steps

    def frame(self, es, center):
        """return the trial points of the frame around `center` which are
        in the constraints set, as `list`"""
        return self._frame(es, center)[1]

    def _frame(self, es, center):
        D, steps = self.directions(es, center)
        X = center.x + steps
        idx = [i for i in utils.rglen(X) if es.omega.contains(X[i])]
        return D[idx], [X[i] for i in idx]

    def ordered(self, es, center, D, X):
        """return the evaluation order of the frame as `list` of indices"""
        order = self.order
        idx = list(range(len(X)))
        if order == 'Consecutive' or len(X) < 2:
            return idx
        if order == 'Alternating':
            return alternating_order(D)
        if order == 'Random':
            return [int(i) for i in es.rng.permutation(len(X))]
        if order == 'Dynamic':
            if self.last_direction is None:
                return idx
            first = [i for i in idx if direction_key(D[i]) == self.last_direction]
            return first + [i for i in idx if i not in first]
        if order == 'DynamicRanked':
            return sorted(idx, key=lambda i: -self.direction_successes.get(
                direction_key(D[i]), 0))
        if order == 'SimplexGradient':
            g = es.gradient_estimate(center)
            if g is None:
                return idx
            return [int(i) for i in np.argsort(D.dot(g), kind='stable')]
        if order == 'Surrogate':
            predict = fit_predictor(self.surrogate,
                                    [pt for pt in es.cache if pt.p == center.p])
            if predict is None:
                return idx
            return [int(i) for i in np.argsort([predict(x) for x in X], kind='stable')]
        if order == 'Custom':
            res = [int(i) for i in self.custom_order(X, es)]
            if sorted(res) != idx:
                raise ValueError("poll_order_custom must return a permutation"
                                 " of range(%d), returned %s" % (len(X), str(res)))
            return res
        raise ValueError("unknown poll order %s" % str(order))

    def __call__(self, es, center):
        """poll around `center`, return an improving point or `None`"""
        D, X = self._frame(es, center)
        if not len(X):
            return None
        idx = self.ordered(es, center, D, X)
        D = D[idx]
        X = [X[i] for i in idx]
        _, success = es.evaluate(X, len(X) * [center.p], origin='poll',
                                 center=center, complete=self.complete)
        if success is not None:
            self.successes += 1
            for d, x in zip(D, X):
                if np.array_equal(x, success.x):
                    key = direction_key(d)
                    self.last_direction = key
                    self.direction_successes[key] = self.direction_successes.get(key, 0) + 1
                    break
        return success
