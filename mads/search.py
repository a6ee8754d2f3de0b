# -*- coding: utf-8 -*-
"""Search step strategies, run before the poll step of each iteration.

The option ``search`` of `MadsOptimizer` is a list of entries, each a
type code from `search_types` or a `dict` with key ``'type'`` and any of
the keys of `SearchStrategy`:

>>> from mads.search import SearchStrategy
>>> s = SearchStrategy.create({'type': 'LQ', 'n_points': 2})
>>> assert s.type == 'LQ' and s.n_points == 2 and s.n_iter == 1
>>> assert s.complete is True and s.recal == 1
>>> try:
...     SearchStrategy.create('Spiral')
... except ValueError:
...     pass
... else:
...     raise AssertionError('invalid search type passed')

Candidate points are snapped to the mesh around the poll center,
discarded when they are not in the closed constraints set, looked up in
the cache, evaluated when missing and offered to the filter in the order
of generation.
"""
import numpy as np
from .utilities import utils
from .mesh import positive_basis
from .fitness_models import quadratic_model, fit_predictor

search_types = ('None', 'LHS', 'Mesh', 'PS', 'GA', 'SPollI', 'GPollI',
                'DACE', 'NW', 'RBF', 'LQ', 'SPS-DACE', 'SPS-NW', 'SPS-RBF',
                'SPS-LQ', 'Custom', 'CustomS')
generator_types = ('PS', 'GA', 'Custom')
"""search types which call a user point generator ``generator(optimizer)``"""
surrogate_types = ('DACE', 'NW', 'RBF', 'LQ', 'CustomS')
"""search types which optimize a surrogate built by a predictor factory"""
ranked_poll_types = ('SPS-DACE', 'SPS-NW', 'SPS-RBF', 'SPS-LQ')
"""search types which evaluate the poll points ranked best by a surrogate"""
recalibrations = (0, 1, 2)
"""0: build the surrogate only once, 1: rebuild after unsuccessful
iterations, 2: rebuild every iteration"""

class SearchStrategy(object):
    """settings and surrogate state of a single search strategy.

    :param type: one of `search_types`
    :param n_iter: number of (initial) iterations in which the strategy
        is used, can be ``inf``
    :param n_points: number of points the strategy generates (for
        ``'LHS'`` multiplied by option ``lhs_strength``), for ``'SPollI'``
        and ``'GPollI'`` the number of filter points to poll around
    :param complete: evaluate all points and continue with the next
        strategy even after a success, the default, `False` makes the
        strategy opportunistic
    :param recal: surrogate recalibration, one of `recalibrations`
    :param generator: ``generator(optimizer) -> iterable of vectors`` for
        types ``'PS'``, ``'GA'`` and ``'Custom'``
    :param predictor: predictor factory ``model(X, F) -> predict``,
        needed for ``'DACE'``, ``'NW'``, ``'RBF'``, ``'CustomS'`` and their
        ``'SPS-*'`` variants, the built-in quadratic model is used for
        ``'LQ'`` and ``'SPS-LQ'`` when `None`
    :param optimizer: surrogate optimizer, ``'mads'`` or ``'custom'`` or a
        callable ``optimizer(predict, x0, optimizer) -> iterable of
        vectors``, by default option ``sur_optimizer``
    :param options: `dict` of options passed to `surrogate_options` for
        the ``'mads'`` surrogate optimizer
    """
    def __init__(self, type='None', n_iter=1, n_points=1, complete=True,
                 recal=1, generator=None, predictor=None, optimizer=None,
                 options=None):
        if type not in search_types:
            raise ValueError("search type must be in %s, was %s"
                             % (str(search_types), str(type)))
        if not n_iter >= 0 or not n_points >= 1:
            raise ValueError("search %s needs n_iter >= 0 and n_points >= 1,"
                             " were %s and %s" % (type, str(n_iter), str(n_points)))
        if recal not in recalibrations:
            raise ValueError("search recal must be in %s, was %s"
                             % (str(recalibrations), str(recal)))
        if type in generator_types and not callable(generator):
            raise ValueError("search %s needs a callable generator" % type)
        if (type in surrogate_types + ranked_poll_types and not type.endswith('LQ')
                and not callable(predictor)):
            raise ValueError("search %s needs a callable predictor factory" % type)
        self.type = type
        self.n_iter = n_iter
        self.n_points = int(n_points)
        self.complete = complete
        self.recal = recal
        self.generator = generator
        self.predictor = predictor
        if predictor is None and type.endswith('LQ'):
            self.predictor = quadratic_model
        self.optimizer = optimizer
        self.options = dict(options or {})
        self.predict = None
        """the current surrogate ``predict(x)``"""
        self.fitted_at = None
        """iteration in which `predict` was built"""

    @classmethod
    def create(cls, entry, n_iter=1):
        """return a `SearchStrategy` from a type code or a `dict`.

        `n_iter` is the default for entries without ``'n_iter'``.
        """
        if isinstance(entry, cls):
            return entry
        if utils.is_str(entry):
            return cls(entry, n_iter=n_iter)
        if isinstance(entry, dict):
            kwargs = dict(entry)
            if 'type' not in kwargs:
                raise ValueError("search entry %s has no 'type'" % str(entry))
            kwargs.setdefault('n_iter', n_iter)
            try:
                return cls(**kwargs)
            except TypeError as e:
                raise ValueError("invalid search entry %s: %s" % (str(entry), str(e)))
        raise ValueError("search entry must be a type code or a dict, was %s"
                         % str(entry))

    def is_active(self, iteration):
        """return `True` if the strategy runs in `iteration` (zero based)"""
        return self.type != 'None' and iteration < self.n_iter

    def needs_recalibration(self, es):
        if self.predict is None:
            return True
        if self.recal == 2:
            return self.fitted_at != es.countiter
        if self.recal == 1:
            return not es.last_success and self.fitted_at != es.countiter
        return False

    def surrogate(self, es, center):
        """return the (re)calibrated ``predict`` or `None`"""
        if self.needs_recalibration(es):
            predict = fit_predictor(self.predictor,
                                    [pt for pt in es.cache if pt.p == center.p])
            if predict is not None:
                self.predict, self.fitted_at = predict, es.countiter
        return self.predict

class SearchEngine(object):
    """run the active search strategies of an iteration in order.

    An unsuccessful strategy is followed by the next one. A successful
    strategy ends the search unless its `complete` flag is set.
    """
    def __init__(self, search, n_searches):
        if search is None:
            search = []
        if utils.is_str(search) or isinstance(search, dict):
            search = [search]
        search = list(search)[:int(n_searches)]
        self.strategies = [SearchStrategy.create(
                               s, np.inf if i == len(search) - 1 else 1)
                           for i, s in enumerate(search)]
        self.successes = [0] * len(self.strategies)
        self._warned = set()

    def __len__(self):
        return len(self.strategies)

    def __call__(self, es, center):
        """run the search around `center`, return an improving point or `None`"""
        success = None
        for i, strategy in enumerate(self.strategies):
            if not strategy.is_active(es.countiter) or es.interrupted:
                continue
            X, P = self.candidates(strategy, es, center)
            if not len(X):
                continue
            X = [es.snap_to_mesh(x, center.x) for x in X]
            _, found = es.evaluate(X, P, origin='search',
                                   center=center, complete=strategy.complete)
            if found is not None:
                self.successes[i] += 1
                if success is None or found.improves(success, es.settings.hmin):
                    success = found
                if not strategy.complete:
                    break
        return success

    def _warn_once(self, strategy, msg):
        if strategy.type not in self._warned:
            self._warned.add(strategy.type)
            utils.print_warning(msg, 'candidates', 'SearchEngine')

    def candidates(self, strategy, es, center):
        """return candidate vectors of `strategy` and their discrete parts.

        Poll points around a filter point inherit its discrete part, all
        other candidates have the discrete part of `center`.

        >>> import mads
        >>> es = mads.MadsOptimizer(mads.ff.mixed_quadratic, [1, 1],
        ...          {'verbose': -9, 'search': [{'type': 'SPollI'}]},
        ...          p0=('a',), neighbors=mads.ff.mixed_neighbors)
        >>> _ = es.evaluate([[2, 0]], [('b',)], origin='neighbor')
        >>> assert [pt.p for pt in es.filter] == [('b',)]
        >>> X, P = es.searcher.candidates(es.searcher.strategies[0], es,
        ...                               es.x0_point)
        >>> assert len(X) == 4 and P == 4 * [('b',)]
        >>> assert sorted(map(tuple, X)) == [(1, 0), (2, -1), (2, 1), (3, 0)]

        """
        if strategy.type in ('SPollI', 'GPollI'):
            X, P = [], []
            for pt in list(es.filter)[:strategy.n_points] or [center]:
                Y = list(self.poll_around(es, pt, gradient=strategy.type == 'GPollI'))
                X += Y
                P += len(Y) * [pt.p]
            return X, P
        X = self.candidate_vectors(strategy, es, center)
        return X, len(X) * [center.p]

    def candidate_vectors(self, strategy, es, center):
        """return a `list` of candidate vectors of `strategy` in the
        discrete part of `center`"""
        t = strategy.type
        if t == 'LHS':
            return self.latin_hypercube(es, es.settings.lhs_strength * strategy.n_points,
                                        strategy)
        if t == 'Mesh':
            return self.mesh_sample(es, center, strategy.n_points)
        if t in generator_types:
            return [np.asarray(x, dtype=float) for x in strategy.generator(es)]
        if t in surrogate_types:
            predict = strategy.surrogate(es, center)
            if predict is None:
                return []
            return self.optimize_surrogate(strategy, es, center, predict)
        if t in ranked_poll_types:
            predict = strategy.surrogate(es, center)
            X = es.poller.frame(es, center)
            if predict is None or not len(X):
                return []
            values = [predict(x) for x in X]
            return [X[i] for i in np.argsort(values, kind='stable')[:strategy.n_points]]
        return []

    def latin_hypercube(self, es, n_samples, strategy=None):
        """return `n_samples` Latin hypercube samples in the bounds"""
        lb, ub = es.omega.lb, es.omega.ub
        if not es.omega.has_finite_bounds():
            self._warn_once(strategy, 'LHS search needs finite bounds, skipped')
            return []
        n = es.dimension
        n_samples = int(n_samples)
        strata = np.array([es.rng.permutation(n_samples) for _ in range(n)]).T
        U = (strata + es.rng.random((n_samples, n))) / n_samples
        return list(lb + U * (ub - lb))

    def mesh_sample(self, es, center, n_points):
        """return random mesh points within two mesh sizes of `center`"""
        n = es.dimension
        Z = es.rng.integers(-2, 3, size=(n_points, n))
        for z in Z:
            if not np.any(z):
                z[es.rng.integers(n)] = es.rng.choice([-1, 1])
        return list(center.x + self.step(es) * Z)

    def step(self, es):
        """the mesh size, scaled coordinate-wise"""
        if es.mesh.scaling is None:
            return es.mesh.size
        return es.mesh.size * es.mesh.scaling

    def poll_around(self, es, point, gradient=False):
        """return standard poll points around `point`, pruned with the
        gradient estimate if `gradient`"""
        D = positive_basis(np.eye(es.dimension), 'Standard_2n')
        if gradient:
            g = es.gradient_estimate(point)
            if g is not None and np.any(g):
                D = D[D.dot(g) < 0]
        return point.x + self.step(es) * D

    def optimize_surrogate(self, strategy, es, center, predict):
        """return up to `n_points` best points of the surrogate optimizer"""
        optimizer = strategy.optimizer or es.settings.sur_optimizer
        if optimizer == 'custom':
            optimizer = strategy.optimizer
            if not callable(optimizer):
                raise ValueError("sur_optimizer 'custom' needs a callable"
                                 " 'optimizer' in search %s" % strategy.type)
        if callable(optimizer):
            X = [np.asarray(x, dtype=float)
                 for x in optimizer(predict, np.array(center.x), es)]
            return X[:strategy.n_points]
        return self._mads_on_surrogate(strategy, es, center, predict)

    def _mads_on_surrogate(self, strategy, es, center, predict):
        from .mads import MadsOptimizer
        from .options_parameters import surrogate_options
        s = es.settings
        opts = surrogate_options(
            bounds=s.bounds, linear_constraints=s.linear_constraints,
            remove_redundancy=s.remove_redundancy,
            delta0=es.mesh.size, scale=s.scale,
            seed=int(es.rng.integers(2**31 - 1)))
        opts.init(strategy.options)
        sub = MadsOptimizer(lambda x: predict(x), center.x, opts)
        sub.optimize()
        points = sorted((pt for pt in sub.cache if not pt.failed),
                        key=lambda pt: pt.f)
        return [pt.x for pt in points[:strategy.n_points]]
