# -*- coding: utf-8 -*-
"""Mesh Adaptive Direct Search (MADS) for derivative-free optimization.

Each iteration of `MadsOptimizer` runs the search step, the poll step and,
for mixed variable problems, the extended poll step, until a point which
improves the poll center is accepted by the filter. The mesh is coarsened
after a successful and refined after an unsuccessful iteration.

A minimal example::

    import mads
    x, es = mads.fmin(mads.ff.rosen, 4 * [0.1], {'verbose': -9})
    print(es.result.fbest, es.stop())

Mixed variables, nonlinear constraints and linear constraints::

    es = mads.MadsOptimizer(mads.ff.mixed_quadratic, [1, 1], {'bounds': [-5, 5]},
                            p0=('a',), neighbors=mads.ff.mixed_neighbors)
    es.optimize()

"""
import collections
import os
import sys
import time
import numpy as np
from . import interfaces
from .utilities import utils
from .utilities.math import simplex_gradient
from .options_parameters import MadsOptions, validate_settings
from .points import as_discrete
from .evaluation import Evaluator, EvalParallel
from .cache import Cache
from .mesh import Mesh, scaling_from_bounds
from .filter import Filter
from .constraints_handler import Omega
from .search import SearchEngine
from .poll import PollEngine
from .extended_poll import ExtendedPollEngine
from .rank_selection import RankAndSelection
from .termination import MadsStopDict
from .logger import MadsDataLogger

MadsResult = collections.namedtuple('MadsResult', [
    'xbest', 'fbest', 'hbest', 'pbest', 'evals_best', 'evaluations',
    'iterations', 'time', 'stop', 'history'])
"""The result of `MadsOptimizer.result`, a `collections.namedtuple` with

- ``xbest``: best point found, continuous variables
- ``fbest``: its objective function value (its sample mean in stochastic mode)
- ``hbest``: its infeasibility, zero for a feasible point
- ``pbest``: its discrete variables, a `tuple`
- ``evals_best``: evaluation count when ``xbest`` was evaluated
- ``evaluations``: evaluations overall charged to the budget
- ``iterations``: number of iterations
- ``time``: elapsed time in seconds
- ``stop``: termination dictionary
- ``history``: `dict` of per-iteration data recorded by `MadsDataLogger`

The best point is the best feasible point of the filter, otherwise the
least infeasible point.
"""

class MadsOptimizer(interfaces.OOOptimizer):
    """Mesh Adaptive Direct Search optimizer class.

    Calling Sequences
    =================

    - ``es = MadsOptimizer(fun, x0)``
    - ``es = MadsOptimizer(fun, x0, opts)``
    - ``es = MadsOptimizer(fun, x0, opts, p0=p0, neighbors=neighbors)``

    Arguments
    =========
    `fun`
        objective and constraints function, called as ``fun(x)`` or, for
        mixed variable problems, as ``fun(x, p)``. It returns ``f``,
        ``(f, c)`` or ``(f, c, ok)`` where ``c <= 0`` component-wise
        means feasible. Exceptions and non-finite values are failed
        evaluations.
    `x0`
        initial solution, which must satisfy the bound and linear
        constraints. `x0` can also be a callable returning the initial
        solution.
    `opts`
        options, a `dict` or `MadsOptions`, see ``mads.MadsOptions()``.
    `p0`
        initial discrete variables, a `tuple` of hashable values.
    `gradient`
        optional callable returning the gradient of ``f`` at ``x``, used
        by the ``Gradient_*`` poll strategies. Without `gradient`, a
        simplex gradient from cached points is used.
    `neighbors`
        optional callable ``neighbors(x, p) -> iterable of (x, p)``,
        enables the extended poll.

    Main interface / usage
    ======================
    The interface is inherited from the generic `OOOptimizer` class, see
    also there. An object instance is generated from::

        es = mads.MadsOptimizer(fun, 8 * [0.5])

    The least verbose interface is via the optimize method::

        es.optimize()
        res = es.result

    Example
    =======
    The quadratic function below has its minimizer at ``(-1, 3, -3, 4)``:

    >>> import numpy as np
    >>> import mads
    >>> es = mads.MadsOptimizer(mads.ff.scenario_quadratic, 4 * [0],
    ...                         {'verbose': -9, 'tol_delta': 1e-6})
    >>> es = es.optimize()
    >>> assert 'delta' in es.stop()
    >>> assert np.allclose(es.result.xbest, [-1, 3, -3, 4], atol=1e-3)
    >>> g = mads.ff.scenario_quadratic_gradient(es.result.xbest)
    >>> assert np.max(np.abs(g)) < 10 * es.mesh.size
    >>> assert es.result.evaluations == es.countevals

    The same seed gives the same run:

    >>> runs = [mads.MadsOptimizer(mads.ff.rosen, 3 * [0.5], {'verbose': -9,
    ...             'poll_strategy': 'MADS_2n', 'seed': 5, 'maxiter': 30,
    ...             'term_maxiter': True}).optimize() for _ in range(2)]
    >>> assert [pt.x.tolist() for pt in runs[0].cache] == [
    ...         pt.x.tolist() for pt in runs[1].cache]

    Nonlinear constraints go into the filter:

    >>> es = mads.MadsOptimizer(mads.ff.constrained_sphere, [2, 2],
    ...                         {'verbose': -9, 'bounds': [-3, 3]}).optimize()
    >>> assert es.result.hbest == 0 and es.filter.is_antichain()
    >>> assert np.allclose(es.result.xbest, [1, 0], atol=1e-3)

    :See also: `fmin`, `MadsOptions`, `MadsResult`
    """
    def __init__(self, fun, x0, options=None, p0=None, gradient=None,
                 neighbors=None):
        self.inputargs = dict(locals())  # for the record
        del self.inputargs['self']  # otherwise the instance self has a cyclic reference
        if options is None:
            options = {}
        self.inopts = options
        opts = MadsOptions(dict(options)).complement()
        self._set_x0(x0)
        self.N = len(self.x0)
        if self.N < 1:
            raise ValueError("x0 must have at least one variable, was %s"
                             % str(x0))
        opts.evalall({'N': self.N})
        if opts['verbose'] < -8:
            opts['verb_disp'] = 0
        self.opts = opts
        self.settings = validate_settings(opts.to_namedtuple, self.N)
        self.fun = fun
        self.p0 = as_discrete(p0)
        self.gradient = gradient
        self.neighbors = neighbors
        self.initialize()

    def _set_x0(self, x0):
        """Assign `self.x0` from argument `x0`, which may be a `callable`"""
        if callable(x0):
            x0 = x0()
        if utils.is_str(x0):
            raise ValueError("x0 may be a callable, but not a string")
        self.x0 = np.array(x0, dtype=float, copy=True).ravel()

    def initialize(self):
        """(re-)set to the initial state and evaluate the initial point"""
        s = self.settings
        self.rng = np.random.default_rng(s.seed)
        A, l, u = s.linear_constraints or (None, None, None)
        self.omega = Omega(self.N, s.bounds, A, l, u, s.remove_redundancy)
        if not self.omega.contains(self.x0):
            raise ValueError("x0=%s violates the bounds or the linear"
                             " constraints (options bounds and"
                             " linear_constraints)" % str(list(self.x0)))
        scaling = scaling_from_bounds(self.omega.lb, self.omega.ub, s.scale)
        self.mesh = Mesh(s.delta0, s.mesh_refine, s.mesh_coarsen, s.delta_max,
                         s.delta_min, s.poll_strategy, s.poll_basis,
                         scaling if np.any(scaling != 1) else None,
                         s.accelerate, self.rng)
        self.filter = Filter(s.hmin, s.hmax, s.use_filter)
        self.cache = self._initial_cache()
        self.evaluator = Evaluator(self.fun, self.gradient,
                                   with_discrete=self.neighbors is not None or
                                                 self.p0 != (),
                                   verbose=s.verbose)
        self.eval_all = EvalParallel(self.evaluator, s.eval_workers, s.eval_pool)
        self.rank_selection = None
        if s.run_stochastic:
            self.rank_selection = RankAndSelection(
                s.rs_s0, s.rs_alpha0, s.rs_alpha_rho, s.rs_iz0, s.rs_iz_rho,
                s.rs_noise, s.rs_max_samples)
        self.searcher = SearchEngine(s.search, s.n_searches)
        self.poller = PollEngine(s.poll_order, s.poll_complete,
                                 s.poll_order_custom, s.poll_surrogate)
        self.extended_poller = None
        if self.neighbors is not None:
            self.extended_poller = ExtendedPollEngine(
                self.neighbors, s.n_poll_complete, s.epoll_complete,
                s.epoll_max_steps, s.epoll_trigger_f, s.epoll_trigger_h)
        self.timer = utils.ElapsedWCTime()
        self.countiter = 0
        self.consecutive_failures = 0
        self.last_success = None
        self._aborted = False
        self._stopdict = MadsStopDict()
        self.logger = MadsDataLogger(s.verb_log).register(self)
        for pt in self.cache:  # warm start
            self.filter.offer(pt)
        points, _ = self.evaluate([self.x0], [self.p0], origin='seed')
        self.x0_point = points[0]
        if self.x0_point.failed:
            utils.print_warning('evaluation of x0 failed', 'initialize',
                                'MadsOptimizer', verbose=s.verbose)
        self.incumbent = self.x0_point if self.rank_selection else None
        if s.verbose > 0:
            print('MADS (%s, %s) in dimension %d (seed=%s, %s)'
                  % (s.poll_strategy, s.poll_order, self.N, str(s.seed),
                     time.asctime()))
        return self

    @property
    def cache_filename(self):
        return self.settings.name + '_Cache.pkl'

    def _initial_cache(self):
        s = self.settings
        tol = s.tol_cache if s.tol_cache is not None else s.tol_delta
        if s.load_cache and os.path.exists(self.cache_filename):
            cache = Cache.load(self.cache_filename, tol, s.count_cache, self.N)
            utils.print_message('%d points loaded from %s' % (len(cache),
                                                              self.cache_filename),
                                'initialize', 'MadsOptimizer', verbose=s.verbose - 1)
            return cache
        return Cache(tol, s.count_cache)

    @property
    def dimension(self):
        return self.N

    @property
    def countevals(self):
        """number of evaluations charged to the budget"""
        n = self.cache.charged_evaluations
        if self.rank_selection is not None:
            n += self.rank_selection.evaluations
        return n

    def check_abort(self):
        """return `True` if the ``abort`` callable signaled to abort"""
        if not self._aborted and self.settings.abort is not None:
            self._aborted = bool(self.settings.abort())
        return self._aborted

    @property
    def interrupted(self):
        """`True` if the run was aborted or timed out, checked before
        each evaluation batch"""
        s = self.settings
        return self.check_abort() or bool(
            s.term_maxtime and self.timer.elapsed >= s.maxtime)

    def evaluate(self, X, P=None, origin='poll', center=None, complete=True):
        """evaluate candidates via the cache and offer them to the filter.

        Candidates outside of the constraints set are discarded. Without
        `complete`, evaluation is done in batches of size ``eval_workers``
        and stops after the first batch with a point that is accepted by
        the filter and improves `center`.

        Return the evaluated points and the first improving accepted
        point, or `None`.
        """
        if P is None:
            P = len(X) * [center.p if center is not None else self.p0]
        keep = [i for i in utils.rglen(X) if self.omega.contains(X[i])]
        X, P = [X[i] for i in keep], [P[i] for i in keep]
        hmin = self.settings.hmin
        batch = len(X) if complete else max((1, int(self.settings.eval_workers)))
        points, success = [], None
        for i in range(0, len(X), max((1, batch))):
            if i > 0 and self.interrupted:
                break
            new = self.cache.evaluate(X[i:i + batch], self.eval_all,
                                      P[i:i + batch], origin=origin,
                                      iteration=self.countiter)
            for pt in new:
                accepted = self.filter.offer(pt)
                if accepted and success is None and pt.improves(center, hmin):
                    success = pt
            points += new
            if success is not None and not complete:
                break
        return points, success

    def snap_to_mesh(self, x, ref):
        """return `x` rounded to the mesh around `ref`"""
        step = self.mesh.step_factor
        if self.mesh.scaling is not None:
            step = step * self.mesh.scaling
        ref = np.asarray(ref, dtype=float)
        return ref + np.round((np.asarray(x, dtype=float) - ref) / step) * step

    def gradient_estimate(self, point):
        """return the gradient at `point` from the user gradient or a
        simplex gradient of nearby cached points, or `None`"""
        g = self.evaluator.grad(point.x)
        if g is not None or point.failed:
            return g
        radius = 4 * self.mesh.size
        if self.mesh.scaling is not None:
            radius *= max(self.mesh.scaling)
        near = [pt for pt in self.cache.near(point.x, radius, point.p)
                if not pt.failed and not np.array_equal(pt.x, point.x)]
        if len(near) < self.N:
            return None
        return simplex_gradient([pt.x for pt in near], [pt.f for pt in near],
                                point.x, point.f)

    def poll_center(self):
        """return the incumbent in stochastic mode, otherwise the point
        selected by option ``poll_center`` from the filter"""
        if self.incumbent is not None:
            return self.incumbent
        center = self.filter.select_poll_center(self.settings.poll_center)
        return center if center is not None else self.x0_point

    @property
    def best(self):
        """best point, the incumbent in stochastic mode"""
        if self.incumbent is not None:
            return self.incumbent
        best = self.filter.best_feasible or self.filter.least_infeasible
        return best if best is not None else self.x0_point

    def step(self):
        """conduct one iteration: search, poll, extended poll, mesh update"""
        center = self.poll_center()
        start = len(self.cache)
        success = None
        if len(self.searcher) and not self.interrupted:
            success = self.searcher(self, center)
        if success is None and not self.interrupted:
            success = self.poller(self, center)
        if (success is None and self.extended_poller is not None
                and not self.interrupted):
            success = self.extended_poller(self, center)
        if self.rank_selection is not None:
            success = self._rank_and_select(center, self.cache.points[start:],
                                            success)
        if success is not None:
            self.mesh.coarsen()
        elif not self.interrupted:  # an interrupted frame is incomplete
            self.mesh.refine()
        self.consecutive_failures = self.mesh.consecutive_failures
        self.last_success = success is not None
        self.countiter += 1
        return self

    def _rank_and_select(self, center, new_points, success):
        """return the new incumbent if it differs from `center`, else `None`.

        The candidates are `center` and the best feasible point evaluated
        in this iteration, the winner becomes the incumbent.
        """
        hmin = self.settings.hmin
        feasible = [pt for pt in new_points if not pt.failed and pt.is_feasible(hmin)]
        if not feasible:
            if success is not None:
                self.incumbent = success
            return success
        challenger = min(feasible, key=lambda pt: pt.f)
        candidates = [challenger]
        if not center.failed and center.is_feasible(hmin):
            candidates.insert(0, center)
        winner = self.rank_selection.select(candidates, self.evaluator)
        self.incumbent = winner
        if RankAndSelection.key(winner) == RankAndSelection.key(center):
            return None
        return winner

    def stop(self, check=True):
        """return the termination status as dictionary.

        With ``check == False``, the termination conditions are not
        checked and the status might not reflect the current situation.
        """
        return self._stopdict(self, check)

    def _finalize(self):
        s = self.settings
        self.eval_all.terminate()
        if s.save_cache:
            self.cache.save(self.cache_filename)
        if s.verb_disp and s.verbose >= 0:
            self.disp(1)
            for k, v in self.stop().items():
                print('termination on %s=%s (%s)' % (k, str(v), time.asctime()))
            print('best f-value = %s, infeasibility h = %s after %d/%d evaluations'
                  % (repr(self.best.f), repr(self.best.h), self.best.evaluation,
                     self.countevals))
            print('best solution = %s %s' % (str(list(self.best.x)),
                                             str(self.best.p) if self.best.p else ''))

    @property
    def result(self):
        """return a `MadsResult` `namedtuple`"""
        best = self.best
        return MadsResult(
            best.x.copy(),
            best.f,
            best.h,
            best.p,
            best.evaluation,
            self.countevals,
            self.countiter,
            self.timer.elapsed,
            dict(self.stop()),
            self.logger.data,
        )

    def set_options(self, options=None, **kwargs):
        """set versatile options, see `MadsOptions.versatile_options`.

        Other options are ignored with a warning.
        """
        options = dict(options or {}, **kwargs)
        updated = {}
        for key, val in options.items():
            key = self.opts.corrected_key(key)
            if key not in MadsOptions.versatile_options():
                utils.print_warning('option %s ignored (not versatile)' % str(key),
                                    'set_options', 'MadsOptimizer',
                                    verbose=self.settings.verbose)
                continue
            self.opts.set(key, val)
            updated[key] = self.opts.eval(key, loc={'N': self.N})
        self.settings = validate_settings(self.settings._replace(**updated), self.N)
        return self

    def pickle_dumps(self):
        """return ``pickle.dumps(self)``,

        if necessary remove the unpickleable objective function reference
        beforehand. The returned `bytes` can be saved to a file and
        loaded with `pickle.loads` to continue the run, after assigning
        ``es.evaluator.fun`` when it was removed.
        """
        import pickle
        try:
            return pickle.dumps(self)
        except (pickle.PicklingError, AttributeError, TypeError):
            fun = self.fun
            self.evaluator.fun = self.fun = self.inputargs['fun'] = None
            try:
                return pickle.dumps(self)
            finally:  # reset changed attribute either way
                self.evaluator.fun = self.fun = self.inputargs['fun'] = fun

    def disp_annotation(self):
        """print annotation line for `disp` ()"""
        print('Iterat #Fevals   function value    infeas.   mesh size filter t[m:s]')
        sys.stdout.flush()

    def disp(self, modulo=None):
        """print current state variables in a single-line.

        Prints only if ``iteration_counter % modulo == 0``.

        :See also: `disp_annotation`.
        """
        if modulo is None:
            modulo = self.settings.verb_disp
        if modulo:
            if (self.countiter - 1) % (10 * modulo) < 1:
                self.disp_annotation()
            if self.countiter > 0 and (self.stop() or self.countiter < 4
                                       or self.countiter % modulo < 1):
                toc = self.timer.elapsed
                stime = str(int(toc // 60)) + ':' + ("%2.1f" % (toc % 60)).rjust(4, '0')
                best = self.best
                print(' '.join((repr(self.countiter).rjust(5),
                                repr(self.countevals).rjust(7),
                                '%.15e' % best.f,
                                '%9.2e' % best.h,
                                '%11.2e' % self.mesh.size,
                                repr(len(self.filter)).rjust(6),
                                stime)))
                sys.stdout.flush()
        return self

MADS = MadsOptimizer

def fmin(fun, x0, options=None, p0=None, gradient=None, neighbors=None,
         callback=None):
    """minimize `fun` with `MadsOptimizer` and return ``(xbest, es)``.

    The arguments are those of `MadsOptimizer`, `callback` is passed to
    `MadsOptimizer.optimize`. A typical calling pattern::

        x, es = mads.fmin(...)

    >>> import mads
    >>> x, es = mads.fmin(mads.ff.sphere, [1, 2], {'verbose': -9})
    >>> assert es.result.fbest < 1e-7 and es.stop()

    :See also: `MadsOptimizer`
    """
    es = MadsOptimizer(fun, x0, options, p0=p0, gradient=gradient,
                       neighbors=neighbors)
    es.optimize(callback=callback)
    return es.result.xbest, es
