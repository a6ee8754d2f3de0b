# -*- coding: utf-8 -*-
"""Evaluation of the user objective and constraints.

`Evaluator` wraps the user function and normalizes its return value to
``(f, c)``, any failure becomes ``(nan, ())`` which leads to ``h = inf``
in the resulting `Point`. `EvalParallel` evaluates batches, possibly in a
`concurrent.futures` pool, and returns the results in the order of the
input.

>>> from mads.evaluation import Evaluator, EvalParallel
>>> fun = Evaluator(lambda x: (sum(x), [x[0] - 1]))
>>> assert fun([2, 3]) == (5.0, (1.0,))
>>> with EvalParallel(fun, workers=2) as eval_all:
...     res = eval_all([[0, 0], [1, 1], [2, 3]])
>>> assert [r[0] for r in res] == [0, 2, 5]

A user function signals a failed evaluation by raising, e.g., an
`EvaluationError`:

>>> from mads.evaluation import EvaluationError
>>> def simulate(x):
...     raise EvaluationError('simulation diverged')
>>> f, c = Evaluator(simulate, verbose=-9)([1])
>>> assert f != f and c == ()

"""
import concurrent.futures
import numpy as np
from .utilities import utils

class EvaluationError(Exception):
    """raised by a user function to indicate a failed evaluation"""

def normalize_return_value(value):
    """return ``(f, c)`` from a scalar, ``(f, c)`` or ``(f, c, ok)``.

    ``ok == False`` or a non-finite value give ``(nan, ())``.

    >>> from mads.evaluation import normalize_return_value as nrv
    >>> assert nrv(3) == (3.0, ())
    >>> assert nrv((3, [1, -1])) == (3.0, (1.0, -1.0))
    >>> assert nrv((3, [1], False))[1] == ()
    >>> f, c = nrv(float('inf'))
    >>> assert f != f and c == ()

    """
    ok = True
    if isinstance(value, (tuple, list)):
        if len(value) == 3:
            value, c, ok = value
        elif len(value) == 2:
            value, c = value
        else:
            raise ValueError("an objective must return f, (f, c), or (f, c, ok)"
                             " but returned a sequence of length %d" % len(value))
    else:
        c = ()
    f = float(np.nan if value is None else value)
    c = () if c is None else tuple(float(ci) for ci in np.ravel(c))
    if not ok or not np.isfinite(f) or not np.all(np.isfinite(c)):
        return np.nan, ()
    return f, c

class Evaluator(object):
    """callable wrapper of the objective and constraints function `fun`.

    `fun` is called like ``fun(x)`` or, with ``with_discrete=True``, like
    ``fun(x, p)``. It returns a scalar `f`, or ``(f, c)``, or ``(f, c,
    ok)`` where ``c <= 0`` means feasible. An exception raised by `fun`
    is a failed evaluation and gives ``(nan, ())``.

    The optional `gradient` is a callable returning the gradient of `f`
    at `x` and is used by gradient pruned poll directions.
    """
    def __init__(self, fun, gradient=None, with_discrete=False, verbose=None):
        if not callable(fun):
            raise ValueError("objective function must be callable, was %s"
                             % str(fun))
        if gradient is not None and not callable(gradient):
            raise ValueError("gradient must be callable or None, was %s"
                             % str(gradient))
        self.fun = fun
        self.gradient = gradient
        self.with_discrete = with_discrete
        self.verbose = verbose
        self.failures = 0

    def __call__(self, x, p=()):
        try:
            if self.with_discrete:
                value = self.fun(np.array(x, copy=True), p)
            else:
                value = self.fun(np.array(x, copy=True))
            return normalize_return_value(value)
        except Exception as e:  # any failure of user code is a failed evaluation
            self.failures += 1
            utils.print_warning('evaluation at %s failed with %s: %s'
                                % (str(list(x)), type(e).__name__, str(e)),
                                '__call__', 'Evaluator',
                                iteration=self.failures, maxwarns=3,
                                verbose=self.verbose)
            return np.nan, ()

    def grad(self, x):
        """return the user gradient at `x` or `None`"""
        if self.gradient is None:
            return None
        try:
            g = np.asarray(self.gradient(np.array(x, copy=True)), dtype=float).ravel()
        except Exception as e:
            utils.print_warning('gradient evaluation failed with %s' % str(e),
                                'grad', 'Evaluator', verbose=self.verbose)
            return None
        if len(g) != len(x) or not np.all(np.isfinite(g)):
            return None
        return g

def _evaluate(args):
    """module level helper to make process pools work"""
    evaluator, x, p = args
    return evaluator(x, p)

class EvalParallel(object):
    """evaluate a batch of solutions, possibly in parallel.

    With ``workers <= 1`` evaluations are sequential, otherwise a
    `concurrent.futures.ThreadPoolExecutor` or, with ``pool='process'``,
    a `concurrent.futures.ProcessPoolExecutor` is used. In the latter
    case the evaluator must be pickable. The returned list has always the
    order of the input.

    Use as context manager to shut down the pool on exit::

        with EvalParallel(evaluator, 4) as eval_all:
            results = eval_all(X)

    """
    pools = {'thread': concurrent.futures.ThreadPoolExecutor,
             'process': concurrent.futures.ProcessPoolExecutor}

    def __init__(self, evaluator, workers=0, pool='thread'):
        if pool not in self.pools:
            raise ValueError("eval_pool must be in %s, was %s"
                             % (str(list(self.pools)), str(pool)))
        self.evaluator = evaluator
        self.workers = int(workers or 0)
        self.pool_type = pool
        self._executor = None

    @property
    def executor(self):
        """the lazily created pool or `None` for sequential evaluation"""
        if self._executor is None and self.workers > 1:
            self._executor = self.pools[self.pool_type](max_workers=self.workers)
        return self._executor

    def __call__(self, X, P=None):
        """return the list of ``(f, c)`` for all `x` in `X`.

        `P` is the list of discrete parts, by default ``()`` for all.
        """
        if P is None:
            P = len(X) * [()]
        args = [(self.evaluator, x, p) for x, p in zip(X, P)]
        if len(args) < 2 or self.executor is None:
            return [_evaluate(a) for a in args]
        return list(self.executor.map(_evaluate, args))

    def terminate(self):
        """shut down the pool after all pending evaluations are done"""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.terminate()

    def __getstate__(self):
        state = dict(self.__dict__)
        state['_executor'] = None
        return state
