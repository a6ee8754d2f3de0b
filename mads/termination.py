# -*- coding: utf-8 -*-
"""Termination criteria of `MadsOptimizer`.

`MadsStopDict` is the dictionary returned by `MadsOptimizer.stop`. It is
empty while the run continues and otherwise contains the first satisfied
criterion, checked in the order of `criteria`, with its threshold
value as dictionary value.
"""
import numpy as np

criteria = ('abort', 'delta', 'maxiter', 'maxfevals', 'timeout',
            'maxfails', 'rs_alpha', 'rs_noise', 'feasible', 'one_iteration')
"""termination reasons in order of priority"""

class MadsStopDict(dict):
    """keep and update a termination condition dictionary.

    The class methods depend on the attributes of `MadsOptimizer`, namely
    `settings`, `countiter`, `countevals`, `mesh`, `filter`,
    `consecutive_failures`, `rank_selection` and `check_abort`.

    Example
    -------
    >>> import mads
    >>> es = mads.MadsOptimizer(mads.ff.sphere, 3 * [1], {'verbose': -9,
    ...                         'maxiter': 5, 'term_maxiter': True})
    >>> assert es.stop() == {}
    >>> assert es.optimize().stop() == {'maxiter': 5}
    >>> assert es.countiter == 5

    :See: `MadsOptimizer.stop()`
    """
    def __init__(self, d={}):
        super(MadsStopDict, self).__init__(d)
        self.stoplist = []
        self.lastiter = 0

    def __call__(self, es, check=True):
        """update and return the termination conditions dictionary"""
        if not check:
            return self
        self._update(es)
        return self

    def conditions(self, es):
        """return a `list` of ``(key, condition, value)`` in order of priority"""
        s = es.settings
        tol_delta = s.tol_delta * (es.mesh.delta0 if s.tol_relative else 1)
        rs = es.rank_selection
        return [
            ('abort', es.check_abort(), True),
            ('delta', s.term_delta and es.mesh.size < tol_delta, tol_delta),
            ('maxiter', s.term_maxiter and es.countiter >= s.maxiter, s.maxiter),
            ('maxfevals', s.term_maxfevals and es.countevals >= s.maxfevals,
             s.maxfevals),
            ('timeout', s.term_maxtime and es.timer.elapsed >= s.maxtime,
             s.maxtime),
            ('maxfails', s.term_maxfails and es.consecutive_failures >= s.maxfails,
             s.maxfails),
            ('rs_alpha', rs is not None and s.rs_term_alpha and
             rs.alpha < s.rs_alpha_tol, s.rs_alpha_tol),
            ('rs_noise', rs is not None and s.rs_term_noise and
             rs.iz < s.rs_noise_tol, s.rs_noise_tol),
            ('feasible', s.run_until_feasible and
             es.filter.best_feasible is not None, True),
            ('one_iteration', s.run_one_iteration and es.countiter >= 1, 1),
        ]

    def _update(self, es):
        """test termination criteria and update dictionary"""
        self.clear()
        self.lastiter = es.countiter
        for key, cond, val in self.conditions(es):
            if cond:
                self._addstop(key, cond, val)
                break
        return self

    def _addstop(self, key, cond=True, val=None):
        if cond:
            self.stoplist.append(key)  # can have the same key twice
            self[key] = val

    def clear(self):
        """empty the stopdict"""
        for k in list(self):
            self.pop(k)

    @staticmethod
    def is_bounded(settings):
        """return `True` if an enabled criterion on iterations, evaluations
        or time guarantees termination"""
        return bool((settings.term_maxiter and np.isfinite(settings.maxiter)) or
                    (settings.term_maxfevals and np.isfinite(settings.maxfevals)) or
                    (settings.term_maxtime and np.isfinite(settings.maxtime)) or
                    settings.run_one_iteration)
