# -*- coding: utf-8 -*-
"""in-memory logger of the iteration history of `MadsOptimizer`

"""
import numpy as np
from . import interfaces

class MadsDataLogger(interfaces.BaseDataLogger):
    """record one data row per iteration of a `MadsOptimizer` in memory.

    A row is recorded if ``number_of_times_called % modulo`` equals to
    zero, never if ``modulo==0``. The first three calls are always
    recorded. The recorded columns are `keys`:

    >>> import mads
    >>> es = mads.MadsOptimizer(mads.ff.sphere, 2 * [1], {'verbose': -9,
    ...                         'maxiter': 4, 'term_maxiter': True})
    >>> data = es.optimize().logger.data
    >>> assert data['iteration'][:4] == [1, 2, 3, 4]
    >>> assert all(f1 >= f2 for f1, f2 in zip(data['fbest'], data['fbest'][1:]))
    >>> assert len(es.result.history['mesh_size']) == len(data['iteration'])

    """
    keys = ('iteration', 'evaluations', 'fbest', 'hbest', 'mesh_size',
            'filter_size', 'success', 'time')

    def __init__(self, modulo=1):
        super(MadsDataLogger, self).__init__()
        self.modulo = modulo
        self.counter = 0
        """number of calls to `add`"""
        self._data = dict((k, []) for k in self.keys)
        self._last_iteration = None

    def add(self, optim=None, more_data=None, modulo=None):
        """append a data row from `optim` or the registered optimizer"""
        mod = modulo if modulo is not None else self.modulo
        self.counter += 1
        if mod == 0 or (self.counter > 3 and (self.counter - 1) % mod):
            return self
        if optim is None:
            if self.optim is None:
                raise AttributeError('call `add` with argument `optim` or'
                                     ' ``register(optim)`` before ``add()``')
            optim = self.optim
        elif self.optim is None:
            self.register(optim)
        if optim.countiter == self._last_iteration:
            return self  # e.g. final logging after the last iteration
        self._last_iteration = optim.countiter
        best = optim.best
        row = dict(
            iteration=optim.countiter,
            evaluations=optim.countevals,
            fbest=best.f if best is not None else np.nan,
            hbest=best.h if best is not None else np.inf,
            mesh_size=optim.mesh.size,
            filter_size=len(optim.filter),
            success=optim.last_success,
            time=optim.timer.elapsed,
        )
        for k in self.keys:
            self._data[k].append(row[k])
        for k, v in dict(more_data or {}).items():
            self._data.setdefault(k, []).append(v)
        return self

    def disp(self, idx=None):
        """print the recorded rows with indices `idx`, by default the last
        ten rows"""
        n = len(self._data['iteration'])
        if idx is None:
            idx = range(max((0, n - 10)), n)
        print(' '.join(k.rjust(11) for k in self.keys))
        for i in idx:
            print(' '.join(('%.4e' % self._data[k][i]).rjust(11)
                           if isinstance(self._data[k][i], float)
                           else str(self._data[k][i]).rjust(11)
                           for k in self.keys))
