# -*- coding: utf-8 -*-
"""versatile container for test objective functions.

For the time being this is probably best used like::

    from mads.fitness_functions import ff

Functions with constraints return ``(f, c)`` where ``c <= 0`` means
feasible, functions of mixed variables take ``(x, p)`` as arguments.
"""
import numpy as np
from numpy import array, isscalar

def sphere(x):
    """unbound test function, needed to test process pools, as long
    as the other test functions are defined within a class and
    only accessable via the class instance"""
    return sum(np.asarray(x)**2)

def _mixed_shift(p):
    return {'a': ([1, 1], 1.0), 'b': ([2, 0], 0.5), 'c': ([0, -1], 0.0)}[p[0]]

class FitnessFunctions(object):
    """collection of objective functions.

    """
    def sphere(self, x):
        """Sphere (squared norm) test objective function"""
        return sum(np.asarray(x)**2)
    def grad_sphere(self, x, *args):
        return 2 * array(x, dtype=float)
    def sphere_pos(self, x):
        """Sphere which fails for ``x[0] < 0``"""
        if x[0] < 0:
            raise ValueError("x[0] = %f < 0 is not defined" % x[0])
        return sum(np.asarray(x)**2)
    def constrained_sphere(self, x):
        """Sphere subject to ``x[0] >= 1``, the minimizer is ``(1, 0, ...)``"""
        x = np.asarray(x)
        return sum(x**2), [1 - x[0]]
    def disk_sphere(self, x):
        """shifted Sphere subject to ``|x| <= 1``, with nonlinear constraint
        and minimizer ``(1, 1, ...) / sqrt(N)``"""
        x = np.asarray(x)
        return sum((x - 2)**2), [sum(x**2) - 1]
    def scenario_quadratic(self, x):
        """convex quadratic in 4-D with minimizer ``(-1, 3, -3, 4)``"""
        x1, x2, x3, x4 = x
        return (x1**2 + 0.5 * x2**2 + x3**2 + 0.5 * x4**2 - x1 * x3 + x3 * x4
                - x1 - 3 * x2 + x3 - x4)
    def scenario_quadratic_gradient(self, x):
        x1, x2, x3, x4 = x
        return array([2 * x1 - x3 - 1, x2 - 3, 2 * x3 - x1 + x4 + 1, x4 + x3 - 1])
    def rosen(self, x, alpha=1e2):
        """Rosenbrock test objective function"""
        x = [x] if isscalar(x[0]) else x  # scalar into list
        x = np.asarray(x)
        f = [sum(alpha * (x[:-1]**2 - x[1:])**2 + (1. - x[:-1])**2) for x in x]
        return f if len(f) > 1 else f[0]  # 1-element-list into scalar
    def grad_rosen(self, x, *args):
        N = len(x)
        grad = np.zeros(N)
        grad[0] = 2 * (x[0] - 1) + 200 * (x[1] - x[0]**2) * -2 * x[0]
        i = np.arange(1, N - 1)
        grad[i] = 2 * (x[i] - 1) - 400 * (x[i+1] - x[i]**2) * x[i] + 200 * (x[i] - x[i-1]**2)
        grad[N-1] = 200 * (x[N-1] - x[N-2]**2)
        return grad
    def mixed_quadratic(self, x, p):
        """shifted Sphere in 2-D with a categorical variable ``p[0]`` in
        ``'abc'``, the minimizer is ``x=(0, -1), p=('c',)``"""
        shift, offset = _mixed_shift(p)
        return sum((np.asarray(x) - shift)**2) + offset
    def mixed_neighbors(self, x, p):
        """neighbors of ``(x, p)`` for `mixed_quadratic`, all other categories"""
        return [(x, (q,)) for q in 'abc' if q != p[0]]

ff = FitnessFunctions()
