#!/usr/bin/env python
"""test module of `mads` package.

Usage::

    python -m mads.test -h    # print this docstring
    python -m mads.test       # doctest all (listed) files
    python -m mads.test list  # list files to be doctested
    python -m mads.test interfaces.py [file2 [file3 [...]]] # doctest only these

or equivalently by passing Python code::

    python -c "import mads.test; mads.test.main()"  # doctest all (listed) files
    python -c "import mads.test; mads.test.main('list')"  # show files in doctest list

File(name)s are interpreted within the package. Without a filename
argument, all files from attribute `files_for_doctest` are tested.
The doctests are also collected by ``pytest --doctest-modules mads``.
"""
import os, sys
import doctest

files_for_doctest = ['cache.py',
                     'constraints_handler.py',
                     'evaluation.py',
                     'extended_poll.py',
                     'filter.py',
                     'fitness_functions.py',
                     'fitness_models.py',
                     'interfaces.py',
                     'logger.py',
                     'mads.py',
                     'mesh.py',
                     'options_parameters.py',
                     'points.py',
                     'poll.py',
                     'rank_selection.py',
                     'search.py',
                     'termination.py',
                     'test.py',
                     os.path.join('utilities', 'math.py'),
                     os.path.join('utilities', 'utils.py'),
    ]
_files_written = ['_test-mads_Cache.pkl',
    ]
"""files written by the doc tests and hence, in case, to be deleted"""

def _clean_up(folder, start_matches, protected):
    """(permanently) remove entries in ``folder`` which begin with any of
    ``start_matches``, where ``""`` matches any string, and which are not
    in ``protected``.

    CAVEAT: use with care, as with ``"", ""`` as second and third
    arguments this could delete all files in ``folder``.
    """
    if not os.path.isdir(folder):
        return
    if not protected and "" in start_matches:
        raise ValueError(
            '''_clean_up(folder, [..., "", ...], []) is not permitted as it
               resembles "rm *"''')
    protected = protected + ["/"]
    for file_ in os.listdir(folder):
        if any(file_.startswith(s) for s in start_matches) \
                and not any(file_.startswith(p) for p in protected):
            os.remove(os.path.join(folder, file_))

def various_doctests():
    """various doc tests.

    This function describes test cases and might in future become
    helpful as an experimental tutorial as well. The main testing feature
    is by doctest with ``mads.test.main()`` in a Python shell or by
    ``python -m mads.test`` in a system shell.

    A simple first overall test, the mesh size goes below ``tol_delta``:

        >>> import numpy as np
        >>> import mads
        >>> x, es = mads.fmin(mads.ff.sphere, [1, -2, 3], {'verbose': -9})
        >>> assert es.stop() == {'delta': 1e-4} and es.result.fbest < 1e-7
        >>> assert es.result.iterations == es.countiter == len(es.logger.data['iteration'])

    Bounds and linear constraints are never violated, the linear
    constraint ``x[0] + x[1] >= 1`` is given as ``(A, l, u)``:

        >>> import mads
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [2, 2], {'verbose': -9,
        ...          'bounds': [[-1, -1], [4, 4]],
        ...          'linear_constraints': ([[1, 1]], [1], [np.inf])}).optimize()
        >>> assert all(pt.x.sum() >= 1 - 1e-9 and np.all(pt.x >= -1)
        ...            and np.all(pt.x <= 4) for pt in es.cache)
        >>> assert es.result.fbest <= 1

    An infeasible `x0` is rejected:

        >>> try:
        ...     mads.MadsOptimizer(mads.ff.sphere, [5, 0], {'bounds': [-1, 1]})
        ... except ValueError:
        ...     pass
        ... else:
        ...     raise AssertionError('infeasible x0 passed')

    A nonlinear constraint, infeasible trial points end up in the filter
    but never become the best point:

        >>> es = mads.MadsOptimizer(mads.ff.disk_sphere, [0, 0],
        ...                         {'verbose': -9}).optimize()
        >>> assert es.result.hbest == 0 and es.result.fbest <= 5
        >>> assert es.filter.is_antichain()
        >>> assert sum(es.result.xbest**2) <= 1

    Filter modes, the extreme barrier accepts only feasible points and
    the two-point filter keeps the best feasible and the least infeasible
    point:

        >>> es = mads.MadsOptimizer(mads.ff.disk_sphere, [0, 0],
        ...          {'verbose': -9, 'use_filter': 0}).optimize()
        >>> assert all(pt.h == 0 for pt in es.filter) and len(es.filter) == 1
        >>> assert any(pt.h > 0 for pt in es.cache) and es.result.hbest == 0
        >>> es = mads.MadsOptimizer(mads.ff.disk_sphere, [0, 0],
        ...          {'verbose': -9, 'use_filter': 2}).optimize()
        >>> assert len(es.filter) <= 2 and len(es.filter.infeasible) <= 1
        >>> assert es.filter.is_antichain() and es.result.hbest == 0

    Points with ``h <= hmin`` count as feasible, here ``x[0] >= 1 -
    sqrt(0.3)`` is good enough:

        >>> es = mads.MadsOptimizer(mads.ff.constrained_sphere, [0.5, 0],
        ...          {'verbose': -9, 'hmin': 0.3}).optimize()
        >>> assert es.x0_point.h == 0.25 and es.filter.best_feasible is not None
        >>> assert 0 < es.result.hbest <= 0.3 and es.result.xbest[0] < 0.5

    Termination on the evaluation budget:

        >>> es = mads.MadsOptimizer(mads.ff.rosen, 5 * [0.1], {'verbose': -9,
        ...          'maxfevals': 40}).optimize()
        >>> assert es.stop() == {'maxfevals': 40} and es.countevals >= 40

    Without ``count_cache``, cache hits are not charged to the budget:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'count_cache': False}).optimize()
        >>> assert es.cache.hits > 0 and es.countevals == es.cache.evaluations
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9}).optimize()
        >>> assert es.countevals == es.cache.evaluations + es.cache.hits

    Termination with the ``abort`` callable:

        >>> flag = []
        >>> es = mads.MadsOptimizer(mads.ff.rosen, 3 * [0.1], {'verbose': -9,
        ...                         'abort': lambda: bool(flag)})
        >>> _ = es.optimize(callback=lambda es: flag.append(1) if es.countiter >= 3 else None)
        >>> assert es.stop() == {'abort': True} and es.countiter == 3

    An interrupted iteration without success leaves the mesh unchanged:

        >>> size = es.mesh.size
        >>> _ = es.step()
        >>> assert es.countiter == 4 and es.mesh.size == size
        >>> assert es.last_success is False

    Further termination criteria, the time limit is checked before the
    first iteration:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'term_maxtime': True, 'maxtime': 0}).optimize()
        >>> assert es.stop() == {'timeout': 0} and es.countiter == 0
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'term_delta': False, 'term_maxfails': True,
        ...          'maxfails': 5}).optimize()
        >>> assert es.stop() == {'maxfails': 5} and es.consecutive_failures == 5
        >>> assert es.result.fbest == 0
        >>> es = mads.MadsOptimizer(mads.ff.constrained_sphere, [0, 0],
        ...          {'verbose': -9, 'run_until_feasible': True}).optimize()
        >>> assert es.stop() == {'feasible': True} and es.result.hbest == 0
        >>> assert es.x0_point.h > 0 and es.countiter >= 1
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'run_one_iteration': True}).optimize()
        >>> assert es.stop() == {'one_iteration': 1} and es.countiter == 1

    A relative ``tol_delta`` is multiplied by ``delta0``:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'delta0': 2, 'tol_delta': 1e-3, 'tol_relative': True}).optimize()
        >>> assert es.stop() == {'delta': 2e-3} and 1e-3 < es.mesh.size < 2e-3

    Ranking and selection terminates on its significance level or its
    indifference zone, ``0.8 * 0.95**3 < 0.7`` and ``100 * 0.95**3 < 90``:

        >>> opts = {'verbose': -9, 'run_stochastic': True, 'seed': 1,
        ...         'rs_term_alpha': True, 'rs_alpha_tol': 0.7}
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 1], opts).optimize()
        >>> assert es.stop() == {'rs_alpha': 0.7} and es.rank_selection.alpha < 0.7
        >>> opts = {'verbose': -9, 'run_stochastic': True, 'seed': 1,
        ...         'rs_term_noise': True, 'rs_noise_tol': 90}
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 1], opts).optimize()
        >>> assert es.stop() == {'rs_noise': 90} and es.rank_selection.iz < 90

    When several criteria hold, only the first in the order abort, delta,
    maxiter, maxfevals, timeout, maxfails, rs_alpha, rs_noise, feasible,
    one_iteration is reported:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'run_one_iteration': True, 'maxiter': 1,
        ...          'term_maxiter': True}).optimize()
        >>> assert es.stop() == {'maxiter': 1} and es.countiter == 1
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'abort': lambda: True, 'term_maxtime': True,
        ...          'maxtime': 0}).optimize()
        >>> assert es.stop() == {'abort': True} and es.countiter == 0
        >>> opts.update(rs_term_alpha=True, rs_alpha_tol=0.7)
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 1], opts).optimize()
        >>> assert es.stop() == {'rs_alpha': 0.7} and es.rank_selection.iz < 90

    Poll orders:

        >>> for order in ('Consecutive', 'Alternating', 'Random', 'Dynamic',
        ...               'DynamicRanked', 'SimplexGradient', 'Surrogate'):
        ...     es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...              'poll_order': order, 'seed': 3}).optimize()
        ...     assert es.result.fbest < 1e-7, (order, es.result.fbest)

    A custom poll order evaluates the frame in reversed order:

        >>> def reversed_order(points, es):
        ...     return list(range(len(points)))[::-1]
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'poll_order': 'Custom', 'poll_order_custom': reversed_order})
        >>> assert es.optimize().result.fbest < 1e-7

    Poll strategies, the ``Gradient_*`` strategies use the passed gradient:

        >>> for strategy in ('Standard_n+1', 'MADS_2n', 'MADS_n+1',
        ...                  'Gradient_2n', 'Gradient_n+1', 'Gradient_3n_L2',
        ...                  'Gradient_3n2n'):
        ...     es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...              'poll_strategy': strategy, 'seed': 4},
        ...              gradient=mads.ff.grad_sphere).optimize()
        ...     assert es.result.fbest < 1e-5, (strategy, es.result.fbest)

    A single descent direction from the gradient of Rosenbrock:

        >>> x0 = [0.1, 0.1]
        >>> es = mads.MadsOptimizer(mads.ff.rosen, x0, {'verbose': -9,
        ...          'poll_strategy': 'Gradient_3n_L1', 'maxiter': 50,
        ...          'term_maxiter': True}, gradient=mads.ff.grad_rosen).optimize()
        >>> assert es.result.fbest < mads.ff.rosen(x0)

    A custom positive spanning set given by its basis:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'poll_strategy': 'Custom_2n', 'poll_basis': [[1, 1], [1, -1]]})
        >>> assert es.optimize().result.fbest < 1e-6

    Search with the quadratic surrogate and with Latin hypercube samples:

        >>> es = mads.MadsOptimizer(mads.ff.scenario_quadratic, 4 * [0],
        ...          {'verbose': -9, 'search': ['LQ'], 'seed': 1}).optimize()
        >>> assert 'delta' in es.stop()
        >>> assert np.allclose(es.result.xbest, [-1, 3, -3, 4], atol=1e-3)
        >>> assert any(pt.origin == 'search' for pt in es.cache)
        >>> es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...          'bounds': [-5, 5], 'seed': 2,
        ...          'search': [{'type': 'LHS', 'n_points': 4}]}).optimize()
        >>> assert 'delta' in es.stop() and es.result.fbest < 1e-6

    A custom search generator:

        >>> es = mads.MadsOptimizer(mads.ff.sphere, [3, 3], {'verbose': -9,
        ...          'search': [{'type': 'Custom', 'n_iter': 2,
        ...                      'generator': lambda es: [[0, 0]]}]}).optimize()
        >>> assert es.result.fbest == 0 and es.result.evals_best == 2

    Further search strategies, all of them evaluate points of origin
    ``'search'``:

        >>> for search in ({'type': 'Mesh', 'n_points': 3}, {'type': 'SPollI'},
        ...                {'type': 'GPollI', 'n_points': 2},
        ...                {'type': 'SPS-LQ', 'n_points': 2}):
        ...     es = mads.MadsOptimizer(mads.ff.sphere, [1, 2], {'verbose': -9,
        ...              'search': [search], 'seed': 5},
        ...              gradient=mads.ff.grad_sphere).optimize()
        ...     assert es.result.fbest < 1e-6, (search, es.result.fbest)
        ...     assert any(pt.origin == 'search' for pt in es.cache), search

    The quadratic surrogate minimized with the ``'mads'`` surrogate
    optimizer and its own options:

        >>> es = mads.MadsOptimizer(mads.ff.scenario_quadratic, 4 * [0],
        ...          {'verbose': -9, 'seed': 1, 'sur_optimizer': 'mads',
        ...           'search': [{'type': 'LQ', 'optimizer': 'mads', 'n_points': 2,
        ...                       'options': {'maxiter': 30}}]}).optimize()
        >>> assert 'delta' in es.stop() and es.result.fbest < -7.49  # f(xopt) = -7.5
        >>> assert any(pt.origin == 'search' for pt in es.cache)

    Mixed variables, the extended poll around the neighbor ``('b',)``
    leaves the local minimizer of category ``'a'``:

        >>> es = mads.MadsOptimizer(mads.ff.mixed_quadratic, [1, 1],
        ...          {'verbose': -9, 'epoll_trigger_f': 5}, p0=('a',),
        ...          neighbors=mads.ff.mixed_neighbors).optimize()
        >>> assert es.result.pbest == ('c',) and es.result.fbest < 1e-7
        >>> assert es.extended_poller.count_triggered >= 1

    Noisy objective with ranking and selection, the samples add to the
    evaluations:

        >>> rng = np.random.default_rng(7)
        >>> def noisy_sphere(x):
        ...     return sum(np.asarray(x)**2) + 0.01 * rng.standard_normal()
        >>> es = mads.MadsOptimizer(noisy_sphere, [1, 1], {'verbose': -9,
        ...          'run_stochastic': True, 'rs_iz0': 0.1, 'maxiter': 15,
        ...          'term_maxiter': True, 'seed': 1}).optimize()
        >>> assert es.result.fbest < 1 and es.incumbent is es.best
        >>> assert es.countevals > es.cache.evaluations
        >>> assert es.rank_selection.alpha < 0.8

    Parallel evaluations with threads and processes, the latter needs a
    pickable function:

        >>> for pool in ('thread', 'process'):
        ...     x, es = mads.fmin(mads.fitness_functions.sphere, [1, 2, 3],
        ...                       {'verbose': -9, 'eval_workers': 2,
        ...                        'eval_pool': pool, 'poll_complete': True})
        ...     assert es.result.fbest < 1e-7 and es.eval_all._executor is None

    Failed evaluations are not accepted and do not stop the run:

        >>> es = mads.MadsOptimizer(mads.ff.sphere_pos, [1, 1], {'verbose': -9})
        >>> es = es.optimize()
        >>> assert es.result.xbest[0] >= 0 and es.result.fbest < 1e-7
        >>> assert any(pt.failed for pt in es.cache)

    The cache can be saved and loaded, the second run needs no new
    evaluations:

        >>> import os
        >>> opts = {'verbose': -9, 'name': '_test-mads', 'save_cache': True}
        >>> es1 = mads.MadsOptimizer(mads.ff.sphere, [1, 2], opts).optimize()
        >>> opts['load_cache'] = True
        >>> es2 = mads.MadsOptimizer(mads.ff.sphere, [1, 2], opts).optimize()
        >>> assert es1.cache.evaluations > 0 and es2.cache.evaluations == 0
        >>> assert es2.result.fbest == es1.result.fbest
        >>> os.remove(es2.cache_filename)

    Versatile options can be changed during the run:

        >>> es = mads.MadsOptimizer(mads.ff.rosen, [0.1, 0.1], {'verbose': -9})
        >>> _ = es.optimize(iterations=2).set_options(maxiter=4, term_maxiter=True)
        >>> assert es.optimize().stop() == {'maxiter': 4}

    The optimizer can be pickled without the objective function:

        >>> import pickle
        >>> es = mads.MadsOptimizer(lambda x: sum(np.asarray(x)**2), [1, 1],
        ...                         {'verbose': -9}).optimize(iterations=2)
        >>> es2 = pickle.loads(es.pickle_dumps())
        >>> es2.evaluator.fun = es2.fun = es.fun
        >>> assert es2.optimize().result.fbest < 1e-7

    """

def doctest_files(file_list=files_for_doctest, **kwargs):
    """doctest all (listed) files of the `mads` package.

    Details: accepts ``verbose`` and all other keyword arguments that
    `doctest.testfile` would accept, while negative ``verbose`` values
    are passed as 0.
    """
    # print("__name__ is", __name__, sys.modules[__name__])
    # print(__package__)
    if 'verbose' in kwargs and kwargs['verbose'] < 0:
        kwargs['verbose'] = 0
    if 'verbose' in kwargs:
        verbosity_here = kwargs['verbose']
    else:
        verbosity_here = 0  # whether to print which file is being tested
    failures = 0
    for file_ in file_list:
        file_ = file_.strip().strip(os.path.sep)
        if file_.startswith('mads' + os.path.sep):
            file_ = file_[5:]
        if verbosity_here >= 0:
            print('doctesting %s ...' % file_,
                  ' ' * (max(len(_file) for _file in file_list) -
                         len(file_)),
                  end="")
            sys.stdout.flush()
        protected_files = os.listdir('.')
        report = doctest.testfile(file_,
                                  package=__package__,
                                  **kwargs)
        _clean_up('.', _files_written, protected_files)
        failures += report[0]
        if verbosity_here >= 0:
            print(report)
    return failures

def get_version():
    try:
        with open(__file__[:-7] + '__init__.py', 'r') as f:
            for line in f.readlines():
                if line.startswith('__version__'):
                    return line.split('=')[1].strip().strip('"')
    except OSError:
        return ""

def main(*args, **kwargs):
    """test the `mads` package.

    The first argument can be '-h' or '--help' or 'list' to list all
    files to be tested. Otherwise, arguments can be file(name)s to be
    tested, where names are interpreted relative to the package root
    and a leading 'mads' + path separator is ignored.

    By default all files are tested.

    :See also: ``python -c "import mads.test; help(mads.test)"``
    """
    if len(args) > 0:
        if args[0].startswith(('-h', '--h')):
            print(__doc__)
            exit(0)
        elif args[0].startswith('list'):
            for file_ in files_for_doctest:
                print(file_)
            exit(0)
    else:
        v = get_version()
        print("doctesting `mads` package%s by calling `doctest_files`:"
              % ((" (v%s)" % v) if v else ""))
    return doctest_files(args if args else files_for_doctest, **kwargs)

if __name__ == "__main__":
    exit(main(*sys.argv[1:]) > 0)  # 0 if failures == 0 else 1
