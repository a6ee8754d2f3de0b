# -*- coding: utf-8 -*-
"""Options and frozen settings for MADS.

`MadsOptions` is a `dict` of options with string-annotated default
values, `MadsSettings` is the immutable `collections.namedtuple` which
`MadsOptimizer` creates from the options at construction and uses
thereafter.
"""
import collections
import warnings as _warnings
from math import inf  # used to eval options
import numpy as np
from .utilities import utils
from .mesh import poll_strategies
from .constraints_handler import degeneracy_schemes
from .filter import filter_modes

poll_orders = ('Consecutive', 'Alternating', 'Random', 'Dynamic',
               'DynamicRanked', 'SimplexGradient', 'Surrogate', 'Custom')
surrogate_optimizers = ('mads', 'custom')
eval_pools = ('thread', 'process')

def mads_default_options_(  # to get keyword completion back
    # the following string arguments are evaluated if they are not in `string_options`
    abort='None  #v callable without arguments returning True to abort the run,'\
                  ' checked every iteration and every evaluation batch',
    accelerate='False  # refine the mesh with mesh_refine**2 from the second consecutive failure on',
    bounds='[None, None]  # lower (=bounds[0]) and upper domain boundaries, each a scalar or a list/vector',
    count_cache='True  # charge cache hits to the evaluation budget',
    degeneracy_scheme='sequential  # or random, closest, full: handling of degenerate active linear constraints',
    delta0='1.0  # initial mesh size',
    delta_max='inf  # maximal mesh size',
    delta_min='0  # minimal mesh size, refine never goes below',
    epoll_complete='False  # do not stop an extended poll step at the first success',
    epoll_max_steps='N + 1  # maximal number of poll steps around a discrete neighbor in an extended poll',
    epoll_trigger_f='0.01  # absolute f-distance to the best feasible f which triggers an extended poll',
    epoll_trigger_h='0.05  # h-distance to hmin which triggers an extended poll',
    eval_pool='thread  # or process, type of pool for parallel evaluations',
    eval_workers='0  # number of parallel evaluation workers, 0 or 1 evaluate sequentially',
    hmax='1.0  # points with infeasibility h > hmax are not accepted in the filter',
    hmin='0.0  # points with infeasibility h <= hmin count as feasible',
    lhs_strength='2  # Latin hypercube search samples lhs_strength * n_points points',
    linear_constraints='None  # tuple (A, l, u) of the linear constraints l <= A x <= u',
    load_cache='False  # warm start with the cache file "<name>_Cache.pkl" if available',
    maxfails='50  #v maximal number of consecutive unsuccessful iterations, see term_maxfails',
    maxfevals='50000  #v maximal number of function evaluations, see term_maxfevals',
    maxiter='1000  #v maximal number of iterations, see term_maxiter',
    maxtime='3600  #v maximal run time in seconds, see term_maxtime',
    mesh_coarsen='1.0  # mesh coarsening factor >= 1 after a successful iteration',
    mesh_refine='0.5  # mesh refinement factor in (0, 1) after an unsuccessful iteration',
    n_poll_complete='False  # evaluate all discrete neighbors of the poll center',
    n_searches='2  # maximal number of strategies from option search to run each iteration',
    name='mads  # problem name, used as prefix of the cache file name',
    poll_basis='None  # matrix with directions as columns for Custom_2n and Custom_n+1',
    poll_center='0  #v 0 polls around the best feasible point, k >= 1 around the k-th least infeasible point',
    poll_complete='False  #v evaluate the whole frame instead of stopping at the first success',
    poll_order='Consecutive  # or Alternating, Random, Dynamic, DynamicRanked, SimplexGradient, Surrogate, Custom',
    poll_order_custom='None  # callable(points, optimizer) returning the evaluation order (indices) for poll_order Custom',
    poll_strategy='Standard_2n  # or Standard_n+1, Custom_2n, Custom_n+1, MADS_2n, MADS_n+1, Gradient_2n,'\
                  ' Gradient_n+1, Gradient_3n_L1, Gradient_3n_L2, Gradient_3n_LInf, Gradient_3n2n',
    poll_surrogate='None  # predictor factory model(X, F) -> predict for poll_order Surrogate,'\
                   ' None uses the quadratic model of mads.fitness_models',
    remove_redundancy='True  # remove zero and parallel rows from the linear constraints',
    rs_alpha0='0.8  # initial significance level of ranking and selection',
    rs_alpha_rho='0.95  # decay factor of the significance level after each selection',
    rs_alpha_tol='0.05  #v termination threshold for the significance level, see rs_term_alpha',
    rs_iz0='100  # initial indifference zone of ranking and selection',
    rs_iz_rho='0.95  # decay factor of the indifference zone after each selection',
    rs_max_samples='100  # maximal number of samples of a candidate during a selection',
    rs_noise='0  # sampling stops when all standard errors of the sample means are <= rs_noise',
    rs_noise_tol='1  #v termination threshold for the indifference zone, see rs_term_noise',
    rs_s0='5  # initial number of samples of each candidate',
    rs_term_alpha='False  #v terminate when the significance level is below rs_alpha_tol',
    rs_term_noise='False  #v terminate when the indifference zone is below rs_noise_tol',
    run_one_iteration='False  #v terminate after one iteration',
    run_stochastic='False  # noisy objective, the incumbent is chosen by ranking and selection',
    run_until_feasible='False  #v terminate when a feasible point is found',
    save_cache='False  # save the cache to "<name>_Cache.pkl" when the run terminates',
    scale='2  # base of logarithmic direction scaling from finite bound ranges, 0 for no scaling',
    search='[]  # search strategies, each a type code or a dict with keys type, n_iter, n_points,'\
               ' complete, recal, generator, predictor, optimizer, options, see mads.search',
    seed='None  # seed for numpy.random.default_rng, None for an unpredictable seed',
    sur_optimizer='mads  # or custom, default optimizer of surrogate searches',
    term_delta='True  #v terminate when the mesh size is below tol_delta',
    term_maxfails='False  #v terminate after maxfails consecutive unsuccessful iterations',
    term_maxfevals='True  #v terminate after maxfevals function evaluations',
    term_maxiter='False  #v terminate after maxiter iterations',
    term_maxtime='False  #v terminate after maxtime seconds',
    tol_bind='0.05  # linear constraints closer than tol_bind to the poll center are active',
    tol_cache='None  # cache tolerance, None means tol_delta',
    tol_delta='1e-4  #v mesh size tolerance, see term_delta',
    tol_relative='False  #v tol_delta is relative to delta0',
    use_filter='1  # 0 extreme barrier (only feasible points are accepted), 1 multipoint filter,'\
                   ' 2 two-point filter',
    verb_disp='100  #v verbosity: display console output every verb_disp iteration',
    verb_log='1  #v verbosity: record the iteration history every verb_log iteration, 0 for never',
    verbose='1  #v verbosity of initial/final message, -1 is very quiet, -9 maximally quiet',
    ):
    """use this function to get keyword completion for `MadsOptions`.

    ``mads.MadsOptions('substr')`` provides even substring search.

    returns default options as a `dict` (not a `mads.MadsOptions` `dict`).
    """
    return dict(locals())  # is defined before and used by MadsOptions, so it can't return MadsOptions

mads_default_options = mads_default_options_()  # will later be reassigned as MadsOptions(dict)
mads_versatile_options = tuple(sorted(k for (k, v) in mads_default_options.items()
                                      if v.find(' #v ') > 0))
mads_allowed_options_keys = dict([s.lower(), s] for s in mads_default_options)

string_options = ('degeneracy_scheme', 'eval_pool', 'name', 'poll_order',
                  'poll_strategy', 'sur_optimizer')
"""options with string values which are not evaluated"""

MadsSettings = collections.namedtuple('MadsSettings', sorted(mads_default_options))
"""immutable settings, created with `MadsOptions.to_namedtuple`"""

def safe_str(s, known_words=None):
    """return ``s`` as `str` safe to `eval` or raise an exception.

    Strings in the `dict` `known_words` are replaced by their values
    surrounded with a space, which the caller considers safe to evaluate
    with `eval` afterwards.

    >>> from mads.options_parameters import safe_str
    >>> safe_str('int(p)', {'int': 'int', 'p': 3.1})
    ' int ( 3.1 )'
    >>> try:
    ...     safe_str('import os')
    ... except ValueError:
    ...     pass
    ... else:
    ...     raise AssertionError('unsafe string passed')

    """
    safe_chars = ' 0123456789.,+-*/()[]e'
    if s != str(s):
        return str(s)
    if not known_words:
        known_words = {}
    stest = s[:]  # test this string
    sret = s[:]  # return this string
    for word in sorted(known_words.keys(), key=len, reverse=True):
        stest = stest.replace(word, '  ')
        sret = sret.replace(word, " %s " % known_words[word])
    for c in stest:
        if c not in safe_chars:
            raise ValueError('"%s" is not a safe string'
                             ' (known words are %s)' % (s, str(known_words)))
    return sret

_safe_words = dict([k, k] for k in ['True', 'False', 'None', 'N', 'int',
                                    'np.inf', 'inf', 'np.sqrt', '{}'])

class MadsOptions(dict):
    """a dictionary with the available options and their default values
    for class `MadsOptimizer`.

    ``MadsOptions()`` returns a `dict` with all available options and their
    default values with a comment string.

    ``MadsOptions('poll')`` returns a subset of recognized options that
    contain 'poll' in their keyword name or (default) value or
    description.

    ``MadsOptions(opts)`` returns the subset of recognized options in
    ``dict(opts)``.

    Option values can be "written" in a string and, when passed to
    `MadsOptimizer` or `fmin`, are evaluated using "N" as known value for
    the dimension. All default option values are given as such a string.
    Keys are case insensitive and can be abbreviated as long as they are
    unique:

    >>> import mads
    >>> opts = mads.MadsOptions({'MAXITER': 10, 'poll_str': 'MADS_n+1'})
    >>> assert opts == {'maxiter': 10, 'poll_strategy': 'MADS_n+1'}
    >>> assert 'tol_delta' in mads.MadsOptions('tol')
    >>> try:
    ...     mads.MadsOptions({'not_an_option': 1})
    ... except ValueError:
    ...     pass
    ... else:
    ...     raise AssertionError('invalid key passed')

    Details
    -------
    Options starting with ``term_`` switch termination criteria on or
    off, the respective thresholds are `tol_delta`, `maxiter`,
    `maxfevals`, `maxtime` and `maxfails`.

    :See also: `MadsOptimizer`, `surrogate_options`, `MadsSettings`
    """
    @staticmethod
    def defaults():
        """return a dictionary with default option values and description"""
        return mads_default_options

    @staticmethod
    def versatile_options():
        """return list of options that can be changed at any time (not
        only be initialized).

        The string ' #v ' in the default value indicates a versatile
        option that can be changed any time via `MadsOptimizer.set_options`.
        """
        return mads_versatile_options

    def check(self, options=None):
        """check for ambiguous and invalid keys"""
        return self.check_values(options)

    def check_values(self, options=None):
        corrected_key = MadsOptions('unchecked').corrected_key
        validated_keys = []
        original_keys = []
        if options is None:
            options = self
        for key in options:
            correct_key = corrected_key(key)
            if correct_key is None:
                raise ValueError('%s is not a valid option.\n'
                                 'Similar valid options are %s\n'
                                 'Valid options are %s' %
                                (key, str(list(MadsOptions(str(key)[:3]))),
                                 str(sorted(mads_default_options))))
            if correct_key in validated_keys:
                if key == correct_key:
                    key = original_keys[validated_keys.index(key)]
                raise ValueError("%s was not a unique key for %s option"
                    % (key, correct_key))
            validated_keys.append(correct_key)
            original_keys.append(key)
        return options

    def __init__(self, s=None, **kwargs):
        """return an `MadsOptions` instance.

        Return default options if ``s is None and not kwargs``,
        or all options whose name or description contains `s`, if
        `s` is a (search) string (case is disregarded in the match),
        or with entries from dictionary `s` as options,
        or with kwargs as options if ``s is None``,
        in any of the latter cases not complemented with default options
        or settings.
        """
        if s is None and not kwargs:
            super(MadsOptions, self).__init__(MadsOptions.defaults())
            s = 'nocheck'
        elif utils.is_str(s) and not s.startswith('unchecked'):
            super(MadsOptions, self).__init__(MadsOptions().match(s))
            s = 'nocheck'
        elif isinstance(s, dict):
            if kwargs:
                raise ValueError('Dictionary argument must be the only argument')
            super(MadsOptions, self).__init__(s)
        elif kwargs and (s is None or s.startswith('unchecked')):
            super(MadsOptions, self).__init__(kwargs)
        elif utils.is_str(s):  # 'unchecked' without kwargs
            super(MadsOptions, self).__init__()
        else:
            raise ValueError('The first argument must be a string or a dict or a keyword argument or `None`')
        if not utils.is_str(s) or not s.startswith(('unchecked', 'nocheck')):
            self.check()
            for key in list(self.keys()):
                correct_key = self.corrected_key(key)
                if key != correct_key:
                    self[correct_key] = self.pop(key)
        self._lock_setting = False

    def corrected_key(self, key):
        """return the matching valid key, if ``key.lower()`` is a unique
        starting sequence to identify the valid key, ``else None``
        """
        matching_keys = []
        key = str(key).lower()
        if key in mads_allowed_options_keys:
            return mads_allowed_options_keys[key]
        for allowed_key in mads_allowed_options_keys:
            if allowed_key.startswith(key):
                if len(matching_keys) > 0:
                    return None
                matching_keys.append(allowed_key)
        return mads_allowed_options_keys[matching_keys[0]] if len(matching_keys) == 1 else None

    def init(self, dict_or_str, val=None, warn=True):
        """initialize one or several options.

        `dict_or_str` is a dictionary if ``val is None``, otherwise a
        key. Only known keys are accepted.
        """
        dic = dict_or_str
        if val is not None:
            dic = {dict_or_str: val}
        self.check(dic)
        for key, val in dic.items():
            key = self.corrected_key(key)
            if key not in MadsOptions.defaults():
                if warn:
                    utils.print_warning('key ' + str(key) + ' ignored',
                                        'init', 'MadsOptions')
            else:
                self[key] = val
        return self

    def set(self, dic, val=None, force=False):
        """assign versatile options.

        Method `MadsOptions.versatile_options` () gives the versatile
        options, use `init()` to set the others. With `force`, also
        non-versatile options are set.
        """
        if val is not None:  # dic is a key in this case
            dic = {dic: val}
        for key_original, val in list(dict(dic).items()):
            key = self.corrected_key(key_original)
            if key is None:
                raise ValueError('%s is not a valid option' % str(key_original))
            if (not self._lock_setting or
                key in MadsOptions.versatile_options() or
                force):
                self[key] = val
            else:
                utils.print_warning('key ' + str(key_original) +
                      ' ignored (not recognized as versatile)',
                               'set', 'MadsOptions')
        return self  # to allow o = MadsOptions(o).set(new)

    def complement(self):
        """add all missing options with their default values"""
        self.check()
        for key in MadsOptions.defaults():
            if key not in self:
                self[key] = MadsOptions.defaults()[key]
        return self

    def __call__(self, key, default=None, loc=None):
        """evaluate and return the value of option `key` on the fly, or
        return those options whose name or description contains `key`,
        case disregarded.

        Options in `string_options` are not evaluated but only stripped
        of their comment. `loc` defines ``N``.
        """
        try:
            val = self[key]
        except KeyError:
            return self.match(key)
        if loc is None:
            loc = {}
        if val is None and default is not None:
            val = default
        if utils.is_str(val):
            val = val.split('#')[0].strip()  # remove comments
            if key not in string_options:
                val = eval(safe_str(val, _safe_words).replace('N one', 'None'),
                           {'np': np, 'inf': inf}, dict(loc))
        return val

    def eval(self, key, default=None, loc=None, correct_key=True):
        """evaluate and set the specified option value in environment
        `loc`. Many options need ``N`` to be defined in `loc`.
        """
        if correct_key:
            key = self.corrected_key(key)
        self[key] = self(key, default, loc)
        return self[key]

    def evalall(self, loc=None, defaults=None):
        """evaluate all option values in environment `loc`"""
        self.check()
        for k in list(self.keys()):
            self.eval(k, None, loc)
        self._lock_setting = True
        return self

    def match(self, s=''):
        """return all options that match, in the name or the description,
        with string `s`, case is disregarded.

        Example: ``mads.MadsOptions().match('verb')`` returns the verbosity
        options.
        """
        match = s.lower()
        res = {}
        for k in sorted(self):
            s = str(k) + '=\'' + str(self[k]) + '\''
            if match in s.lower():
                res[k] = self[k]
        return MadsOptions(res)

    @property
    def to_namedtuple(self):
        """return the complemented options as immutable `MadsSettings`"""
        opts = dict(MadsOptions.defaults())
        opts.update(self)
        return MadsSettings(**opts)

    def from_namedtuple(self, t):
        """update options from a `collections.namedtuple`.
        :See also: `to_namedtuple`
        """
        return self.update(t._asdict())

    def pprint(self, linebreak=80):
        for i in sorted(self.items()):
            s = str(i[0]) + "='" + str(i[1]) + "'"
            a = s.split(' ')

            # print s in chunks
            line = ''  # start entire to the left
            while a:
                while a and len(line) + len(a[0]) < linebreak:
                    line += ' ' + a.pop(0)
                print(line)
                line = '        '  # tab for subsequent lines

mads_default_options = MadsOptions(mads_default_options_())

def validate_settings(settings, dimension):
    """raise `ValueError` naming the offending option if `settings` are
    inconsistent, otherwise return `settings`.

    >>> import mads
    >>> from mads.options_parameters import validate_settings
    >>> s = mads.MadsOptions({'poll_order': 'Spiral'}).complement().evalall({'N': 2})
    >>> try:
    ...     validate_settings(s.to_namedtuple, 2)
    ... except ValueError as e:
    ...     assert 'poll_order' in str(e)
    ... else:
    ...     raise AssertionError('invalid poll_order passed')

    """
    s = settings
    def check(name, cond, requirement):
        if not cond:
            raise ValueError("option %s=%s is invalid: %s"
                             % (name, repr(getattr(s, name)), requirement))
    check('poll_strategy', s.poll_strategy in poll_strategies,
          'must be in %s' % str(poll_strategies))
    check('poll_order', s.poll_order in poll_orders,
          'must be in %s' % str(poll_orders))
    check('degeneracy_scheme', s.degeneracy_scheme in degeneracy_schemes,
          'must be in %s' % str(degeneracy_schemes))
    check('use_filter', s.use_filter in filter_modes,
          'must be in %s' % str(filter_modes))
    check('eval_pool', s.eval_pool in eval_pools, 'must be in %s' % str(eval_pools))
    check('sur_optimizer', s.sur_optimizer in surrogate_optimizers
          or callable(s.sur_optimizer),
          'must be in %s or callable' % str(surrogate_optimizers))
    check('delta0', s.delta0 > 0, 'must be > 0')
    check('delta_max', s.delta_max >= s.delta0, 'must be >= delta0')
    check('delta_min', 0 <= s.delta_min <= s.delta0, 'must be in [0, delta0]')
    check('mesh_refine', 0 < s.mesh_refine < 1, 'must be in (0, 1)')
    check('mesh_coarsen', s.mesh_coarsen >= 1, 'must be >= 1')
    check('hmin', 0 <= s.hmin < s.hmax, 'must be in [0, hmax)')
    check('tol_cache', s.tol_cache is None or s.tol_cache >= 0, 'must be >= 0')
    check('tol_delta', s.tol_delta >= 0, 'must be >= 0')
    check('tol_bind', s.tol_bind >= 0, 'must be >= 0')
    check('poll_center', int(s.poll_center) == s.poll_center >= 0,
          'must be a nonnegative integer')
    check('n_searches', s.n_searches >= 0, 'must be >= 0')
    check('poll_basis', not s.poll_strategy.startswith('Custom')
          or s.poll_basis is not None, 'is needed for %s' % s.poll_strategy)
    check('poll_order_custom', s.poll_order != 'Custom'
          or callable(s.poll_order_custom), 'must be callable for poll_order Custom')
    check('abort', s.abort is None or callable(s.abort), 'must be callable or None')
    check('epoll_max_steps', s.epoll_max_steps >= 0, 'must be >= 0')
    check('rs_s0', not s.run_stochastic or s.rs_s0 >= 2, 'must be >= 2')
    check('rs_alpha0', not s.run_stochastic or 0 < s.rs_alpha0 < 1,
          'must be in (0, 1)')
    check('linear_constraints', s.linear_constraints is None
          or len(s.linear_constraints) == 3, 'must be None or (A, l, u)')
    if s.poll_basis is not None:
        check('poll_basis', np.shape(s.poll_basis)[0] == dimension,
              'must have %d rows' % dimension)
    if s.eval_workers and s.eval_workers > 1 and s.run_stochastic:
        _warnings.warn('ranking and selection samples are evaluated sequentially')
    return settings

def surrogate_options(**kwargs):
    """return `MadsOptions` to optimize a surrogate with `MadsOptimizer`.

    These are the defaults for the ``'mads'`` surrogate optimizer of
    surrogate searches. `kwargs` overwrite the returned values.

    >>> import mads
    >>> opts = mads.surrogate_options(maxiter=20)
    >>> assert opts['maxiter'] == 20 and opts['use_filter'] == 0
    >>> assert opts['term_maxiter'] is True and opts['search'] == []

    """
    opts = MadsOptions(dict(
        n_searches=0,
        search=[],
        poll_strategy='Standard_2n',
        poll_order='Consecutive',
        poll_center=0,
        poll_complete=False,
        n_poll_complete=False,
        epoll_complete=False,
        tol_delta=1e-3,
        maxiter=50,
        maxfevals=5000,
        maxtime=inf,
        maxfails=inf,
        term_delta=True,
        term_maxiter=True,
        term_maxfevals=True,
        term_maxtime=False,
        term_maxfails=False,
        tol_relative=False,
        load_cache=False,
        save_cache=False,
        count_cache=False,
        delta0=1.0,
        delta_max=inf,
        mesh_coarsen=1.0,
        epoll_trigger_f=0.01,
        epoll_trigger_h=0.05,
        run_one_iteration=False,
        run_until_feasible=False,
        run_stochastic=False,
        use_filter=0,
        tol_bind=1e-3**0.5,
        tol_cache=1e-3,
        verbose=-9,
        verb_log=0,
    ))
    return opts.init(kwargs) if kwargs else opts
