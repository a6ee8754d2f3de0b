"""Package `mads` implements Mesh Adaptive Direct Search (MADS) for
derivative-free optimization of (possibly noisy, nonsmooth, constrained
and mixed variable) objective functions.

MADS minimizes ``f(x)`` over the continuous variables ``x`` (and
optionally discrete variables ``p``) subject to bound constraints, linear
constraints ``l <= A x <= u``, which are never violated, and nonlinear
constraints ``c(x) <= 0``, which are handled with a filter. Each
iteration evaluates trial points on a mesh, first from optional search
strategies, then from a poll frame around the current poll center.
Evaluated points are kept in a cache and never evaluated twice.

The main interfaces are

- function `fmin`:
    run a complete minimization of the passed objective function and
    return ``(xbest, es)``.

- class `MadsOptimizer` (and the alias `MADS`):
    allows for minimization such that the control of the iteration loop
    remains with the user.

Options are described in `MadsOptions`, ``mads.MadsOptions('poll')``
gives all options related to the poll step.

Testing
=======
From the system shell::

    python -m mads.test -h
    python -m mads.test

Example
=======
From a python shell::

    import mads
    help(mads.MadsOptimizer)
    mads.MadsOptions('tol')  # display tolerance options
    x, es = mads.fmin(mads.ff.rosen, 4 * [0.1], {'poll_strategy': 'MADS_2n'})
    es.result.fbest, es.result.evaluations
    es.logger.disp()  # last rows of the iteration history

:See also: `fmin`, `MadsOptions`, `MadsOptimizer`, `MadsResult`

"""
__author__ = "MADS contributors"
__license__ = "BSD 3-clause"

from . import (cache, constraints_handler, evaluation, extended_poll,
               filter, fitness_functions, fitness_models, interfaces, logger,
               mesh, points, poll, rank_selection, search, termination)
from .utilities import utils
# from . import test  # gives a warning with python -m mads.test
test = 'type "import mads.test" to access the `test` module of `mads`'
from . import s
from .fitness_functions import ff
from .mads import fmin, MadsOptimizer, MadsResult
from .options_parameters import (MadsOptions, mads_default_options_,
                                 surrogate_options)
MADS = MadsOptimizer  # shortcut for typing without completion
from .cache import Cache
from .filter import Filter
from .mesh import Mesh
from .points import Point
from .evaluation import EvaluationError
from .logger import MadsDataLogger

__version__ = "1.0.0"
