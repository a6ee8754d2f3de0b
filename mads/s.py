"""versatile shortcuts for quick typing in an (i)python shell or even
``from mads.s import *`` in interactive sessions.

Provides various aliases from within the `mads` package, to be reached like
``mads.s....``

Don't use for stable code.
"""
from . import mads as ms
from . import constraints_handler as ch
from . import search as se
from . import poll as po
from .utilities import utils
from .mads import MadsOptimizer as MADS
from .options_parameters import MadsOptions as Options
