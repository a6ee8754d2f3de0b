"""Very few interface defining base class definitions"""

class OOOptimizer(object):
    """abstract base class for an Object Oriented Optimizer interface
    driven by single iterations.

    Relevant methods are `__init__`, `step`, `optimize` and `stop`, and
    property `result`. Only `optimize` is fully implemented in this base
    class.

    Examples
    --------
    The shortest example uses the inherited method
    `OOOptimizer.optimize`::

        import mads
        es = mads.MadsOptimizer(mads.ff.rosen, 4 * [0.1]).optimize()
        print(es.result.xbest)  # best solution and
        print(es.result.fbest)  # its function value

    Virtually the same example can be written with an explicit loop
    instead of using `optimize`::

        optim = mads.MadsOptimizer(mads.ff.rosen, 4 * [0.1])
        while not optim.stop():  # iterate
            optim.step()         # search, poll, extended poll, mesh update
            optim.disp(20)       # display info every 20th iteration
            optim.logger.add()   # log another "data line", non-standard

        print('termination by', optim.stop())
        print('best f-value =', optim.result[1])
        print('best solution =', optim.result[0])

    """
    def __init__(self, xstart, *more_mandatory_args, **optional_kwargs):
        """``xstart`` is a mandatory argument"""
        self.xstart = xstart
        self.more_mandatory_args = more_mandatory_args
        self.optional_kwargs = optional_kwargs
        self.initialize()
    def initialize(self):
        """(re-)set to the initial state"""
        raise NotImplementedError('method initialize() must be implemented in derived class')
    def step(self):
        """abstract method, conduct a single iteration"""
        raise NotImplementedError('method step() must be implemented in derived class')
    def stop(self):
        """abstract method, return satisfied termination conditions in a
        dictionary like ``{'termination reason': value, ...}`` or ``{}``.
        """
        raise NotImplementedError('method stop() is not implemented')
    def disp(self, modulo=None):
        """abstract method, display some iteration info when
        ``self.iteration_counter % modulo < 1``, using a reasonable
        default for `modulo` if ``modulo is None``.
        """
    @property
    def result(self):
        """abstract property, contain ``(x, f(x), ...)``, that is, the
        minimizer, its function value, ...
        """
        raise NotImplementedError('result property is not implemented')

    def optimize(self, iterations=None, min_iterations=0, verb_disp=None,
                 callback=None):
        """iterate until `stop` and return ``self``.

        Arguments
        ---------
        ``iterations``: number
            number of (maximal) iterations, while ``not self.stop()``,
            it can be useful to conduct only one iteration at a time.
        ``min_iterations``: number
            minimal number of iterations, even if ``not self.stop()``
        ``verb_disp``: number
            print to screen every ``verb_disp`` iteration, if `None`
            the value from the options is used.
        ``callback``: callable or list of callables
            callback function called like ``callback(self)`` after each
            iteration or a list of call back functions called in the same
            way. If available, ``self.logger.add`` is added to this list.

        ``return self``, that is, the `OOOptimizer` instance.

        Example
        -------
        >>> import mads
        >>> es = mads.MadsOptimizer(mads.ff.sphere, 2 * [1], {'verbose': -9})
        >>> assert es.optimize(iterations=3).countiter == 3
        >>> assert es.optimize().stop()

        """
        if iterations is not None and min_iterations > iterations:
            print("doing min_iterations = %d > %d = iterations"
                  % (min_iterations, iterations))
            iterations = min_iterations

        callback = self._prepare_callback_list(callback)

        citer = 0
        while not self.stop() or citer < min_iterations:
            if iterations is not None and citer >= iterations:
                return self
            citer += 1
            self.step()  # all the work is done here
            for f in callback:
                f(self)
            self.disp(verb_disp)  # disp does nothing if not overwritten

        # final output
        self._force_final_logging()
        self._finalize()
        return self

    def _finalize(self):
        """called once when `optimize` terminates by `stop`"""

    def _prepare_callback_list(self, callback):  # helper function
        """return a list of callbacks including ``self.logger.add``.

        ``callback`` can be a `callable` or a `list` (or iterable) of
        callables. Otherwise a `ValueError` exception is raised.
        """
        if callback is None:
            callback = []
        if callable(callback):
            callback = [callback]
        try:
            callback = list(callback) + [self.logger.add]
        except AttributeError:
            pass
        try:
            for c in callback:
                if not callable(c):
                    raise ValueError("""callback argument %s is not
                        callable""" % str(c))
        except TypeError:
            raise ValueError("""callback argument must be a `callable` or
                an iterable (e.g. a list) of callables, after some
                processing it was %s""" % str(callback))
        return callback

    def _force_final_logging(self):  # helper function
        """try force the logger to log NOW"""
        try:
            if not self.logger:
                return
        except AttributeError:
            return
        # modulo == 0 means never log, 1 or True means log now
        try:
            modulo = bool(self.logger.modulo)
        except AttributeError:
            modulo = True
        self.logger.add(self, modulo=modulo)

class BaseDataLogger(object):
    """abstract base class for a data logger that can be used with an
    `OOOptimizer`.

    Details: attribute `modulo` is used in `OOOptimizer.optimize`.
    """

    def __init__(self):
        self.optim = None
        """object instance to be logging data from"""
        self._data = None
        """`dict` of logged data"""

    def register(self, optim, *args, **kwargs):
        """register an optimizer ``optim``, only needed if method `add` is
        called without passing the ``optim`` argument
        """
        self.optim = optim
        return self

    def add(self, optim=None, more_data=None, **kwargs):
        """abstract method, add a "data point" from the state of ``optim``
        into the logger.

        The argument ``optim`` can be omitted if ``optim`` was
        ``register`` ()-ed before, acts like an event handler
        """
        raise NotImplementedError

    def disp(self, *args, **kwargs):
        """abstract method, display some data trace"""
        print('method BaseDataLogger.disp() not implemented, to be done in subclass ' + str(type(self)))

    @property
    def data(self):
        """logged data in a dictionary"""
        return self._data
