# -*- coding: utf-8 -*-
"""Ranking and selection for noisy objective functions.

Candidates are sampled repeatedly and compared by their sample means in
an indifference-zone sequential procedure. The indifference zone `iz` and
the significance level `alpha` decay geometrically after each selection.

>>> import numpy as np
>>> from mads.points import Point
>>> from mads.rank_selection import RankAndSelection
>>> rng = np.random.default_rng(1)
>>> def noisy(x, p=()):
...     return sum(np.asarray(x)**2) + 0.1 * rng.standard_normal(), ()
>>> rs = RankAndSelection(s0=5, iz0=0.1, max_samples=50)
>>> a, b = Point([1, 1], f=2), Point([0, 0], f=0.1)
>>> winner = rs.select([a, b], noisy)
>>> assert winner.x.tolist() == [0, 0] and winner.samples >= 5
>>> assert rs.iz < 0.1 and rs.alpha < 0.8

"""
import numpy as np
from .utilities.math import normal_quantile

class RankAndSelection(object):
    """indifference-zone selection of the best among noisy candidates.

    Candidate `j` is eliminated when ``mean_j - mean_l > max(0, W - iz)``
    where ``l`` is the current leader and ``W = z_{1-alpha} * sqrt(var_j /
    n_j + var_l / n_l)``. Sampling stops when one candidate remains, when
    all standard errors are at most `noise` or when a candidate reached
    `max_samples`.

    Sample statistics are kept per point across calls, hence an
    incumbent accumulates samples over iterations. The attribute
    `evaluations` counts the additional samples.
    """
    def __init__(self, s0=5, alpha0=0.8, alpha_rho=0.95, iz0=100, iz_rho=0.95,
                 noise=0, max_samples=100):
        if s0 < 2:
            raise ValueError("rs_s0 must be >= 2 to estimate variances, was %s"
                             % str(s0))
        if not 0 < alpha0 < 1:
            raise ValueError("rs_alpha0 must be in (0, 1), was %s" % str(alpha0))
        if max_samples < s0:
            raise ValueError("rs_max_samples=%s must be >= rs_s0=%s"
                             % (str(max_samples), str(s0)))
        self.s0 = s0
        self.alpha = alpha0
        self.alpha_rho = alpha_rho
        self.iz = iz0
        self.iz_rho = iz_rho
        self.noise = noise
        self.max_samples = max_samples
        self.samples = {}
        """`dict` of sample lists keyed by ``(x.tobytes(), p)``"""
        self.evaluations = 0
        self.rounds = 0

    @staticmethod
    def key(point):
        return point.x.tobytes(), point.p

    def _add_samples(self, point, sampler, number):
        samples = self.samples.setdefault(self.key(point), [])
        if not samples and point.samples == 1 and not point.failed:
            samples.append(point.f)
            number -= 1
        for _ in range(max((0, number))):
            f = sampler(point.x, point.p)[0]
            samples.append(f if np.isfinite(f) else np.inf)
            self.evaluations += 1
        return samples

    def statistics(self, point):
        """return ``(number of samples, mean, variance)`` of `point`"""
        samples = self.samples.get(self.key(point), [])
        n = len(samples)
        if not n:
            return 0, np.nan, np.nan
        if not np.all(np.isfinite(samples)):
            return n, np.inf, np.inf
        return n, float(np.mean(samples)), float(np.var(samples, ddof=1)) if n > 1 else np.inf

    def select(self, candidates, sampler):
        """return the winner among `candidates` as a new `Point`.

        The `f` attribute of the returned point is its sample mean and
        `samples` its number of samples. ``sampler(x, p)`` returns ``(f,
        c)`` of a single noisy evaluation.
        """
        if not candidates:
            raise ValueError("no candidates to select from")
        for pt in candidates:
            n = len(self.samples.get(self.key(pt), []))
            self._add_samples(pt, sampler, self.s0 - n)
        alive = list(candidates)
        z = normal_quantile(1 - self.alpha)
        while True:
            stats = [self.statistics(pt) for pt in alive]
            leader = int(np.argmin([s[1] for s in stats]))
            n_l, mean_l, var_l = stats[leader]
            if len(alive) > 1 and np.isfinite(mean_l):
                survivors = []
                for pt, (n, mean, var) in zip(alive, stats):
                    if pt is alive[leader]:
                        survivors.append(pt)
                        continue
                    W = z * np.sqrt(var / n + var_l / n_l)
                    if not mean - mean_l > max((0, W - self.iz)):
                        survivors.append(pt)
                alive = survivors
            if (len(alive) == 1 or not np.isfinite(mean_l) or
                    max(s[0] for s in stats) >= self.max_samples or
                    all(np.sqrt(s[2] / s[0]) <= self.noise for s in stats)):
                break
            for pt in alive:
                self._add_samples(pt, sampler, 1)
        stats = [self.statistics(pt) for pt in alive]
        winner = alive[int(np.argmin([s[1] for s in stats]))]
        n, mean, _ = self.statistics(winner)
        self.iz *= self.iz_rho
        self.alpha *= self.alpha_rho
        self.rounds += 1
        if winner.failed:
            return winner
        return winner.replace(f=mean, samples=n)
