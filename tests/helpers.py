"""Test-only potentials and model builders."""

from dataclasses import dataclass

import numpy as np

from factorized_ep import (
    ArgumentGroup,
    EPScalarPotential,
    FactEPRepresBivarPrec,
    FactorizedEPDriver,
    FactorizedEPRepresentation,
    MomentResult,
    PotentialManager,
)


class GaussianPotential(EPScalarPotential):
    """t(s) = N(y | s, sigma2). Moment matching is exact."""

    def __init__(self, y, sigma2):
        self.y = y
        self.sigma2 = sigma2

    def comp_moments(self, inp):
        h, rho = inp[0], inp[1]
        var = rho + self.sigma2
        if var <= 0.0:
            return None
        alpha = (self.y - h) / var
        nu = 1.0 / var
        log_z = -0.5 * np.log(2.0 * np.pi * var) - 0.5 * (self.y - h) ** 2 / var
        return MomentResult(np.array([alpha, nu]), log_z)


class ScriptedPotential(EPScalarPotential):
    """Returns fixed parameters and records every input it sees."""

    def __init__(self, params, group=ArgumentGroup.UNIVARIATE, log_z=None):
        self.params = list(params)
        self.argument_group = group
        self.log_z = log_z
        self.calls = []

    def comp_moments(self, inp):
        self.calls.append(np.array(inp))
        return MomentResult(np.array(self.params, dtype=float), self.log_z)


class FailingPotential(EPScalarPotential):
    def __init__(self, group=ArgumentGroup.UNIVARIATE):
        self.argument_group = group
        self.calls = 0

    def comp_moments(self, inp):
        self.calls += 1
        return None


@dataclass
class Model:
    driver: FactorizedEPDriver
    repr: FactorizedEPRepresentation
    prior_beta: np.ndarray
    prior_pi: np.ndarray

    def snapshot(self):
        """Byte copies of every mutable array."""
        arrays = [self.driver.marg_beta, self.driver.marg_pi,
                  self.repr.beta, self.repr.pi]
        if isinstance(self.repr, FactEPRepresBivarPrec):
            arrays += [self.driver.marg_a, self.driver.marg_c,
                       self.repr.a, self.repr.c]
        return [a.tobytes() for a in arrays]


def make_plain_model(rows, coeffs, pots, prior_pi, prior_beta=None,
                     beta=None, pi=None, pi_min_thres=1e-3, max_pi=None):
    """
    Marginals are prior + sum of messages. ``max_pi`` may be a callable
    taking the representation.
    """
    rep = FactorizedEPRepresentation(rows, coeffs, beta=beta, pi=pi,
                                     num_variables=len(prior_pi))
    prior_pi = np.asarray(prior_pi, dtype=float)
    prior_beta = np.zeros_like(prior_pi) if prior_beta is None \
        else np.asarray(prior_beta, dtype=float)
    mb, mp = rep.marginals()
    if callable(max_pi):
        max_pi = max_pi(rep)
    driver = FactorizedEPDriver(PotentialManager(pots), rep, prior_beta + mb,
                                prior_pi + mp, pi_min_thres, max_pi=max_pi)
    return Model(driver, rep, prior_beta, prior_pi)


def make_prec_model(rows, coeffs, tau_ind, pots, prior_pi, prior_a, prior_c,
                    a=None, c=None, pi=None, pi_min_thres=1e-3,
                    a_min_thres=1e-3, c_min_thres=1e-3,
                    max_pi=None, max_a=None, max_c=None):
    rep = FactEPRepresBivarPrec(rows, coeffs, tau_ind, num_prec_vars=len(prior_a),
                                pi=pi, a=a, c=c, num_variables=len(prior_pi))
    prior_pi = np.asarray(prior_pi, dtype=float)
    prior_beta = np.zeros_like(prior_pi)
    mb, mp = rep.marginals()
    ma, mc = rep.prec_marginals()
    trackers = [t(rep) if callable(t) else t for t in (max_pi, max_a, max_c)]
    driver = FactorizedEPDriver(
        PotentialManager(pots), rep, prior_beta + mb, prior_pi + mp,
        pi_min_thres, max_pi=trackers[0],
        marg_a=np.asarray(prior_a, dtype=float) + ma,
        marg_c=np.asarray(prior_c, dtype=float) + mc,
        a_min_thres=a_min_thres, c_min_thres=c_min_thres,
        max_a=trackers[1], max_c=trackers[2])
    return Model(driver, rep, prior_beta, prior_pi)
