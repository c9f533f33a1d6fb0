#!/usr/bin/env python3
"""
Driver for expectation propagation with factorized backbone.

Two cases are supported, selected by the representation passed at
construction:

- Univariate potentials, inference over x:
    p(x) = Z^-1 prod_j t_j(s_j),  s = B x
  Marginals (beta_i, pi_i), with pi_i = sum_j pi_ji, beta_i = sum_j beta_ji.
- Bivariate precision potentials, inference over x and tau:
    p(x, tau) = Z^-1 prod_j t_j(s_j, tau_k(j)),  s = B x
  Additional marginals (a_k, c_k), with a_k = sum_j a_jk, c_k = sum_j c_jk.

A model may combine several drivers over the same marginal arrays (for
example one per argument group), so pi_i sums messages of all of them.

``sequential_update`` computes cavity marginals, runs the local EP update on
t_j, computes new message parameters, applies (selective) damping and updates
the marginals. Nothing is written until every check has passed, so any status
other than SUCCESS leaves all arrays untouched.

Selective damping is active iff the corresponding maximum value services are
given (``max_pi``, ``max_a``, ``max_c``). It ensures that after the update

    pi_i - max_j pi_ji >= piMinThres,  pi_i >= piMinThres   for all i,

given that this holds before the update (same for a with aMinThres, c with
cMinThres). The smallest damping factor satisfying all constraints is used;
if it is too close to 1, the update is skipped.
"""

import logging
import numpy as np
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .config import EPThresholds
from .exceptions import InvalidParameterError, WrongStatusError
from .max_values import MaximumValuesService
from .potentials import ArgumentGroup, PotentialManager
from .representation import FactEPRepresBivarPrec, FactorizedEPRepresentation
from .utils.numeric_utils import max_rel_diff, projected_moments

logger = logging.getLogger(__name__)

# Smallest retained step fraction (1 - damping) worth committing
MIN_STEP_FRACTION = 0.02
# Edge update equations: |b_ji| below this uses the degenerate form
SMALL_COEFF = 1e-6
# Denominators of the edge update below this are treated as singular
MIN_DENOM = 1e-10


class UpdateStatus(IntEnum):
    SUCCESS = 0
    CAVITY_INVALID = 1
    NUMERICAL_ERROR = 2
    MARGINALS_INVALID = 3
    CAV_COND_SKIPPED = 4


@dataclass
class UpdateResult:
    """Outcome of ``sequential_update``.

    ``delta`` is the maximum relative change in mean and stddev of s_j (and
    of a_k, c_k for bivariate precision potentials); only set on success.
    ``eff_damp`` is the damping factor actually used; 1.0 if the update was
    skipped by selective damping, None if it failed before damping.
    """
    status: UpdateStatus
    delta: Optional[float] = None
    eff_damp: Optional[float] = None

    @property
    def success(self) -> bool:
        return self.status == UpdateStatus.SUCCESS


def _check_marginal(arr, size: int, name: str) -> np.ndarray:
    if not isinstance(arr, np.ndarray) or arr.dtype != np.float64 or arr.ndim != 1:
        raise InvalidParameterError(f"{name}: must be a 1-d float64 numpy array")
    if arr.shape[0] != size:
        raise InvalidParameterError(f"{name}: expected size {size}, got {arr.shape[0]}")
    if not arr.flags.writeable:
        raise InvalidParameterError(f"{name}: must be writeable")
    return arr


def _step_fraction(tracker: MaximumValuesService, node: int, old: float,
                   new: float, marg: float, thres: float) -> Optional[float]:
    """
    Largest fraction of the step old -> new (new < old) which keeps
    marg - kappa >= thres, capped at 1. None if the tracker is inconsistent
    with the message it shadows.
    """
    kappa = tracker.get_max_value(node)
    if not np.isfinite(kappa) or kappa < old:
        return None
    return min((marg - kappa - thres) / (old - new), 1.0)


class FactorizedEPDriver:
    """Sequential EP updates over a factorized Gaussian backbone.

    The marginal arrays are owned by the caller and updated in place; so are
    the message parameters inside ``ep_repr``.
    """

    def __init__(self, ep_pots: PotentialManager,
                 ep_repr: FactorizedEPRepresentation,
                 marg_beta: np.ndarray, marg_pi: np.ndarray,
                 pi_min_thres: float,
                 max_pi: Optional[MaximumValuesService] = None,
                 marg_a: Optional[np.ndarray] = None,
                 marg_c: Optional[np.ndarray] = None,
                 a_min_thres: Optional[float] = None,
                 c_min_thres: Optional[float] = None,
                 max_a: Optional[MaximumValuesService] = None,
                 max_c: Optional[MaximumValuesService] = None):
        """
        Args:
            ep_pots: Potentials t_j. All in ArgumentGroup.UNIVARIATE, or all
                in ArgumentGroup.BIVAR_PREC if ep_repr is FactEPRepresBivarPrec
            ep_repr: B, V_j and message parameters
            marg_beta: beta_i, updated in place
            marg_pi: pi_i, updated in place
            pi_min_thres: piMinThres > 0
            max_pi: Selective damping for pi (optional)
            marg_a, marg_c: a_k, c_k (bivariate precision only)
            a_min_thres, c_min_thres: aMinThres, cMinThres > 0 (bivariate
                precision only)
            max_a, max_c: Selective damping for a, c (optional)
        """
        self._bivar = isinstance(ep_repr, FactEPRepresBivarPrec)
        prec_args = (marg_a, marg_c, a_min_thres, c_min_thres, max_a, max_c)
        if self._bivar:
            if marg_a is None or marg_c is None or a_min_thres is None \
                    or c_min_thres is None:
                raise InvalidParameterError(
                    "Bivariate precision representation requires marg_a, "
                    "marg_c, a_min_thres, c_min_thres")
        elif any(arg is not None for arg in prec_args):
            raise InvalidParameterError(
                "Precision arguments require a FactEPRepresBivarPrec representation")
        self.thresholds = EPThresholds.create(pi_min_thres, a_min_thres, c_min_thres)
        num_n = ep_repr.num_variables()
        self.marg_beta = _check_marginal(marg_beta, num_n, "marg_beta")
        self.marg_pi = _check_marginal(marg_pi, num_n, "marg_pi")
        if self._bivar:
            num_k = ep_repr.num_prec_vars()
            self.marg_a = _check_marginal(marg_a, num_k, "marg_a")
            self.marg_c = _check_marginal(marg_c, num_k, "marg_c")
        else:
            self.marg_a = self.marg_c = None
        if ep_pots.size() != ep_repr.num_potentials():
            raise InvalidParameterError(
                f"Potential manager has {ep_pots.size()} potentials, "
                f"representation has {ep_repr.num_potentials()}")
        self._group = ArgumentGroup.BIVAR_PREC if self._bivar \
            else ArgumentGroup.UNIVARIATE
        if ep_pots.num_argument_group(self._group) != ep_pots.size():
            raise InvalidParameterError(
                f"Potentials must be in group '{self._group.value}'")
        self.ep_pots = ep_pots
        self.ep_repr = ep_repr
        self.max_pi = max_pi
        self.max_a = max_a
        self.max_c = max_c
        self._buff = np.empty(0)

    @property
    def has_bivar_prec(self) -> bool:
        return self._bivar

    @property
    def pi_min_thres(self) -> float:
        return self.thresholds.pi_min_thres

    def num_variables(self) -> int:
        return self.ep_repr.num_variables()

    def num_potentials(self) -> int:
        return self.ep_repr.num_potentials()

    def num_prec_vars(self) -> int:
        if not self._bivar:
            raise WrongStatusError("Driver has no precision variables")
        return self.ep_repr.num_prec_vars()

    def get_ep_potentials(self) -> PotentialManager:
        return self.ep_pots

    def get_marginals_beta(self) -> np.ndarray:
        return self.marg_beta

    def get_marginals_pi(self) -> np.ndarray:
        return self.marg_pi

    def get_marginals_a(self) -> np.ndarray:
        if not self._bivar:
            raise WrongStatusError("Driver has no precision variables")
        return self.marg_a

    def get_marginals_c(self) -> np.ndarray:
        if not self._bivar:
            raise WrongStatusError("Driver has no precision variables")
        return self.marg_c

    def _scratch(self, size: int) -> np.ndarray:
        # Grown on demand, never shrunk
        if self._buff.shape[0] < 4 * size:
            self._buff = np.empty(4 * size)
        return self._buff

    @staticmethod
    def _undamped_update(b, c_pi, c_beta, alpha, nu, pr_pi, pr_beta) -> bool:
        """New EP parameters without damping, written to pr_pi, pr_beta."""
        big = np.abs(b) > SMALL_COEFF
        if big.any():
            # ratio is pi_{-ji}/b_ji, e_ji = 1/denom
            bval = b[big]
            c_pi_b = c_pi[big]
            ratio = c_pi_b / bval
            denom = ratio / bval - nu
            if not np.all(denom >= MIN_DENOM):
                return False
            e = 1.0 / denom
            pr_pi[big] = e * c_pi_b * nu
            pr_beta[big] = e * (c_beta[big] * nu + ratio * alpha)
        small = ~big
        if small.any():
            # Very small |b_ji|, will probably never happen
            bval = b[small]
            c_pi_s = c_pi[small]
            denom = c_pi_s - nu * bval * bval
            if not np.all(denom >= MIN_DENOM):
                return False
            temp = bval / denom
            pr_pi[small] = temp * bval * nu * c_pi_s
            pr_beta[small] = temp * (c_beta[small] * bval * nu + c_pi_s * alpha)
        return True

    def sequential_update(self, j: int, damp_fact: float = 0.0) -> UpdateResult:
        """
        Runs a sequential EP update on potential t_j. See module docstring.

        Args:
            j: Potential index
            damp_fact: Damping factor in [0, 1]. 0 means no damping, 1 leaves
                all parameters unchanged

        Returns:
            UpdateResult
        """
        if not 0 <= j < self.num_potentials():
            raise InvalidParameterError(f"Potential index {j} out of range")
        if not 0.0 <= damp_fact <= 1.0:
            raise InvalidParameterError(f"damp_fact={damp_fact} not in [0, 1]")
        pot = self.ep_pots.get_pot(j)
        if pot.get_argument_group() is not self._group:
            raise InvalidParameterError(
                f"Potential {j} not in group '{self._group.value}'")
        pi_min = self.thresholds.pi_min_thres
        row = self.ep_repr.access_row(j)
        ind, b = row.ind, row.coeffs
        vj_sz = row.size
        buff = self._scratch(vj_sz)
        c_beta = buff[:vj_sz]
        c_pi = buff[vj_sz:2 * vj_sz]
        pr_beta = buff[2 * vj_sz:3 * vj_sz]
        pr_pi = buff[3 * vj_sz:4 * vj_sz]
        m_beta = self.marg_beta[ind]
        m_pi = self.marg_pi[ind]

        # Cavity marginals. (m_h, m_rho) on s_j are needed for delta
        np.subtract(m_pi, row.pi, out=c_pi)
        if not np.all(c_pi >= 0.5 * pi_min):
            logger.debug("Cavity invalid: j=%d, min cavity pi=%g", j, c_pi.min())
            return UpdateResult(UpdateStatus.CAVITY_INVALID)
        np.subtract(m_beta, row.beta, out=c_beta)
        c_h, c_rho = projected_moments(b, c_beta, c_pi)
        m_h, m_rho = projected_moments(b, m_beta, m_pi)
        if self._bivar:
            tau = self.ep_repr.access_tau_row(j)
            k = tau.k
            a_old, c_old = float(tau.a[0]), float(tau.c[0])
            m_a, m_c = float(self.marg_a[k]), float(self.marg_c[k])
            c_a, c_c = m_a - a_old, m_c - c_old
            if not (c_a >= 0.5 * self.thresholds.a_min_thres
                    and c_c >= 0.5 * self.thresholds.c_min_thres):
                logger.debug("Cavity invalid: j=%d, k=%d, cA=%g, cC=%g",
                             j, k, c_a, c_c)
                return UpdateResult(UpdateStatus.CAVITY_INVALID)
            inp = np.array([c_h, c_rho, c_a, c_c])
        else:
            inp = np.array([c_h, c_rho])

        # Local EP update
        res = pot.comp_moments(inp)
        ret = None if res is None else np.asarray(res.params, dtype=np.float64).ravel()
        if ret is None or ret.shape[0] != inp.shape[0] or not np.all(np.isfinite(ret)):
            logger.debug("Moment computation failed: j=%d, inp=%s", j, inp)
            return UpdateResult(UpdateStatus.NUMERICAL_ERROR)
        alpha, nu = float(ret[0]), float(ret[1])
        if not self._undamped_update(b, c_pi, c_beta, alpha, nu, pr_pi, pr_beta):
            logger.debug("Edge update singular: j=%d, cH=%g, cRho=%g, alpha=%g, nu=%g",
                         j, c_h, c_rho, alpha, nu)
            return UpdateResult(UpdateStatus.NUMERICAL_ERROR)
        if self._bivar:
            pr_a, pr_c = float(ret[2]) - c_a, float(ret[3]) - c_c

        # Selective damping. Each shrinking message bounds the step fraction
        damp = damp_fact
        if damp < 1.0:
            bounds = []
            if self.max_pi is not None:
                for ii in np.flatnonzero(pr_pi < row.pi):
                    bounds.append((self.max_pi, int(ind[ii]), float(row.pi[ii]),
                                   float(pr_pi[ii]), float(m_pi[ii]), pi_min))
            if self._bivar:
                if self.max_a is not None and pr_a < a_old:
                    bounds.append((self.max_a, k, a_old, pr_a, m_a,
                                   self.thresholds.a_min_thres))
                if self.max_c is not None and pr_c < c_old:
                    bounds.append((self.max_c, k, c_old, pr_c, m_c,
                                   self.thresholds.c_min_thres))
            for tracker, node, old, new, marg, thres in bounds:
                frac = _step_fraction(tracker, node, old, new, marg, thres)
                if frac is None:
                    logger.debug("Maximum value tracker inconsistent: j=%d, node=%d",
                                 j, node)
                    return UpdateResult(UpdateStatus.NUMERICAL_ERROR)
                if frac <= MIN_STEP_FRACTION:
                    logger.debug("Update skipped by selective damping: j=%d, node=%d",
                                 j, node)
                    return UpdateResult(UpdateStatus.CAV_COND_SKIPPED, eff_damp=1.0)
                damp = max(damp, 1.0 - frac)

        # Damped EP parameters (overwrite pr_XX) and new marginals. The
        # update can still fail here, so nothing is written yet
        pr_pi *= 1.0 - damp
        pr_pi += damp * row.pi
        pr_beta *= 1.0 - damp
        pr_beta += damp * row.beta
        new_m_pi = m_pi + (pr_pi - row.pi)
        new_m_beta = m_beta + (pr_beta - row.beta)
        if not np.all(new_m_pi >= 0.5 * pi_min):
            logger.debug("Marginals invalid: j=%d, min pi=%g", j, new_m_pi.min())
            return UpdateResult(UpdateStatus.MARGINALS_INVALID, eff_damp=damp)
        if self._bivar:
            new_a = (1.0 - damp) * pr_a + damp * a_old
            new_c = (1.0 - damp) * pr_c + damp * c_old
            new_m_a = m_a + (new_a - a_old)
            new_m_c = m_c + (new_c - c_old)
            if not (new_m_a >= 0.5 * self.thresholds.a_min_thres
                    and new_m_c >= 0.5 * self.thresholds.c_min_thres):
                logger.debug("Marginals invalid: j=%d, k=%d, a=%g, c=%g",
                             j, k, new_m_a, new_m_c)
                return UpdateResult(UpdateStatus.MARGINALS_INVALID, eff_damp=damp)

        # Update succeeded: write back EP parameters and marginals
        row.pi[:] = pr_pi
        row.beta[:] = pr_beta
        self.marg_pi[ind] = new_m_pi
        self.marg_beta[ind] = new_m_beta
        if self.max_pi is not None:
            for ii in range(vj_sz):
                self.max_pi.update(int(ind[ii]), j, float(row.pi[ii]))
        new_h, new_rho = projected_moments(b, new_m_beta, new_m_pi)
        delta = max(max_rel_diff(m_h, new_h),
                    max_rel_diff(np.sqrt(m_rho), np.sqrt(new_rho)))
        if self._bivar:
            tau.a[0] = new_a
            tau.c[0] = new_c
            self.marg_a[k] = new_m_a
            self.marg_c[k] = new_m_c
            if self.max_a is not None:
                self.max_a.update(k, j, new_a)
            if self.max_c is not None:
                self.max_c.update(k, j, new_c)
            delta = max(delta, max_rel_diff(m_a, new_m_a),
                        max_rel_diff(m_c, new_m_c))
        return UpdateResult(UpdateStatus.SUCCESS, delta=float(delta), eff_damp=damp)
