#!/usr/bin/env python3
"""
Local EP updates for many potentials at once.

Cavity parameters are given, so there is no cavity computation and no
marginal update here: each work item is an independent call of
``comp_moments`` on its potential.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Sequence

from .exceptions import InvalidParameterError
from .potentials import ArgumentGroup, PotentialManager


@dataclass
class ParallelUpdateResult:
    """Per work item: rstat (1 success, 0 failure), alpha, nu, log Z."""
    rstat: np.ndarray
    alpha: np.ndarray
    nu: np.ndarray
    log_z: Optional[np.ndarray] = None


def epupdate_parallel(
    ep_pots: PotentialManager,
    cmu: Sequence[float],
    crho: Sequence[float],
    upd_ind: Optional[Sequence[int]] = None,
    want_log_z: bool = False
) -> ParallelUpdateResult:
    """
    Local EP updates for potentials t_j(s_j) of ``ep_pots``.

    Args:
        ep_pots: Univariate potentials
        cmu: Cavity means, one per work item
        crho: Cavity variances, one per work item
        upd_ind: If given, work item i updates on potential upd_ind[i].
            Otherwise work item i is potential i, and there must be one
            item per potential
        want_log_z: Also return log Z per item

    Returns:
        ParallelUpdateResult. Failed items have alpha = nu = 0 and NaN log Z
    """
    cmu = np.asarray(cmu, dtype=np.float64).ravel()
    crho = np.asarray(crho, dtype=np.float64).ravel()
    totsz = cmu.shape[0]
    if crho.shape[0] != totsz:
        raise InvalidParameterError("CRHO: Wrong size")
    num_pots = ep_pots.size()
    if upd_ind is not None:
        upd_ind = np.asarray(upd_ind, dtype=np.int64).ravel()
        if upd_ind.shape[0] != totsz:
            raise InvalidParameterError("UPDIND: Wrong size")
        if totsz and (upd_ind.min() < 0 or upd_ind.max() >= num_pots):
            raise InvalidParameterError("UPDIND: Entries out of range")
    elif num_pots != totsz:
        raise InvalidParameterError("CMU, potential manager: Different sizes")

    rstat = np.zeros(totsz, dtype=np.int32)
    alpha = np.zeros(totsz)
    nu = np.zeros(totsz)
    log_z = np.full(totsz, np.nan) if want_log_z else None
    for i in range(totsz):
        j = i if upd_ind is None else int(upd_ind[i])
        pot = ep_pots.get_pot(j)
        if pot.get_argument_group() is not ArgumentGroup.UNIVARIATE:
            raise InvalidParameterError(
                f"Potential {j} must be in group '{ArgumentGroup.UNIVARIATE.value}'")
        res = pot.comp_moments(np.array([cmu[i], crho[i]]))
        if res is None:
            continue
        params = np.asarray(res.params, dtype=np.float64).ravel()
        if params.shape[0] != 2:
            continue
        rstat[i] = 1
        alpha[i], nu[i] = params
        if want_log_z and res.log_z is not None:
            log_z[i] = res.log_z
    return ParallelUpdateResult(rstat, alpha, nu, log_z)
