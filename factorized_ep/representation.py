#!/usr/bin/env python3
"""
Storage of the factorized EP backbone: B (sparse, row-wise), the potential
adjacency lists V_j and the message parameters (beta_ji, pi_ji), plus the
tau_k(j) side channel for bivariate precision potentials.

Rows are kept in a compressed layout: potential j owns the contiguous edge
range ``offsets[j]:offsets[j+1]``. ``access_row`` hands out numpy views into
this storage, so writes through them update the representation in place.
"""

import numpy as np
from typing import NamedTuple, Optional, Sequence, Tuple

from .exceptions import InvalidParameterError


class EdgeRow(NamedTuple):
    """Views for potential j. ``beta``/``pi`` are writable."""
    ind: np.ndarray      # V_j (read-only)
    coeffs: np.ndarray   # b_ji (read-only)
    beta: np.ndarray     # beta_ji
    pi: np.ndarray       # pi_ji

    @property
    def size(self) -> int:
        return self.ind.shape[0]


class TauRow(NamedTuple):
    """Precision variable k(j) and one-element writable views on a_jk, c_jk."""
    k: int
    a: np.ndarray
    c: np.ndarray


def _message_array(values, total: int, name: str) -> np.ndarray:
    if values is None:
        return np.zeros(total)
    arr = np.array(values, dtype=np.float64).ravel()
    if arr.shape[0] != total:
        raise InvalidParameterError(
            f"{name}: expected {total} entries, got {arr.shape[0]}")
    return arr


class FactorizedEPRepresentation:
    """Representation for univariate potentials t_j(s_j), s = B x."""

    def __init__(self, rows: Sequence[Sequence[int]],
                 coeffs: Sequence[Sequence[float]],
                 beta=None, pi=None, num_variables: Optional[int] = None):
        """
        Args:
            rows: rows[j] is V_j, the variable indices of potential j
            coeffs: coeffs[j][ii] is b_ji for i = rows[j][ii]
            beta: Flat message parameters beta_ji in row order (default 0)
            pi: Flat message parameters pi_ji in row order (default 0)
            num_variables: n. Defaults to 1 + largest index used
        """
        if len(rows) != len(coeffs):
            raise InvalidParameterError("rows, coeffs: Different number of potentials")
        degrees = np.array([len(r) for r in rows], dtype=np.int64)
        for j, (r, b) in enumerate(zip(rows, coeffs)):
            if len(r) != len(b):
                raise InvalidParameterError(f"Row {j}: rows and coeffs differ in length")
            if len(r) == 0:
                raise InvalidParameterError(f"Row {j}: empty")
            if len(set(r)) != len(r):
                raise InvalidParameterError(f"Row {j}: duplicate variable index")
        self._offsets = np.zeros(len(rows) + 1, dtype=np.int64)
        np.cumsum(degrees, out=self._offsets[1:])
        total = int(self._offsets[-1])
        self._ind = np.array([i for r in rows for i in r], dtype=np.int64)
        self._coeffs = np.array([v for b in coeffs for v in b], dtype=np.float64)
        if total and self._ind.min() < 0:
            raise InvalidParameterError("Negative variable index")
        used = int(self._ind.max()) + 1 if total else 0
        if num_variables is None:
            num_variables = used
        elif num_variables < used:
            raise InvalidParameterError(
                f"num_variables={num_variables}, but index {used - 1} is used")
        self._num_vars = int(num_variables)
        self._edge_pot = np.repeat(np.arange(len(rows), dtype=np.int64), degrees)
        # B and V_j never change
        self._ind.flags.writeable = False
        self._coeffs.flags.writeable = False
        self._beta = _message_array(beta, total, "beta")
        self._pi = _message_array(pi, total, "pi")

    def num_variables(self) -> int:
        return self._num_vars

    def num_potentials(self) -> int:
        return self._offsets.shape[0] - 1

    def num_edges(self) -> int:
        return self._ind.shape[0]

    def max_degree(self) -> int:
        if self.num_potentials() == 0:
            return 0
        return int(np.diff(self._offsets).max())

    def _check_pot(self, j: int):
        if not 0 <= j < self.num_potentials():
            raise InvalidParameterError(f"Potential index {j} out of range")

    def access_row(self, j: int) -> EdgeRow:
        self._check_pot(j)
        s, e = self._offsets[j], self._offsets[j + 1]
        return EdgeRow(self._ind[s:e], self._coeffs[s:e],
                       self._beta[s:e], self._pi[s:e])

    def potentials_of(self, i: int) -> np.ndarray:
        """Indices j of all potentials with i in V_j."""
        return self._edge_pot[self._ind == i]

    def edges(self) -> Tuple[np.ndarray, np.ndarray]:
        """(potential index, variable index) for every edge, row order."""
        return self._edge_pot, self._ind

    @property
    def beta(self) -> np.ndarray:
        return self._beta

    @property
    def pi(self) -> np.ndarray:
        return self._pi

    def marginals(self) -> Tuple[np.ndarray, np.ndarray]:
        """Marginals (beta_i, pi_i) implied by the message parameters alone."""
        n = self._num_vars
        beta = np.bincount(self._ind, weights=self._beta, minlength=n)
        pi = np.bincount(self._ind, weights=self._pi, minlength=n)
        return beta, pi


class FactEPRepresBivarPrec(FactorizedEPRepresentation):
    """Representation for bivariate precision potentials t_j(s_j, tau_k(j)).

    In addition to the univariate backbone, each potential j is tied to one
    precision variable k(j) and owns the message parameters (a_jk, c_jk).
    """

    def __init__(self, rows: Sequence[Sequence[int]],
                 coeffs: Sequence[Sequence[float]],
                 tau_ind: Sequence[int], num_prec_vars: Optional[int] = None,
                 beta=None, pi=None, a=None, c=None,
                 num_variables: Optional[int] = None):
        super().__init__(rows, coeffs, beta=beta, pi=pi,
                         num_variables=num_variables)
        m = self.num_potentials()
        tau_ind = np.array(tau_ind, dtype=np.int64).ravel()
        if tau_ind.shape[0] != m:
            raise InvalidParameterError(
                f"tau_ind: expected {m} entries, got {tau_ind.shape[0]}")
        if m and tau_ind.min() < 0:
            raise InvalidParameterError("tau_ind: Negative index")
        used = int(tau_ind.max()) + 1 if m else 0
        if num_prec_vars is None:
            num_prec_vars = used
        elif num_prec_vars < used:
            raise InvalidParameterError(
                f"num_prec_vars={num_prec_vars}, but index {used - 1} is used")
        self._num_prec = int(num_prec_vars)
        tau_ind.flags.writeable = False
        self._tau_ind = tau_ind
        self._a = _message_array(a, m, "a")
        self._c = _message_array(c, m, "c")

    def num_prec_vars(self) -> int:
        return self._num_prec

    def access_tau_row(self, j: int) -> TauRow:
        self._check_pot(j)
        return TauRow(int(self._tau_ind[j]), self._a[j:j + 1], self._c[j:j + 1])

    def potentials_of_prec(self, k: int) -> np.ndarray:
        return np.flatnonzero(self._tau_ind == k)

    @property
    def tau_ind(self) -> np.ndarray:
        return self._tau_ind

    @property
    def a(self) -> np.ndarray:
        return self._a

    @property
    def c(self) -> np.ndarray:
        return self._c

    def prec_marginals(self) -> Tuple[np.ndarray, np.ndarray]:
        """Marginals (a_k, c_k) implied by the message parameters."""
        k = self._num_prec
        a = np.bincount(self._tau_ind, weights=self._a, minlength=k)
        c = np.bincount(self._tau_ind, weights=self._c, minlength=k)
        return a, c
