#!/usr/bin/env python3
"""
Potential (local moment oracle) interfaces.

A potential t_j(s_j) (or t_j(s_j, tau_k) for bivariate precision potentials)
is only ever touched through ``comp_moments``: given the cavity parameters on
its argument, return the natural parameter updates implied by moment matching
of the tilted distribution. The specific potential families live outside this
package.
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from .exceptions import InvalidParameterError


class ArgumentGroup(Enum):
    """Argument signature of a potential."""
    UNIVARIATE = "univariate"   # t_j(s_j)
    BIVAR_PREC = "bivar_prec"   # t_j(s_j, tau_k(j))

    @property
    def num_inputs(self) -> int:
        return 2 if self is ArgumentGroup.UNIVARIATE else 4


@dataclass
class MomentResult:
    """Output of a successful local moment matching.

    ``params`` is [alpha, nu] for univariate potentials and
    [alpha, nu, hat_a, hat_c] for bivariate precision potentials.
    """
    params: np.ndarray
    log_z: Optional[float] = None


class EPScalarPotential(ABC):
    """Local moment oracle for a single potential.

    Input ``inp`` is [h, rho] (cavity mean and variance of s_j), extended by
    [a, c] (cavity parameters of tau_k(j)) for bivariate precision
    potentials. Returns None if the tilted distribution is numerically
    degenerate.
    """

    argument_group: ArgumentGroup = ArgumentGroup.UNIVARIATE

    def get_argument_group(self) -> ArgumentGroup:
        return self.argument_group

    @abstractmethod
    def comp_moments(self, inp: np.ndarray) -> Optional[MomentResult]:
        ...


class PotentialManager:
    """Ordered collection of potentials, indexed by j."""

    def __init__(self, potentials: Iterable[EPScalarPotential]):
        self._pots: List[EPScalarPotential] = list(potentials)
        for pot in self._pots:
            if not isinstance(pot, EPScalarPotential):
                raise InvalidParameterError(
                    f"Not an EPScalarPotential: {type(pot).__name__}")

    def __len__(self) -> int:
        return len(self._pots)

    def __iter__(self):
        return iter(self._pots)

    def size(self) -> int:
        return len(self._pots)

    def get_pot(self, j: int) -> EPScalarPotential:
        if not 0 <= j < len(self._pots):
            raise InvalidParameterError(f"Potential index {j} out of range")
        return self._pots[j]

    def num_argument_group(self, group: ArgumentGroup) -> int:
        """Number of potentials in argument group ``group``."""
        return sum(1 for pot in self._pots if pot.get_argument_group() is group)
