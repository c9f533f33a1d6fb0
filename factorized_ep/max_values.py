#!/usr/bin/env python3
"""
Maximum message value services, used for selective damping.

For every node (variable i, or precision variable k) the service maintains
kappa = max_j value_j over all potentials j touching that node, where value_j
is pi_ji (or a_jk, c_jk). It is a cache shadowing the message parameters, so
``update`` has to be called once per committed edge.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Tuple

from .exceptions import InvalidParameterError
from .representation import FactEPRepresBivarPrec, FactorizedEPRepresentation


class MaximumValuesService(ABC):
    """Two-method contract consumed by the driver."""

    @abstractmethod
    def get_max_value(self, node: int) -> float:
        ...

    @abstractmethod
    def update(self, node: int, pot: int, value: float) -> None:
        ...


class MaximumValues(MaximumValuesService):
    """Per-node running maximum over a map potential -> value.

    The maximum is recomputed from the node's map only when the value that
    held the maximum decreases.
    """

    def __init__(self, num_nodes: int, entries: Iterable[Tuple[int, int, float]] = ()):
        """
        Args:
            num_nodes: Number of nodes
            entries: Initial (node, potential, value) triples
        """
        if num_nodes < 0:
            raise InvalidParameterError("num_nodes must be non-negative")
        self._vals: List[Dict[int, float]] = [{} for _ in range(num_nodes)]
        self._max = np.full(num_nodes, -np.inf)
        for node, pot, value in entries:
            self.update(node, pot, value)

    @classmethod
    def for_pi(cls, repr: FactorizedEPRepresentation) -> "MaximumValues":
        pots, ind = repr.edges()
        return cls(repr.num_variables(),
                   zip(ind.tolist(), pots.tolist(), repr.pi.tolist()))

    @classmethod
    def for_a(cls, repr: FactEPRepresBivarPrec) -> "MaximumValues":
        return cls(repr.num_prec_vars(),
                   zip(repr.tau_ind.tolist(), range(repr.num_potentials()),
                       repr.a.tolist()))

    @classmethod
    def for_c(cls, repr: FactEPRepresBivarPrec) -> "MaximumValues":
        return cls(repr.num_prec_vars(),
                   zip(repr.tau_ind.tolist(), range(repr.num_potentials()),
                       repr.c.tolist()))

    def num_nodes(self) -> int:
        return len(self._vals)

    def _check_node(self, node: int):
        if not 0 <= node < len(self._vals):
            raise InvalidParameterError(f"Node index {node} out of range")

    def get_max_value(self, node: int) -> float:
        """kappa for ``node``; -inf if no potential touches it."""
        self._check_node(node)
        return float(self._max[node])

    def update(self, node: int, pot: int, value: float) -> None:
        self._check_node(node)
        vals = self._vals[node]
        old = vals.get(pot)
        vals[pot] = float(value)
        if value >= self._max[node]:
            self._max[node] = value
        elif old is not None and old >= self._max[node]:
            # Previous maximum holder decreased
            self._max[node] = max(vals.values())

    def max_values(self) -> np.ndarray:
        """Copy of all cached maxima."""
        return self._max.copy()
