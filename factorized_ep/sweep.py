#!/usr/bin/env python3
"""
One pass of sequential EP updates over all potentials of a driver.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Union

from .driver import FactorizedEPDriver, UpdateStatus
from .exceptions import InvalidParameterError
from .utils.graph_utils import potential_color_classes

logger = logging.getLogger(__name__)


@dataclass
class SweepStats:
    """Counts per status, largest delta and effective damping of a sweep."""
    counts: Dict[UpdateStatus, int] = field(
        default_factory=lambda: {s: 0 for s in UpdateStatus})
    max_delta: float = 0.0
    max_eff_damp: float = 0.0

    @property
    def num_updates(self) -> int:
        return sum(self.counts.values())

    @property
    def num_success(self) -> int:
        return self.counts[UpdateStatus.SUCCESS]


def run_sweep(
    driver: FactorizedEPDriver,
    damp_fact: float = 0.0,
    order: Optional[Union[str, Iterable[int]]] = None
) -> SweepStats:
    """
    Update every potential once. Failed or skipped updates leave the state
    unchanged and are only counted.

    Args:
        driver: EP driver
        damp_fact: Damping factor passed to every update
        order: None for j = 0, 1, ..., 'colored' to go through the classes of
            ``potential_color_classes``, or an explicit sequence of indices

    Returns:
        SweepStats
    """
    if order is None:
        order = range(driver.num_potentials())
    elif isinstance(order, str):
        if order != 'colored':
            raise InvalidParameterError(f"Unknown order: {order}")
        order = [j for cls in potential_color_classes(driver.ep_repr) for j in cls]
    stats = SweepStats()
    for j in order:
        res = driver.sequential_update(j, damp_fact)
        stats.counts[res.status] += 1
        if res.eff_damp is not None:
            stats.max_eff_damp = max(stats.max_eff_damp, res.eff_damp)
        if res.success:
            stats.max_delta = max(stats.max_delta, res.delta)
    logger.debug("Sweep done: %d/%d successful, max delta=%g",
                 stats.num_success, stats.num_updates, stats.max_delta)
    return stats
