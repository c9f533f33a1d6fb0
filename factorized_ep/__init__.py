#!/usr/bin/env python3
"""
Factorized expectation propagation

Sequential EP updates with selective damping over a factorized Gaussian
backbone.
"""

from .exceptions import InvalidParameterError, WrongStatusError
from .config import EPThresholds
from .potentials import ArgumentGroup, MomentResult, EPScalarPotential, PotentialManager
from .representation import (
    EdgeRow,
    TauRow,
    FactorizedEPRepresentation,
    FactEPRepresBivarPrec
)
from .max_values import MaximumValuesService, MaximumValues
from .driver import UpdateStatus, UpdateResult, FactorizedEPDriver
from .parallel import ParallelUpdateResult, epupdate_parallel
from .utils import build_factor_graph, potential_color_classes
from .sweep import SweepStats, run_sweep

__all__ = [
    'InvalidParameterError',
    'WrongStatusError',
    'EPThresholds',
    'ArgumentGroup',
    'MomentResult',
    'EPScalarPotential',
    'PotentialManager',
    'EdgeRow',
    'TauRow',
    'FactorizedEPRepresentation',
    'FactEPRepresBivarPrec',
    'MaximumValuesService',
    'MaximumValues',
    'UpdateStatus',
    'UpdateResult',
    'FactorizedEPDriver',
    'ParallelUpdateResult',
    'epupdate_parallel',
    'build_factor_graph',
    'potential_color_classes',
    'SweepStats',
    'run_sweep'
]
