#!/usr/bin/env python3
"""
Utility modules for factorized EP
"""

from .numeric_utils import max_rel_diff, projected_moments
from .graph_utils import build_factor_graph, potential_color_classes

__all__ = [
    'max_rel_diff',
    'projected_moments',
    'build_factor_graph',
    'potential_color_classes'
]
