#!/usr/bin/env python3
"""
Small numerical helpers shared by the driver and the sweep.
"""

import numpy as np
from typing import Tuple


def max_rel_diff(a: float, b: float, floor: float = 1e-8) -> float:
    """Relative difference |a - b| / max(|a|, |b|, floor)."""
    return abs(a - b) / max(abs(a), abs(b), floor)


def projected_moments(
    coeffs: np.ndarray,
    beta: np.ndarray,
    pi: np.ndarray
) -> Tuple[float, float]:
    """
    Mean and variance of s = sum_i b_i x_i under a factorized Gaussian.

    Each x_i has natural parameters (beta_i, pi_i), so mean beta_i / pi_i and
    variance 1 / pi_i.

    Args:
        coeffs: b_i
        beta: beta_i, aligned with coeffs
        pi: pi_i, aligned with coeffs

    Returns:
        (h, rho): h = sum_i b_i beta_i / pi_i, rho = sum_i b_i^2 / pi_i
    """
    scaled = coeffs / pi
    return float(np.dot(scaled, beta)), float(np.dot(scaled, coeffs))
