#!/usr/bin/env python3
"""
Exceptions for contract violations.

Numerical outcomes of an EP update are never raised, they are returned as
``UpdateStatus`` values. Only misuse of the API raises.
"""


class InvalidParameterError(ValueError):
    """Construction or call-time argument violates the documented contract."""


class WrongStatusError(RuntimeError):
    """Operation is not available in the driver's current mode."""
