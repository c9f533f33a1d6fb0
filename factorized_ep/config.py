#!/usr/bin/env python3
"""
Threshold configuration for the factorized EP driver.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, ValidationError

from .exceptions import InvalidParameterError


class EPThresholds(BaseModel):
    """Positivity floors for marginal precisions.

    Attributes:
        pi_min_thres: Floor for pi_i and for pi_i - max_j pi_ji.
        a_min_thres: Floor for a_k (bivariate precision potentials only).
        c_min_thres: Floor for c_k (bivariate precision potentials only).
    """

    model_config = ConfigDict(frozen=True)

    pi_min_thres: PositiveFloat = Field(description="Floor for pi marginals")
    a_min_thres: Optional[PositiveFloat] = Field(
        default=None, description="Floor for a marginals"
    )
    c_min_thres: Optional[PositiveFloat] = Field(
        default=None, description="Floor for c marginals"
    )

    @property
    def has_prec(self) -> bool:
        return self.a_min_thres is not None and self.c_min_thres is not None

    @classmethod
    def create(cls, pi_min_thres: float, a_min_thres: Optional[float] = None,
               c_min_thres: Optional[float] = None) -> "EPThresholds":
        """Validate thresholds, mapping pydantic errors to InvalidParameterError."""
        try:
            return cls(pi_min_thres=pi_min_thres, a_min_thres=a_min_thres,
                       c_min_thres=c_min_thres)
        except ValidationError as e:
            raise InvalidParameterError(f"Invalid thresholds: {e}") from e
