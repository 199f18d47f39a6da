"""
Configuration for the Survey Geodesy Core.
"""

import logging
from dataclasses import dataclass
from enum import Enum


class InputPolicy(str, Enum):
    """How Coordinate construction treats invalid numeric input.

    LENIENT coerces to a safe default (0, clamped range, ellipsoidal) and
    logs a warning. STRICT raises `InvalidCoordinateError` instead.
    """
    LENIENT = "lenient"
    STRICT = "strict"


@dataclass
class GeodesyConfig:
    """Configuration for a geodesy context.

    Attributes
    ----------
    transformer_type : str
        Registry key of the transformer Coordinates delegate to
        ('simple' or 'proj').
    geoid_model : str
        Geoid model name. 'default' uses the built-in approximation; any
        other name is passed to `GeoidModel.load_model`.
    input_policy : InputPolicy
        Lenient (coerce + warn) or strict (raise) coordinate construction.
    log_level : int
        Level applied to the `common` and `geosurvey` loggers.
    """
    transformer_type: str = "simple"
    geoid_model: str = "default"
    input_policy: InputPolicy = InputPolicy.LENIENT
    log_level: int = logging.INFO
