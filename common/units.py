"""
Unit Registry and Dimensional Analysis for Survey Geodesy.

This module provides a centralized unit system using the `pint` library so
that angular and scale parameters (arcseconds, parts-per-million) are
converted in exactly one place. Datum shift parameters are published in
survey units; the Helmert transform needs radians and a bare scale factor.

Example Usage
-------------
>>> from common.units import ureg, Q_
>>> Q_(1.0, 'arcsecond').to('radian').magnitude
4.84813681109536e-06
"""

from functools import wraps
from typing import Callable, Union

import pint
from pint import UnitRegistry as PintUnitRegistry

# Create the global unit registry
ureg = PintUnitRegistry()

# Convenience alias for creating quantities
Q_ = ureg.Quantity


class UnitRegistry:
    """Wrapper around pint UnitRegistry with survey-specific extensions.

    Attributes
    ----------
    registry : pint.UnitRegistry
        The underlying pint unit registry.

    Examples
    --------
    >>> units = UnitRegistry()
    >>> units.quantity(0.5, 'ppm').to('dimensionless').magnitude
    5e-07
    """

    def __init__(self):
        """Initialize the unit registry with survey extensions."""
        self._registry = ureg
        self._setup_survey_units()

    def _setup_survey_units(self) -> None:
        """Define additional units common in geodetic survey work."""
        # Only define if not already defined
        if "ppm" not in self._registry:
            self._registry.define("ppm = 1e-6 = parts_per_million")
        if "survey_foot" not in self._registry:
            self._registry.define("survey_foot = 1200 / 3937 * meter")

    @property
    def registry(self) -> PintUnitRegistry:
        """Access the underlying pint registry."""
        return self._registry

    def quantity(self, value: float, unit: str) -> pint.Quantity:
        """Create a quantity with units.

        Parameters
        ----------
        value : float
            The numerical value.
        unit : str
            The unit string (e.g., 'arcsecond', 'ppm', 'degree').

        Returns
        -------
        pint.Quantity
            A quantity object with associated units.
        """
        return self._registry.Quantity(value, unit)

    def validate_dimensionality(
        self,
        quantity: pint.Quantity,
        expected_dim: str
    ) -> bool:
        """Check if a quantity has the expected dimensionality.

        Raises
        ------
        pint.DimensionalityError
            If dimensionality does not match.
        """
        expected = self._registry.parse_expression(expected_dim).dimensionality
        if quantity.dimensionality != expected:
            raise pint.DimensionalityError(
                quantity.units,
                expected,
                quantity.dimensionality,
                expected
            )
        return True


_units = UnitRegistry()


def magnitude_in(value: Union[float, pint.Quantity], unit: str, target: str) -> float:
    """Convert a value to `target` and return the bare magnitude.

    Parameters
    ----------
    value : float or pint.Quantity
        Bare numbers are interpreted in `unit`.
    unit : str
        Unit of a bare number.
    target : str
        Unit of the returned magnitude.

    Returns
    -------
    float
        Magnitude expressed in `target`.
    """
    if not isinstance(value, pint.Quantity):
        value = _units.quantity(value, unit)
    return float(value.to(target).magnitude)


def arcseconds_to_radians(value: Union[float, pint.Quantity]) -> float:
    """Convert a rotation angle given in arcseconds to radians."""
    return magnitude_in(value, "arcsecond", "radian")


def ppm_to_scale(value: Union[float, pint.Quantity]) -> float:
    """Convert a scale difference in parts-per-million to a bare factor."""
    return magnitude_in(value, "ppm", "dimensionless")


def validate_units(expected_units: dict[str, str]):
    """Decorator to validate units of function arguments.

    Only arguments passed as `pint.Quantity` are checked; bare numbers are
    assumed to already be in the expected unit.

    Examples
    --------
    >>> @validate_units({'distance': 'm'})
    ... def destination(start, distance, bearing):
    ...     ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            import inspect
            sig = inspect.signature(func)
            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()

            for param_name, expected_unit in expected_units.items():
                if param_name in bound.arguments:
                    value = bound.arguments[param_name]
                    if isinstance(value, pint.Quantity):
                        try:
                            bound.arguments[param_name] = float(
                                value.to(expected_unit).magnitude
                            )
                        except pint.DimensionalityError as e:
                            raise ValueError(
                                f"Parameter '{param_name}' has incompatible units. "
                                f"Expected {expected_unit}, got {value.units}"
                            ) from e

            return func(*bound.args, **bound.kwargs)
        return wrapper
    return decorator
