"""
Geoid Height Model.

The geoid height N (ellipsoid-geoid separation) links the two height
references a survey deals with:

    orthometric height H = ellipsoidal height h - N

Positive N means the geoid lies above the ellipsoid.

Approximation
-------------
A production system interpolates a gridded model (GEOID18, EGM2008).
This module ships a documented stand-in instead:

1. Inside the continental-US box (24°..50°N, 125°..66°W): bilinear
   interpolation between four corner heights plus a small sinusoidal
   local-variation term.
2. Elsewhere: a coarse latitude-driven linear trend (-30 m at the
   equator, -15 m at the poles) with a ±5 m longitude perturbation.

Values are plausible in sign and magnitude for North America, but they are
not survey grade. `load_model` is the hook for a real grid and currently
performs no work.
"""

import numpy as np

from common.constants import GeodeticConstants
from common.logging_config import get_logger
from geosurvey.errors import GeoidDomainError

logger = get_logger(__name__)


class GeoidModel:
    """Approximate geoid height model.

    The model holds no state; instances exist so a context can carry
    (and tests can substitute) the model in use.
    """

    # (lat, lng, height) corners of the continental-US patch
    US_CORNERS = (
        (24.0, -125.0, -32.5),  # Southwest
        (24.0, -66.0, -29.5),   # Southeast
        (50.0, -125.0, -22.5),  # Northwest
        (50.0, -66.0, -34.0),   # Northeast
    )

    LOCAL_VARIATION_M = 2.5
    LONGITUDE_VARIATION_M = 5.0

    def get_height(self, lat: float, lng: float) -> float:
        """Return the geoid height at a location.

        Parameters
        ----------
        lat : float
            Latitude in degrees.
        lng : float
            Longitude in degrees.

        Returns
        -------
        float
            Geoid height N in meters.

        Raises
        ------
        GeoidDomainError
            If the location is outside [-90, 90] x [-180, 180].
        """
        if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
            raise GeoidDomainError(lat, lng)

        min_lat, max_lat, min_lng, max_lng = GeodeticConstants.CONUS_BOUNDS_DEG
        if min_lat <= lat <= max_lat and min_lng <= lng <= max_lng:
            return self._approximate_us_height(lat, lng)

        # -30 m at the equator rising to -15 m at either pole
        height = -30.0 + (abs(lat) / 90.0) * 15.0
        height += np.sin(np.radians(lng + 100.0)) * self.LONGITUDE_VARIATION_M
        return float(height)

    def _approximate_us_height(self, lat: float, lng: float) -> float:
        min_lat, max_lat, min_lng, max_lng = GeodeticConstants.CONUS_BOUNDS_DEG
        sw, se, nw, ne = (corner[2] for corner in self.US_CORNERS)

        u = (lng - min_lng) / (max_lng - min_lng)
        v = (lat - min_lat) / (max_lat - min_lat)

        south = sw * (1 - u) + se * u
        north = nw * (1 - u) + ne * u
        height = south * (1 - v) + north * v

        # Stand-in for local undulation; arguments are the raw degree values
        local = np.sin(lat * 8) * np.sin(lng * 6) * self.LOCAL_VARIATION_M
        return float(height + local)

    def load_model(self, model_name: str) -> bool:
        """Load a gridded geoid model.

        Not implemented: the approximation stays in use.

        Returns
        -------
        bool
            Always False, signalling that no model was loaded.
        """
        logger.warning(
            f"GeoidModel.load_model: {model_name} not implemented. Using approximation."
        )
        return False
