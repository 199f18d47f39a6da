"""
Transformer Registry.

Maps transformer types to lazily created, shared transformer instances.
Each `GeodesyContext` owns one registry, and every Coordinate created
under that context delegates to the registry's default transformer.
"""

import importlib.util
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from common.logging_config import get_logger
from geosurvey.datum_transformer import SimpleWGS84Transformer
from geosurvey.errors import TransformerNotImplementedError, UnknownTransformerError
from geosurvey.geoid_model import GeoidModel
from geosurvey.transformer import CoordinateTransformer, GeoidCache, TransformCache

if TYPE_CHECKING:
    from geosurvey.context import GeodesyContext

logger = get_logger(__name__)


class TransformerType(str, Enum):
    """Known transformer implementations.

    SIMPLE is the built-in WGS84/NAD engine. PROJ is reserved for a
    pyproj-backed engine and is not implemented yet.
    """
    SIMPLE = "simple"
    PROJ = "proj"

    @classmethod
    def parse(cls, value: Union[str, "TransformerType"]) -> "TransformerType":
        """Resolve a type name, accepting the legacy 'proj4js' alias.

        Raises
        ------
        UnknownTransformerError
            If the name matches no known type.
        """
        if isinstance(value, cls):
            return value
        name = str(value).lower()
        if name == "proj4js":
            return cls.PROJ
        try:
            return cls(name)
        except ValueError:
            raise UnknownTransformerError(f"Unknown transformer type: {value}") from None


def _pyproj_available() -> bool:
    return importlib.util.find_spec("pyproj") is not None


class TransformerRegistry:
    """Registry of transformer instances, one per type.

    Parameters
    ----------
    transform_cache : TransformCache, optional
        Cache handed to every transformer the registry creates.
    geoid_cache : GeoidCache, optional
        Geoid-height cache handed to every transformer.
    geoid_model : GeoidModel, optional
        Geoid model used for height-reference conversion.
    default_type : str or TransformerType
        Type returned by `get_transformer()` without arguments.
    """

    def __init__(
        self,
        transform_cache: Optional[TransformCache] = None,
        geoid_cache: Optional[GeoidCache] = None,
        geoid_model: Optional[GeoidModel] = None,
        default_type: Union[str, TransformerType] = TransformerType.SIMPLE
    ):
        self.transform_cache = transform_cache if transform_cache is not None else TransformCache()
        self.geoid_cache = geoid_cache if geoid_cache is not None else GeoidCache()
        self.geoid_model = geoid_model if geoid_model is not None else GeoidModel()
        self._transformers: Dict[TransformerType, CoordinateTransformer] = {}
        self._default_type = TransformerType.parse(default_type)

    @classmethod
    def for_context(cls, context: "GeodesyContext") -> "TransformerRegistry":
        return cls(
            transform_cache=context.transform_cache,
            geoid_cache=context.geoid_cache,
            geoid_model=context.geoid_model,
            default_type=context.config.transformer_type,
        )

    @property
    def default_type(self) -> TransformerType:
        return self._default_type

    def set_default_type(self, transformer_type: Union[str, TransformerType]) -> None:
        """Select the type returned by `get_transformer()` without arguments.

        Raises
        ------
        UnknownTransformerError
            If the type is not known.
        """
        self._default_type = TransformerType.parse(transformer_type)
        logger.info(f"Default transformer set to: {self._default_type.value}")

    def get_transformer(
        self,
        transformer_type: Optional[Union[str, TransformerType]] = None
    ) -> CoordinateTransformer:
        """Return the shared transformer for a type, creating it on first use.

        Raises
        ------
        UnknownTransformerError
            If the type is not known.
        TransformerNotImplementedError
            If the type is known but has no implementation.
        """
        key = self._default_type if transformer_type is None else TransformerType.parse(transformer_type)

        transformer = self._transformers.get(key)
        if transformer is None:
            transformer = self._create_transformer(key)
            self._transformers[key] = transformer
        return transformer

    def _create_transformer(self, transformer_type: TransformerType) -> CoordinateTransformer:
        if transformer_type is TransformerType.SIMPLE:
            return SimpleWGS84Transformer(
                transform_cache=self.transform_cache,
                geoid_cache=self.geoid_cache,
                geoid_model=self.geoid_model,
            )

        if _pyproj_available():
            logger.warning("pyproj is installed but the PROJ transformer is not implemented yet")
        else:
            logger.warning("PROJ transformer requested but pyproj is not installed")
        raise TransformerNotImplementedError(
            f"Transformer '{transformer_type.value}' is not implemented"
        )

    def is_available(self, transformer_type: Union[str, TransformerType]) -> bool:
        """Whether a transformer of this type can be created."""
        try:
            self.get_transformer(transformer_type)
            return True
        except (UnknownTransformerError, TransformerNotImplementedError):
            return False

    def get_all_supported_projections(self) -> Dict[str, List[str]]:
        """Projections supported per transformer type.

        The PROJ entry lists the EPSG geographic 2D CRS codes pyproj knows
        about, and is present only when pyproj is importable.
        """
        result = {
            TransformerType.SIMPLE.value: self.get_transformer(
                TransformerType.SIMPLE
            ).get_supported_projections()
        }

        if _pyproj_available():
            from pyproj.database import get_codes
            from pyproj.enums import PJType

            codes = get_codes("EPSG", PJType.GEOGRAPHIC_2D_CRS)
            result[TransformerType.PROJ.value] = [
                f"EPSG:{code}" for code in sorted(codes)
            ]

        return result

    def clear_cache(self) -> None:
        """Clear every held transformer's caches and drop all instances."""
        for transformer in self._transformers.values():
            transformer.clear_cache()
        self._transformers.clear()
        logger.info("Transformer registry cleared")
