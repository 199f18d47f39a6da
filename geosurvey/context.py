"""
Geodesy Context.

A context bundles everything a Coordinate needs beyond its own values: the
transformer registry, the transform and geoid caches, the geoid model and
the input policy. Coordinates built without an explicit context use the
process default, which `initialize_core` replaces.
"""

from typing import Optional

from common.logging_config import get_logger, set_package_level
from geosurvey.config import GeodesyConfig, InputPolicy
from geosurvey.errors import GeodesyError
from geosurvey.geoid_model import GeoidModel
from geosurvey.registry import TransformerRegistry
from geosurvey.transformer import CoordinateTransformer, GeoidCache, TransformCache

logger = get_logger(__name__)


class GeodesyContext:
    """Shared transformer state for a group of Coordinates.

    Parameters
    ----------
    config : GeodesyConfig, optional
        Context configuration; defaults to `GeodesyConfig()`.
    geoid_model : GeoidModel, optional
        Geoid model; defaults to the built-in approximation.

    Raises
    ------
    UnknownTransformerError
        If `config.transformer_type` is not a known type.
    """

    def __init__(
        self,
        config: Optional[GeodesyConfig] = None,
        geoid_model: Optional[GeoidModel] = None
    ):
        self.config = config if config is not None else GeodesyConfig()
        self.transform_cache = TransformCache()
        self.geoid_cache = GeoidCache()
        self.geoid_model = geoid_model if geoid_model is not None else GeoidModel()
        self.registry = TransformerRegistry.for_context(self)

    @classmethod
    def from_config(cls, config: GeodesyConfig) -> "GeodesyContext":
        return cls(config=config)

    @property
    def input_policy(self) -> InputPolicy:
        return InputPolicy(self.config.input_policy)

    @property
    def transformer(self) -> CoordinateTransformer:
        """The registry's default transformer."""
        return self.registry.get_transformer()

    def clear_caches(self) -> None:
        self.registry.clear_cache()
        self.transform_cache.clear()
        self.geoid_cache.clear()


_default_context: Optional[GeodesyContext] = None


def get_default_context() -> GeodesyContext:
    """Return the process default context, creating it on first use."""
    global _default_context
    if _default_context is None:
        _default_context = GeodesyContext()
    return _default_context


def set_default_context(context: Optional[GeodesyContext]) -> None:
    """Install `context` as the process default (None resets it)."""
    global _default_context
    _default_context = context


def initialize_core(config: Optional[GeodesyConfig] = None) -> bool:
    """Build a context from `config` and install it as the default.

    Applies the configured log level and asks the geoid model to load a
    named grid when `config.geoid_model` is not 'default'.

    Returns
    -------
    bool
        True on success. Failures are logged and the previous default
        context is kept.
    """
    config = config if config is not None else GeodesyConfig()

    try:
        context = GeodesyContext.from_config(config)
    except GeodesyError as e:
        logger.error(f"Failed to initialize geodesy core: {e}")
        return False

    set_package_level(config.log_level)

    if config.geoid_model != "default":
        context.geoid_model.load_model(config.geoid_model)

    set_default_context(context)
    logger.info(
        f"Geodesy core initialized (transformer={context.registry.default_type.value}, "
        f"input_policy={context.input_policy.value})"
    )
    return True
